from surveyco.models.survey import Survey, SurveyPage, Question, QuestionOption
from surveyco.models.collector import Collector
from surveyco.models.response import SurveyResponse, QuestionResponse, QuestionAnswer
from surveyco.models.enums import QuestionType, SurveyCategory, CollectorType, CollectorStatus, ResponseStatus

__all__ = [
    "Survey",
    "SurveyPage",
    "Question",
    "QuestionOption",
    "Collector",
    "SurveyResponse",
    "QuestionResponse",
    "QuestionAnswer",
    "QuestionType",
    "SurveyCategory",
    "CollectorType",
    "CollectorStatus",
    "ResponseStatus",
]
