from surveyco.core.errors import AppError, ErrorKind
from surveyco.models import Collector, CollectorStatus, Question, Survey, SurveyPage

MAX_PAGES_PER_SURVEY = 20
MAX_QUESTIONS_PER_PAGE = 50

def assert_survey_exists(survey: Survey | None) -> Survey:
    if survey is None:
        raise AppError(ErrorKind.NOT_FOUND, "Resource not found.")
    return survey

def assert_user_created_survey(survey: Survey, user_id: str) -> None:
    if survey.creator_id != user_id:
        raise AppError(ErrorKind.UNAUTHORIZED, "Unauthorized access.")

def assert_page_exists(page: SurveyPage | None) -> SurveyPage:
    if page is None:
        raise AppError(ErrorKind.NOT_FOUND, "Page not found.")
    return page

def assert_page_belongs_to_survey(page: SurveyPage, survey_id: int) -> None:
    # a page of another survey is as good as missing from this one
    if page.survey_id != survey_id:
        raise AppError(ErrorKind.NOT_FOUND, "Page not found.")

def assert_question_exists(question: Question | None) -> Question:
    if question is None:
        raise AppError(ErrorKind.NOT_FOUND, "Question not found.")
    return question

def assert_question_belongs_to_survey(question: Question, survey_id: int) -> None:
    if question.survey_id != survey_id:
        raise AppError(ErrorKind.BAD_REQUEST, "Question does not belong to this survey.")

def assert_question_on_page(question: Question, page: SurveyPage) -> None:
    if question.page_id != page.id:
        raise AppError(ErrorKind.BAD_REQUEST, "Question does not belong to this page.")

def assert_max_pages_not_exceeded(page_count: int) -> None:
    if page_count >= MAX_PAGES_PER_SURVEY:
        raise AppError(ErrorKind.MAX_PAGES_EXCEEDED, f"Max number of pages per survey is {MAX_PAGES_PER_SURVEY}.")

def assert_max_questions_not_exceeded(question_count: int) -> None:
    if question_count >= MAX_QUESTIONS_PER_PAGE:
        raise AppError(
            ErrorKind.MAX_QUESTIONS_EXCEEDED,
            f"Max number of questions per page is {MAX_QUESTIONS_PER_PAGE}.",
        )

def assert_collector_exists(collector: Collector | None) -> Collector:
    if collector is None or collector.deleted:
        raise AppError(ErrorKind.NOT_FOUND, "Resource not found.")
    return collector

def assert_collector_belongs_to_survey(collector: Collector, survey_id: int) -> None:
    if collector.survey_id != survey_id:
        raise AppError(ErrorKind.BAD_REQUEST, "Invalid inputs.")

def assert_collector_is_open(collector: Collector) -> None:
    if collector.status != CollectorStatus.open.value:
        raise AppError(ErrorKind.BAD_REQUEST, "This collector is closed.")
