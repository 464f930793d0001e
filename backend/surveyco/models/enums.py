from enum import Enum

class QuestionType(str, Enum):
    textbox = "textbox"
    multiple_choice = "multiple_choice"
    checkbox = "checkbox"
    dropdown = "dropdown"

    @property
    def has_options(self) -> bool:
        return self is not QuestionType.textbox

class SurveyCategory(str, Enum):
    market_research = "market_research"
    academic_research = "academic_research"
    student_feedback = "student_feedback"
    event_feedback = "event_feedback"
    customer_feedback = "customer_feedback"

class CollectorType(str, Enum):
    web_link = "web_link"

class CollectorStatus(str, Enum):
    open = "open"
    closed = "closed"

class ResponseStatus(str, Enum):
    complete = "complete"
    incomplete = "incomplete"
