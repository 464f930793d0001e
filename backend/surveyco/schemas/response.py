from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from surveyco.models.enums import QuestionType, ResponseStatus
from surveyco.schemas.question import QuestionOut

class QuestionResponseIn(BaseModel):
    id: int | None = None
    question_id: int = Field(alias="questionId")
    # option ids for choice questions, free text for textbox
    answer: str | list[str]
    question_type: QuestionType = Field(alias="questionType")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def answer_shape(self):
        if self.question_type is QuestionType.checkbox:
            if not isinstance(self.answer, list):
                raise ValueError("Invalid input format.")
        elif not isinstance(self.answer, str):
            raise ValueError("Invalid input format.")
        return self

class SurveyResponseSave(BaseModel):
    question_responses: list[QuestionResponseIn] = Field(alias="questionResponses")
    collector_id: int | None = Field(default=None, alias="collectorId")
    page_id: int = Field(alias="pageId")
    is_preview: bool = Field(default=False, alias="isPreview")
    started_at: datetime = Field(alias="startedAt")
    response_id: int | None = Field(default=None, alias="responseId")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def preview_has_no_collector(self):
        if self.is_preview == (self.collector_id is not None):
            raise ValueError("Invalid input format.")
        return self

class SurveyResponseSaved(BaseModel):
    id: int | str  # "preview" when nothing was stored
    status: ResponseStatus

class SurveyResponseOut(BaseModel):
    id: int
    survey_id: int
    collector_id: int
    status: ResponseStatus
    ip_address: str | None
    device: str | None
    browser: str | None
    os: str | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class QuestionAnswerOut(BaseModel):
    id: int
    question_id: int
    question_option_id: int | None
    text_answer: str | None

    class Config:
        from_attributes = True

class QuestionResponseOut(BaseModel):
    id: int
    question_id: int
    answers: list[QuestionAnswerOut]

    class Config:
        from_attributes = True

class SurveyResponseDataOut(BaseModel):
    questions: list[QuestionOut]
    question_responses: list[QuestionResponseOut]

class QuestionResultsQuery(BaseModel):
    question_ids: list[int] = Field(alias="questionIds")

    class Config:
        populate_by_name = True

class ChoiceResultOut(BaseModel):
    id: int
    description: str
    number: int
    answered_count: int

class TextAnswerOut(BaseModel):
    id: int
    question_response_id: int
    text: str | None
    updated_at: datetime

class QuestionResultOut(QuestionOut):
    answered_count: int
    skipped_count: int
    # choices for choice questions, answers for textbox
    choices: list[ChoiceResultOut] | None = None
    answers: list[TextAnswerOut] | None = None

class ResponseVolumeOut(BaseModel):
    day: str  # YYYY-MM-DD, UTC
    response_count: int
