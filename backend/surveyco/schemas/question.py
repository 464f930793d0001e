from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from surveyco.models.enums import QuestionType
from surveyco.services.ordering import Position

MAX_DESCRIPTION_LENGTH = 2500
MAX_OPTIONS = 30

def _clean_description(v: str, what: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"You must enter {what}.")
    if len(v) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f"Description can have max of {MAX_DESCRIPTION_LENGTH} characters.")
    return v

class OptionIn(BaseModel):
    id: int | None = None
    description: str
    number: int = Field(gt=0)

    @field_validator("description")
    @classmethod
    def description_ok(cls, v: str) -> str:
        return _clean_description(v, "option text")

class OptionOut(BaseModel):
    id: int
    description: str
    number: int

    class Config:
        from_attributes = True

class QuestionCreateData(BaseModel):
    type: QuestionType
    description: str
    required: bool
    randomize: bool | None = None
    options: list[OptionIn] | None = None

    @field_validator("description")
    @classmethod
    def description_ok(cls, v: str) -> str:
        return _clean_description(v, "question description")

    @field_validator("options")
    @classmethod
    def options_size(cls, v: list[OptionIn] | None) -> list[OptionIn] | None:
        if v is None:
            return v
        if not v:
            raise ValueError("You must add at least one option.")
        if len(v) > MAX_OPTIONS:
            raise ValueError(f"Max. number of options is {MAX_OPTIONS}.")
        ids = [o.id for o in v if o.id is not None]
        if len(ids) != len(set(ids)):
            raise ValueError("Option ids must be unique.")
        return v

    @model_validator(mode="after")
    def type_matches_payload(self):
        # textbox carries neither options nor randomize; choice types carry both
        if self.type is QuestionType.textbox:
            if self.options is not None or self.randomize is not None:
                raise ValueError("Textbox questions take no options.")
        elif self.options is None or self.randomize is None:
            raise ValueError("Choice questions need options and randomize.")
        return self

class QuestionUpdateData(QuestionCreateData):
    id: int

class QuestionCreate(BaseModel):
    page_id: int = Field(alias="pageId")
    data: QuestionCreateData

    class Config:
        populate_by_name = True

class QuestionUpdate(BaseModel):
    data: QuestionUpdateData

class QuestionPlace(BaseModel):
    page_id: int = Field(alias="pageId")
    question_id: int | None = Field(default=None, alias="questionId")
    position: Position | None = None

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def target_complete(self):
        if (self.question_id is None) != (self.position is None):
            raise ValueError("Both position and questionId should be included or omitted.")
        return self

class QuestionOut(BaseModel):
    id: int
    survey_id: int
    page_id: int
    number: int
    type: QuestionType
    description: str
    required: bool
    randomize: bool | None
    options: list[OptionOut]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
