from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from surveyco.models.enums import SurveyCategory

class SurveyCreate(BaseModel):
    title: str = Field(max_length=255)
    category: SurveyCategory | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("You must enter survey title.")
        return v

class SurveyOut(BaseModel):
    id: int
    title: str
    category: str | None
    creator_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class SurveySummaryOut(SurveyOut):
    page_count: int
    question_count: int
