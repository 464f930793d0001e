from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from surveyco.models.enums import CollectorStatus, CollectorType

class CollectorCreate(BaseModel):
    type: CollectorType
    survey_id: int = Field(alias="surveyId")

    class Config:
        populate_by_name = True

class CollectorRename(BaseModel):
    name: str = Field(max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("You must enter collector name.")
        return v

class CollectorStatusUpdate(BaseModel):
    status: CollectorStatus

class CollectorOut(BaseModel):
    id: int
    survey_id: int
    name: str
    type: CollectorType
    status: CollectorStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class CollectorListItem(CollectorOut):
    total_responses: int = 0
