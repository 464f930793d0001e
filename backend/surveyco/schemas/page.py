from datetime import datetime

from pydantic import BaseModel, Field

from surveyco.services.ordering import Position

class PagePlace(BaseModel):
    page_id: int = Field(alias="pageId")
    position: Position

    class Config:
        populate_by_name = True

class PageOut(BaseModel):
    id: int
    survey_id: int
    number: int
    created_at: datetime

    class Config:
        from_attributes = True
