from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.auth import get_current_user_id
from surveyco.core.db import get_db
from surveyco.schemas.page import PageOut
from surveyco.schemas.question import QuestionOut
from surveyco.schemas.survey import SurveyCreate, SurveyOut, SurveySummaryOut
from surveyco.services import surveys as survey_service

router = APIRouter(prefix="/survey", tags=["surveys"])

@router.post("", response_model=SurveyOut, status_code=201)
async def create_survey(
    payload: SurveyCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await survey_service.create_survey(db, user_id, payload)

@router.get("", response_model=list[SurveySummaryOut])
async def list_surveys(user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await survey_service.list_user_surveys(db, user_id)

@router.get("/{survey_id}", response_model=SurveyOut)
async def get_survey(survey_id: int, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await survey_service.get_owned_survey(db, survey_id, user_id)

# pages and questions are readable by responders too
@router.get("/{survey_id}/pages", response_model=list[PageOut])
async def list_pages(survey_id: int, db: AsyncSession = Depends(get_db)):
    return await survey_service.list_pages(db, survey_id)

@router.get("/{survey_id}/questions", response_model=list[QuestionOut])
async def list_questions(
    survey_id: int,
    page_id: int | None = Query(default=None, alias="pageId"),
    db: AsyncSession = Depends(get_db),
):
    return await survey_service.list_questions(db, survey_id, page_id)
