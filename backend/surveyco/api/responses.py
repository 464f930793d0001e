from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.auth import get_current_user_id
from surveyco.core.db import get_db
from surveyco.schemas.response import (
    QuestionResultOut,
    QuestionResultsQuery,
    ResponseVolumeOut,
    SurveyResponseDataOut,
    SurveyResponseOut,
    SurveyResponseSave,
    SurveyResponseSaved,
)
from surveyco.services import responses as response_service

router = APIRouter(tags=["responses"])

@router.put("/survey/{survey_id}/response", response_model=SurveyResponseSaved)
async def save_survey_response(
    survey_id: int,
    payload: SurveyResponseSave,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    ip = request.client.host if request.client else None
    ua = request.headers.get("user-agent")
    return await response_service.save_survey_response(db, survey_id, payload, ip, ua)

@router.get("/survey/{survey_id}/responseData", response_model=SurveyResponseDataOut)
async def get_response_data(
    survey_id: int,
    page_id: int = Query(alias="pageId"),
    response_id: int | None = Query(default=None, alias="responseId"),
    db: AsyncSession = Depends(get_db),
):
    return await response_service.get_responder_page_data(db, survey_id, page_id, response_id)

@router.get("/survey/{survey_id}/responses", response_model=list[SurveyResponseOut])
async def list_survey_responses(
    survey_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await response_service.list_survey_responses(db, survey_id, user_id)

@router.get("/survey/{survey_id}/responses/volume", response_model=list[ResponseVolumeOut])
async def get_response_volume(
    survey_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await response_service.get_response_volume(db, survey_id, user_id)

@router.get("/survey/{survey_id}/response/{response_id}", response_model=SurveyResponseOut)
async def get_survey_response(
    survey_id: int,
    response_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await response_service.get_survey_response(db, survey_id, user_id, response_id)

@router.get("/survey/{survey_id}/response/{response_id}/answers", response_model=SurveyResponseDataOut)
async def get_survey_response_answers(
    survey_id: int,
    response_id: int,
    page_id: int = Query(alias="pageId"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await response_service.get_survey_response_answers(db, survey_id, user_id, response_id, page_id)

@router.get("/survey/{survey_id}/questions/result", response_model=list[QuestionResultOut])
async def get_page_question_results(
    survey_id: int,
    page_id: int = Query(alias="pageId"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await response_service.get_page_question_results(db, survey_id, user_id, page_id)

@router.post("/survey/{survey_id}/questions/result", response_model=list[QuestionResultOut])
async def get_question_results(
    survey_id: int,
    payload: QuestionResultsQuery,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await response_service.get_question_results(db, survey_id, user_id, payload.question_ids)
