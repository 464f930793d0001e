from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.auth import get_current_user_id
from surveyco.core.db import get_db
from surveyco.schemas.question import QuestionCreate, QuestionOut, QuestionPlace, QuestionUpdate
from surveyco.services import questions as question_service

router = APIRouter(prefix="/survey", tags=["questions"])

@router.post("/{survey_id}/question", response_model=QuestionOut, status_code=201)
async def create_question(
    survey_id: int,
    payload: QuestionCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await question_service.add_question(db, survey_id, user_id, payload.page_id, payload.data)

@router.put("/{survey_id}/question", response_model=QuestionOut)
async def update_question(
    survey_id: int,
    payload: QuestionUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await question_service.update_question(db, survey_id, user_id, payload.data)

@router.delete("/{survey_id}/question/{question_id}", response_model=QuestionOut)
async def delete_question(
    survey_id: int,
    question_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await question_service.delete_question(db, survey_id, user_id, question_id)

@router.post("/{survey_id}/question/{question_id}/copy", response_model=QuestionOut, status_code=201)
async def copy_question(
    survey_id: int,
    question_id: int,
    payload: QuestionPlace,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await question_service.copy_question(
        db, survey_id, user_id, question_id, payload.page_id, payload.question_id, payload.position
    )

@router.put("/{survey_id}/question/{question_id}/move", response_model=QuestionOut)
async def move_question(
    survey_id: int,
    question_id: int,
    payload: QuestionPlace,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await question_service.move_question(
        db, survey_id, user_id, question_id, payload.page_id, payload.question_id, payload.position
    )
