from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.auth import get_current_user_id
from surveyco.core.db import get_db
from surveyco.schemas.page import PageOut, PagePlace
from surveyco.services import pages as page_service

router = APIRouter(prefix="/survey", tags=["pages"])

@router.post("/{survey_id}/page", response_model=PageOut, status_code=201)
async def create_page(survey_id: int, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await page_service.create_page(db, survey_id, user_id)

@router.delete("/{survey_id}/page/{page_id}", response_model=PageOut)
async def delete_page(
    survey_id: int,
    page_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await page_service.delete_page(db, survey_id, user_id, page_id)

@router.post("/{survey_id}/page/{page_id}/copy", response_model=PageOut, status_code=201)
async def copy_page(
    survey_id: int,
    page_id: int,
    payload: PagePlace,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await page_service.copy_page(db, survey_id, user_id, page_id, payload.page_id, payload.position)

@router.put("/{survey_id}/page/{page_id}/move", response_model=PageOut)
async def move_page(
    survey_id: int,
    page_id: int,
    payload: PagePlace,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await page_service.move_page(db, survey_id, user_id, page_id, payload.page_id, payload.position)
