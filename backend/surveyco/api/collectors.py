from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.auth import get_current_user_id
from surveyco.core.db import get_db
from surveyco.schemas.collector import (
    CollectorCreate,
    CollectorListItem,
    CollectorOut,
    CollectorRename,
    CollectorStatusUpdate,
)
from surveyco.services import collectors as collector_service

router = APIRouter(tags=["collectors"])

@router.post("/collectors", response_model=CollectorOut, status_code=201)
async def create_collector(
    payload: CollectorCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await collector_service.create_collector(db, user_id, payload)

@router.get("/collectors/{collector_id}", response_model=CollectorOut)
async def get_collector(collector_id: int, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await collector_service.get_owned_collector(db, collector_id, user_id)

@router.put("/collectors/{collector_id}", response_model=CollectorOut)
async def rename_collector(
    collector_id: int,
    payload: CollectorRename,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await collector_service.rename_collector(db, collector_id, user_id, payload.name)

@router.put("/collectors/{collector_id}/status", response_model=CollectorOut)
async def set_collector_status(
    collector_id: int,
    payload: CollectorStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await collector_service.set_collector_status(db, collector_id, user_id, payload.status)

@router.delete("/collectors/{collector_id}", response_model=CollectorOut)
async def delete_collector(collector_id: int, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await collector_service.delete_collector(db, collector_id, user_id)

@router.get("/survey/{survey_id}/collectors", response_model=list[CollectorListItem])
async def list_collectors(survey_id: int, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await collector_service.list_survey_collectors(db, survey_id, user_id)
