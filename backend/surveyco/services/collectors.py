import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.db import serializable_transaction
from surveyco.models import Collector, CollectorStatus, CollectorType, SurveyResponse
from surveyco.schemas.collector import CollectorCreate
from surveyco.services.surveys import get_owned_survey
from surveyco.services.validators import assert_collector_exists

logger = logging.getLogger(__name__)

async def create_collector(db: AsyncSession, user_id: str, payload: CollectorCreate) -> Collector:
    async with serializable_transaction(db):
        await get_owned_survey(db, payload.survey_id, user_id)
        if payload.type is CollectorType.web_link:
            existing = await db.scalar(
                select(func.count(Collector.id)).where(
                    Collector.survey_id == payload.survey_id,
                    Collector.type == CollectorType.web_link.value,
                )
            )
            name = f"Web Link {existing + 1}"
        else:
            name = "New Collector"
        collector = Collector(
            survey_id=payload.survey_id,
            name=name,
            type=payload.type.value,
            status=CollectorStatus.open.value,
        )
        db.add(collector)
    await db.refresh(collector)
    logger.info("created collector=%s survey=%s", collector.id, collector.survey_id)
    return collector

async def get_owned_collector(db: AsyncSession, collector_id: int, user_id: str) -> Collector:
    collector = assert_collector_exists(await db.get(Collector, collector_id))
    await get_owned_survey(db, collector.survey_id, user_id)
    return collector

async def rename_collector(db: AsyncSession, collector_id: int, user_id: str, name: str) -> Collector:
    async with serializable_transaction(db):
        collector = await get_owned_collector(db, collector_id, user_id)
        collector.name = name
    await db.refresh(collector)
    return collector

async def set_collector_status(db: AsyncSession, collector_id: int, user_id: str, status: CollectorStatus) -> Collector:
    async with serializable_transaction(db):
        collector = await get_owned_collector(db, collector_id, user_id)
        collector.status = status.value
    await db.refresh(collector)
    logger.info("collector=%s is now %s", collector.id, collector.status)
    return collector

async def delete_collector(db: AsyncSession, collector_id: int, user_id: str) -> Collector:
    # soft delete: responses gathered through it stay attached
    async with serializable_transaction(db):
        collector = await get_owned_collector(db, collector_id, user_id)
        collector.deleted = True
        collector.status = CollectorStatus.closed.value
    await db.refresh(collector)
    logger.info("deleted collector=%s", collector.id)
    return collector

async def list_survey_collectors(db: AsyncSession, survey_id: int, user_id: str) -> list[dict]:
    await get_owned_survey(db, survey_id, user_id)
    total_responses = (
        select(func.count(SurveyResponse.id))
        .where(SurveyResponse.collector_id == Collector.id)
        .scalar_subquery()
    )
    rows = await db.execute(
        select(Collector, total_responses)
        .where(Collector.survey_id == survey_id, Collector.deleted.is_(False))
        .order_by(Collector.created_at, Collector.id)
    )
    out = []
    for c, total in rows.all():
        out.append({
            "id": c.id,
            "survey_id": c.survey_id,
            "name": c.name,
            "type": c.type,
            "status": c.status,
            "created_at": c.created_at,
            "updated_at": c.updated_at,
            "total_responses": total,
        })
    return out
