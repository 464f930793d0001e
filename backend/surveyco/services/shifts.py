import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.models import Question, Survey, SurveyPage
from surveyco.services.ordering import Shift

logger = logging.getLogger(__name__)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

async def _shift(session: AsyncSession, model, survey_id: int, shifts: Iterable[Shift], exclude_ids: Iterable[int] = ()) -> None:
    exclude_ids = list(exclude_ids)
    for s in shifts:
        stmt = update(model).where(model.survey_id == survey_id, model.number >= s.start)
        if s.stop is not None:
            stmt = stmt.where(model.number < s.stop)
        if exclude_ids:
            stmt = stmt.where(model.id.not_in(exclude_ids))
        await session.execute(stmt.values(number=model.number + s.delta))
        logger.debug("shifted %s survey=%s [%s, %s) by %+d", model.__tablename__, survey_id, s.start, s.stop, s.delta)

async def shift_pages(session: AsyncSession, survey_id: int, shifts: Iterable[Shift], exclude_ids: Iterable[int] = ()) -> None:
    await _shift(session, SurveyPage, survey_id, shifts, exclude_ids)

async def shift_questions(session: AsyncSession, survey_id: int, shifts: Iterable[Shift], exclude_ids: Iterable[int] = ()) -> None:
    await _shift(session, Question, survey_id, shifts, exclude_ids)

async def touch_survey(session: AsyncSession, survey_id: int) -> None:
    """Bump the survey's structural version stamp. Always the last write of a unit of work."""
    await session.execute(update(Survey).where(Survey.id == survey_id).values(updated_at=utcnow()))
