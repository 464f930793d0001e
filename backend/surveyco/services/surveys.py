import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.db import serializable_transaction
from surveyco.models import Question, Survey, SurveyPage
from surveyco.schemas.survey import SurveyCreate
from surveyco.services.validators import (
    assert_page_belongs_to_survey,
    assert_page_exists,
    assert_survey_exists,
    assert_user_created_survey,
)

logger = logging.getLogger(__name__)

async def get_owned_survey(db: AsyncSession, survey_id: int, user_id: str) -> Survey:
    survey = assert_survey_exists(await db.get(Survey, survey_id))
    assert_user_created_survey(survey, user_id)
    return survey

async def get_survey_page(db: AsyncSession, survey_id: int, page_id: int) -> SurveyPage:
    page = assert_page_exists(await db.get(SurveyPage, page_id))
    assert_page_belongs_to_survey(page, survey_id)
    return page

async def create_survey(db: AsyncSession, user_id: str, payload: SurveyCreate) -> Survey:
    async with serializable_transaction(db):
        survey = Survey(
            title=payload.title,
            category=payload.category.value if payload.category else None,
            creator_id=user_id,
        )
        db.add(survey)
        await db.flush()
        # a survey always has at least one page
        db.add(SurveyPage(survey_id=survey.id, number=1))
    await db.refresh(survey)
    logger.info("created survey=%s for user=%s", survey.id, user_id)
    return survey

async def list_user_surveys(db: AsyncSession, user_id: str) -> list[dict]:
    page_count = (
        select(func.count(SurveyPage.id)).where(SurveyPage.survey_id == Survey.id).scalar_subquery()
    )
    question_count = (
        select(func.count(Question.id)).where(Question.survey_id == Survey.id).scalar_subquery()
    )
    rows = await db.execute(
        select(Survey, page_count, question_count)
        .where(Survey.creator_id == user_id)
        .order_by(Survey.updated_at.desc(), Survey.id.desc())
    )
    return [
        {**_survey_fields(s), "page_count": pages, "question_count": questions}
        for s, pages, questions in rows.all()
    ]

def _survey_fields(survey: Survey) -> dict:
    return {
        "id": survey.id,
        "title": survey.title,
        "category": survey.category,
        "creator_id": survey.creator_id,
        "created_at": survey.created_at,
        "updated_at": survey.updated_at,
    }

async def list_pages(db: AsyncSession, survey_id: int) -> list[SurveyPage]:
    assert_survey_exists(await db.get(Survey, survey_id))
    rows = await db.execute(
        select(SurveyPage).where(SurveyPage.survey_id == survey_id).order_by(SurveyPage.number)
    )
    return list(rows.scalars().all())

async def list_questions(db: AsyncSession, survey_id: int, page_id: int | None = None) -> list[Question]:
    assert_survey_exists(await db.get(Survey, survey_id))
    stmt = select(Question).where(Question.survey_id == survey_id)
    if page_id is not None:
        stmt = stmt.where(Question.page_id == page_id)
    rows = await db.execute(stmt.order_by(Question.number))
    return list(rows.scalars().all())
