import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.db import serializable_transaction
from surveyco.core.errors import AppError, ErrorKind
from surveyco.models import Question, SurveyPage
from surveyco.schemas.page import PageOut
from surveyco.services import questions as question_service
from surveyco.services.ordering import (
    Placement,
    Position,
    insertion_point,
    plan_append,
    plan_insert_at,
    plan_move_to,
    plan_remove,
)
from surveyco.services.shifts import shift_pages, shift_questions, touch_survey
from surveyco.services.surveys import get_owned_survey, get_survey_page
from surveyco.services.validators import assert_max_pages_not_exceeded

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class PageSlot:
    page_id: int
    number: int
    question_ids: tuple[int, ...] = ()
    question_numbers: tuple[int, ...] = ()

    @property
    def question_count(self) -> int:
        return len(self.question_numbers)

    @property
    def first_question(self) -> Optional[int]:
        return self.question_numbers[0] if self.question_numbers else None

@dataclass(frozen=True)
class PagePlan:
    page: Placement
    # None when no question number changes
    questions: Optional[Placement] = None

def _slot(layout: Sequence[PageSlot], number: int) -> PageSlot:
    for slot in layout:
        if slot.number == number:
            return slot
    raise ValueError(f"no page numbered {number} in layout")

def _question_total(layout: Sequence[PageSlot]) -> int:
    return sum(slot.question_count for slot in layout)

def plan_page_move(layout: Sequence[PageSlot], source_number: int, target_number: int, position: Position) -> PagePlan:
    """Plan moving one page in front of or behind another.

    The question block of the source page is re-anchored next to the
    question that will border it afterwards: the last question of the pages
    that end up in front of it when moving down, the first question of the
    pages that end up behind it when moving up. Without such a question the
    block goes to the start (moving down) or end (moving up) of the survey,
    which for a page with questions always resolves to leaving the block in
    place. Pages without questions never touch question numbering.
    """
    source = _slot(layout, source_number)
    page_insertion = insertion_point(target_number, position)
    page = plan_move_to(source.number, page_insertion, 1)
    if page.is_noop or not source.question_count:
        return PagePlan(page=page)

    others = [slot for slot in layout if slot.page_id != source.page_id]
    if page_insertion < source.number:
        following = [n for slot in others if slot.number >= page_insertion for n in slot.question_numbers]
        question_insertion = min(following) if following else _question_total(layout) + 1
    else:
        preceding = [n for slot in others if slot.number < page_insertion for n in slot.question_numbers]
        question_insertion = max(preceding) + 1 if preceding else 1

    questions = plan_move_to(source.first_question, question_insertion, source.question_count)
    return PagePlan(page=page, questions=None if questions.is_noop else questions)

def plan_page_copy(layout: Sequence[PageSlot], source_number: int, target_number: int, position: Position) -> PagePlan:
    """Plan inserting a duplicate of a page next to a target page.

    The duplicate's questions start right after the last question of every
    page in front of the insertion point, or at 1 when there is none.
    """
    source = _slot(layout, source_number)
    page_insertion = insertion_point(target_number, position)
    page = plan_insert_at(page_insertion, 1)
    preceding = [n for slot in layout if slot.number < page_insertion for n in slot.question_numbers]
    question_insertion = max(preceding) + 1 if preceding else 1
    return PagePlan(page=page, questions=plan_insert_at(question_insertion, source.question_count))

def plan_page_delete(layout: Sequence[PageSlot], number: int) -> PagePlan:
    source = _slot(layout, number)
    questions = None
    if source.question_count:
        questions = plan_remove(source.first_question, source.question_count)
    return PagePlan(page=plan_remove(source.number, 1), questions=questions)

async def load_layout(db: AsyncSession, survey_id: int) -> list[PageSlot]:
    pages = (
        await db.execute(
            select(SurveyPage.id, SurveyPage.number)
            .where(SurveyPage.survey_id == survey_id)
            .order_by(SurveyPage.number)
        )
    ).all()
    rows = (
        await db.execute(
            select(Question.id, Question.page_id, Question.number)
            .where(Question.survey_id == survey_id)
            .order_by(Question.number)
        )
    ).all()
    by_page: dict[int, list[tuple[int, int]]] = {}
    for qid, page_id, number in rows:
        by_page.setdefault(page_id, []).append((qid, number))
    return [
        PageSlot(
            page_id=page_id,
            number=number,
            question_ids=tuple(q for q, _ in by_page.get(page_id, [])),
            question_numbers=tuple(n for _, n in by_page.get(page_id, [])),
        )
        for page_id, number in pages
    ]

async def _renumber_block(db: AsyncSession, question_ids: Sequence[int], start: int) -> None:
    for offset, qid in enumerate(question_ids):
        await db.execute(update(Question).where(Question.id == qid).values(number=start + offset))

async def create_page(db: AsyncSession, survey_id: int, user_id: str) -> SurveyPage:
    async with serializable_transaction(db):
        await get_owned_survey(db, survey_id, user_id)
        page_count = await db.scalar(select(func.count(SurveyPage.id)).where(SurveyPage.survey_id == survey_id))
        assert_max_pages_not_exceeded(page_count)

        page = SurveyPage(survey_id=survey_id, number=plan_append(page_count).number)
        db.add(page)
        await db.flush()
        await touch_survey(db, survey_id)
    await db.refresh(page)
    logger.info("created page=%s survey=%s number=%s", page.id, survey_id, page.number)
    return page

async def delete_page(db: AsyncSession, survey_id: int, user_id: str, page_id: int) -> PageOut:
    async with serializable_transaction(db):
        await get_owned_survey(db, survey_id, user_id)
        page = await get_survey_page(db, survey_id, page_id)
        layout = await load_layout(db, survey_id)
        if len(layout) <= 1:
            raise AppError(ErrorKind.BAD_REQUEST, "Survey must have at least one page.")

        prior = PageOut.model_validate(page)
        slot = _slot(layout, page.number)
        plan = plan_page_delete(layout, page.number)

        await question_service.delete_question_rows(db, slot.question_ids)
        await db.delete(page)
        await db.flush()
        await shift_pages(db, survey_id, plan.page.shifts)
        if plan.questions is not None:
            await shift_questions(db, survey_id, plan.questions.shifts)
        await touch_survey(db, survey_id)
    logger.info(
        "deleted page=%s survey=%s number=%s with %s questions",
        page_id, survey_id, prior.number, slot.question_count,
    )
    return prior

async def move_page(
    db: AsyncSession,
    survey_id: int,
    user_id: str,
    source_page_id: int,
    target_page_id: int,
    position: Position,
) -> SurveyPage:
    async with serializable_transaction(db):
        await get_owned_survey(db, survey_id, user_id)
        source = await get_survey_page(db, survey_id, source_page_id)
        target = await get_survey_page(db, survey_id, target_page_id)
        layout = await load_layout(db, survey_id)

        old_number = source.number
        slot = _slot(layout, source.number)
        plan = plan_page_move(layout, source.number, target.number, position)

        await shift_pages(db, survey_id, plan.page.shifts, exclude_ids=[source.id])
        if plan.questions is not None:
            await shift_questions(db, survey_id, plan.questions.shifts, exclude_ids=slot.question_ids)
            await _renumber_block(db, slot.question_ids, plan.questions.number)
        source.number = plan.page.number
        await db.flush()
        await touch_survey(db, survey_id)
    logger.info("moved page=%s survey=%s from %s to %s", source.id, survey_id, old_number, source.number)
    return source

async def copy_page(
    db: AsyncSession,
    survey_id: int,
    user_id: str,
    source_page_id: int,
    target_page_id: int,
    position: Position,
) -> SurveyPage:
    async with serializable_transaction(db):
        await get_owned_survey(db, survey_id, user_id)
        source = await get_survey_page(db, survey_id, source_page_id)
        target = await get_survey_page(db, survey_id, target_page_id)
        layout = await load_layout(db, survey_id)
        assert_max_pages_not_exceeded(len(layout))

        plan = plan_page_copy(layout, source.number, target.number, position)
        originals = (
            await db.execute(
                select(Question).where(Question.page_id == source.id).order_by(Question.number)
            )
        ).scalars().all()
        templates = [question_service.question_template(q) for q in originals]

        await shift_pages(db, survey_id, plan.page.shifts)
        await shift_questions(db, survey_id, plan.questions.shifts)
        page = SurveyPage(survey_id=survey_id, number=plan.page.number)
        db.add(page)
        await db.flush()
        for offset, template in enumerate(templates):
            db.add(question_service.build_question(template, survey_id, page.id, plan.questions.number + offset))
        await db.flush()
        await touch_survey(db, survey_id)
    await db.refresh(page)
    logger.info(
        "copied page=%s survey=%s to page=%s number=%s with %s questions",
        source_page_id, survey_id, page.id, page.number, len(templates),
    )
    return page
