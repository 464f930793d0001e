import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.db import serializable_transaction
from surveyco.core.errors import AppError, ErrorKind
from surveyco.models import (
    Question,
    QuestionAnswer,
    QuestionOption,
    QuestionResponse,
    SurveyPage,
)
from surveyco.schemas.question import OptionIn, QuestionCreateData, QuestionOut, QuestionUpdateData
from surveyco.services.ordering import Placement, Position, insertion_point, plan_insert_at, plan_move_to, plan_remove
from surveyco.services.shifts import shift_questions, touch_survey
from surveyco.services.surveys import get_owned_survey, get_survey_page
from surveyco.services.validators import (
    assert_max_questions_not_exceeded,
    assert_question_belongs_to_survey,
    assert_question_exists,
    assert_question_on_page,
)

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class QuestionSlot:
    question_id: int
    page_number: int
    number: int

@dataclass(frozen=True)
class QuestionTemplate:
    type: str
    description: str
    required: bool
    randomize: Optional[bool]
    options: tuple[tuple[str, int], ...] = ()

def plan_add_question(page_numbers: Sequence[int], prior_last: Optional[int]) -> Placement:
    """Place a new question at the end of its page.

    An empty page continues from the last question of the pages before it,
    or starts the survey at 1.
    """
    if page_numbers:
        last = max(page_numbers)
    else:
        last = prior_last or 0
    return plan_insert_at(last + 1, 1)

def resolve_insertion(
    slots: Sequence[QuestionSlot],
    target_page_number: int,
    target_number: Optional[int] = None,
    position: Optional[Position] = None,
    exclude_id: Optional[int] = None,
) -> int:
    """Survey-wide number a question is placed in front of.

    With a target question the placement is relative to it. Without one the
    question goes after the last question of the target page, falling back
    to the last question of any earlier page, then to the start of the survey.
    ``exclude_id`` leaves the moving question out of that search.
    """
    if target_number is not None:
        return insertion_point(target_number, position)
    numbers = [
        s.number
        for s in slots
        if s.page_number <= target_page_number and s.question_id != exclude_id
    ]
    return max(numbers, default=0) + 1

def plan_question_move(
    slots: Sequence[QuestionSlot],
    source_number: int,
    target_page_number: int,
    target_number: Optional[int] = None,
    position: Optional[Position] = None,
    source_id: Optional[int] = None,
) -> Placement:
    insertion = resolve_insertion(slots, target_page_number, target_number, position, exclude_id=source_id)
    return plan_move_to(source_number, insertion, 1)

def plan_question_copy(
    slots: Sequence[QuestionSlot],
    target_page_number: int,
    target_number: Optional[int] = None,
    position: Optional[Position] = None,
) -> Placement:
    return plan_insert_at(resolve_insertion(slots, target_page_number, target_number, position), 1)

def question_template(question: Question) -> QuestionTemplate:
    return QuestionTemplate(
        type=question.type,
        description=question.description,
        required=question.required,
        randomize=question.randomize,
        options=tuple((o.description, o.number) for o in question.options),
    )

def template_from_data(data: QuestionCreateData) -> QuestionTemplate:
    options = ()
    if data.options:
        options = tuple((o.description, o.number) for o in data.options)
    return QuestionTemplate(
        type=data.type.value,
        description=data.description,
        required=data.required,
        randomize=data.randomize,
        options=options,
    )

def build_question(template: QuestionTemplate, survey_id: int, page_id: int, number: int) -> Question:
    return Question(
        survey_id=survey_id,
        page_id=page_id,
        number=number,
        type=template.type,
        description=template.description,
        required=template.required,
        randomize=template.randomize,
        options=[QuestionOption(description=d, number=n) for d, n in template.options],
    )

async def load_slots(db: AsyncSession, survey_id: int) -> list[QuestionSlot]:
    rows = await db.execute(
        select(Question.id, SurveyPage.number, Question.number)
        .join(SurveyPage, SurveyPage.id == Question.page_id)
        .where(Question.survey_id == survey_id)
        .order_by(Question.number)
    )
    return [QuestionSlot(question_id=qid, page_number=pn, number=n) for qid, pn, n in rows.all()]

async def delete_question_rows(db: AsyncSession, question_ids: Iterable[int]) -> None:
    """Delete questions and everything hanging off them, children first."""
    question_ids = list(question_ids)
    if not question_ids:
        return
    await db.execute(delete(QuestionAnswer).where(QuestionAnswer.question_id.in_(question_ids)))
    await db.execute(delete(QuestionResponse).where(QuestionResponse.question_id.in_(question_ids)))
    await db.execute(delete(QuestionOption).where(QuestionOption.question_id.in_(question_ids)))
    await db.execute(delete(Question).where(Question.id.in_(question_ids)))

async def _get_survey_question(db: AsyncSession, survey_id: int, question_id: int) -> Question:
    question = assert_question_exists(await db.get(Question, question_id))
    assert_question_belongs_to_survey(question, survey_id)
    return question

async def _page_question_numbers(db: AsyncSession, page_id: int) -> list[int]:
    rows = await db.execute(select(Question.number).where(Question.page_id == page_id).order_by(Question.number))
    return list(rows.scalars().all())

async def _reload(db: AsyncSession, question_id: int) -> Question:
    stmt = select(Question).where(Question.id == question_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one()

async def _resolve_target(
    db: AsyncSession,
    survey_id: int,
    page_id: int,
    target_question_id: Optional[int],
) -> tuple[SurveyPage, Optional[Question]]:
    page = await get_survey_page(db, survey_id, page_id)
    target = None
    if target_question_id is not None:
        target = await _get_survey_question(db, survey_id, target_question_id)
        assert_question_on_page(target, page)
    return page, target

async def add_question(
    db: AsyncSession,
    survey_id: int,
    user_id: str,
    page_id: int,
    data: QuestionCreateData,
) -> Question:
    async with serializable_transaction(db):
        await get_owned_survey(db, survey_id, user_id)
        page = await get_survey_page(db, survey_id, page_id)
        page_numbers = await _page_question_numbers(db, page.id)
        assert_max_questions_not_exceeded(len(page_numbers))
        prior_last = None
        if not page_numbers:
            prior_last = await db.scalar(
                select(func.max(Question.number))
                .join(SurveyPage, SurveyPage.id == Question.page_id)
                .where(Question.survey_id == survey_id, SurveyPage.number < page.number)
            )

        plan = plan_add_question(page_numbers, prior_last)
        await shift_questions(db, survey_id, plan.shifts)
        question = build_question(template_from_data(data), survey_id, page.id, plan.number)
        db.add(question)
        await db.flush()
        await touch_survey(db, survey_id)
        question = await _reload(db, question.id)
    logger.info("added question=%s survey=%s page=%s number=%s", question.id, survey_id, page.id, question.number)
    return question

async def _delete_answers_for_options(db: AsyncSession, option_ids: Iterable[int]) -> None:
    option_ids = list(option_ids)
    if option_ids:
        await db.execute(delete(QuestionAnswer).where(QuestionAnswer.question_option_id.in_(option_ids)))

def _reconcile_options(question: Question, incoming: Sequence[OptionIn]) -> list[int]:
    """Update ``question.options`` in place; returns ids of options to drop."""
    existing = {o.id: o for o in question.options}
    keep_ids = {o.id for o in incoming if o.id is not None}
    unknown = keep_ids - existing.keys()
    if unknown:
        raise AppError(ErrorKind.BAD_REQUEST, "Invalid inputs.")

    options = []
    for item in incoming:
        if item.id is None:
            options.append(QuestionOption(description=item.description, number=item.number))
            continue
        option = existing[item.id]
        option.description = item.description
        option.number = item.number
        options.append(option)
    dropped = [oid for oid in existing if oid not in keep_ids]
    question.options = options
    return dropped

async def update_question(db: AsyncSession, survey_id: int, user_id: str, data: QuestionUpdateData) -> Question:
    async with serializable_transaction(db):
        await get_owned_survey(db, survey_id, user_id)
        question = await _get_survey_question(db, survey_id, data.id)

        question.description = data.description
        question.type = data.type.value
        question.required = data.required
        if data.type.has_options:
            question.randomize = data.randomize
            dropped = _reconcile_options(question, data.options)
        else:
            question.randomize = None
            dropped = [o.id for o in question.options]
            question.options = []
        # answers pointing at a dropped option go first
        await _delete_answers_for_options(db, dropped)
        await db.flush()
        await touch_survey(db, survey_id)
        question = await _reload(db, question.id)
    logger.info("updated question=%s survey=%s dropped options=%s", question.id, survey_id, dropped)
    return question

async def delete_question(db: AsyncSession, survey_id: int, user_id: str, question_id: int) -> QuestionOut:
    async with serializable_transaction(db):
        await get_owned_survey(db, survey_id, user_id)
        question = await _get_survey_question(db, survey_id, question_id)
        prior = QuestionOut.model_validate(question)

        plan = plan_remove(question.number, 1)
        await delete_question_rows(db, [question.id])
        await shift_questions(db, survey_id, plan.shifts)
        await touch_survey(db, survey_id)
    logger.info("deleted question=%s survey=%s number=%s", question_id, survey_id, prior.number)
    return prior

async def move_question(
    db: AsyncSession,
    survey_id: int,
    user_id: str,
    question_id: int,
    page_id: int,
    target_question_id: Optional[int] = None,
    position: Optional[Position] = None,
) -> Question:
    async with serializable_transaction(db):
        await get_owned_survey(db, survey_id, user_id)
        source = await _get_survey_question(db, survey_id, question_id)
        page, target = await _resolve_target(db, survey_id, page_id, target_question_id)
        if page.id != source.page_id:
            assert_max_questions_not_exceeded(len(await _page_question_numbers(db, page.id)))
        slots = await load_slots(db, survey_id)

        old_number = source.number
        plan = plan_question_move(
            slots,
            source.number,
            page.number,
            target.number if target is not None else None,
            position,
            source_id=source.id,
        )
        await shift_questions(db, survey_id, plan.shifts, exclude_ids=[source.id])
        source.number = plan.number
        source.page_id = page.id
        await db.flush()
        await touch_survey(db, survey_id)
        source = await _reload(db, source.id)
    logger.info(
        "moved question=%s survey=%s from %s to %s page=%s",
        source.id, survey_id, old_number, source.number, page.id,
    )
    return source

async def copy_question(
    db: AsyncSession,
    survey_id: int,
    user_id: str,
    question_id: int,
    page_id: int,
    target_question_id: Optional[int] = None,
    position: Optional[Position] = None,
) -> Question:
    async with serializable_transaction(db):
        await get_owned_survey(db, survey_id, user_id)
        source = await _get_survey_question(db, survey_id, question_id)
        page, target = await _resolve_target(db, survey_id, page_id, target_question_id)
        assert_max_questions_not_exceeded(len(await _page_question_numbers(db, page.id)))
        slots = await load_slots(db, survey_id)

        template = question_template(source)
        plan = plan_question_copy(slots, page.number, target.number if target is not None else None, position)
        await shift_questions(db, survey_id, plan.shifts)
        question = build_question(template, survey_id, page.id, plan.number)
        db.add(question)
        await db.flush()
        await touch_survey(db, survey_id)
        question = await _reload(db, question.id)
    logger.info("copied question=%s survey=%s to question=%s number=%s", question_id, survey_id, question.id, question.number)
    return question
