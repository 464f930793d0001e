import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from surveyco.core.db import serializable_transaction
from surveyco.core.errors import AppError, ErrorKind
from surveyco.models import (
    Collector,
    Question,
    QuestionAnswer,
    QuestionResponse,
    QuestionType,
    ResponseStatus,
    Survey,
    SurveyPage,
    SurveyResponse,
)
from surveyco.schemas.response import QuestionResponseIn, SurveyResponseSave
from surveyco.schemas.question import QuestionOut
from surveyco.services.shifts import utcnow
from surveyco.services.surveys import get_owned_survey, get_survey_page
from surveyco.services.validators import (
    assert_collector_belongs_to_survey,
    assert_collector_exists,
    assert_collector_is_open,
    assert_survey_exists,
)
from surveyco.utils.user_agent import parse_user_agent

logger = logging.getLogger(__name__)

TEXT_ANSWERS_SHOWN = 20
RESPONSE_VOLUME_DAYS = 10

def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def assert_survey_not_changed(survey: Survey, started_at: datetime) -> None:
    if survey.updated_at is not None and _as_utc(survey.updated_at) > _as_utc(started_at):
        raise AppError(ErrorKind.CONFLICT, "Survey has been updated. Please start again.")

def _invalid(message: str = "Invalid inputs.") -> AppError:
    return AppError(ErrorKind.BAD_REQUEST, message)

def _option_ids(values: Sequence[str], allowed: set[int]) -> list[int]:
    ids = []
    for raw in values:
        try:
            option_id = int(raw)
        except (TypeError, ValueError):
            raise _invalid()
        if option_id not in allowed:
            raise _invalid()
        ids.append(option_id)
    # one answer row per selected option
    return list(dict.fromkeys(ids))

def validate_page_answers(
    responses: Sequence[QuestionResponseIn],
    questions: Sequence[Question],
) -> dict[int, str | list[int]]:
    """Check submitted answers against the questions of one page.

    Returns the normalized non-empty answers keyed by question id: trimmed
    text for textbox questions, option ids for choice questions.
    """
    by_id = {q.id: q for q in questions}
    submitted: dict[int, QuestionResponseIn] = {}
    for item in responses:
        question = by_id.get(item.question_id)
        if question is None or item.question_id in submitted:
            raise _invalid()
        if item.question_type.value != question.type:
            raise _invalid()
        submitted[item.question_id] = item

    answers: dict[int, str | list[int]] = {}
    for question in questions:
        item = submitted.get(question.id)
        allowed = {o.id for o in question.options}
        if question.type == QuestionType.textbox.value:
            text = item.answer.strip() if item is not None else ""
            if text:
                answers[question.id] = text
        elif question.type == QuestionType.checkbox.value:
            ids = _option_ids(item.answer if item is not None else [], allowed)
            if ids:
                answers[question.id] = ids
        else:
            value = item.answer.strip() if item is not None else ""
            if value:
                answers[question.id] = _option_ids([value], allowed)
        if question.required and question.id not in answers:
            raise _invalid("Answer to a required question is missing.")
    return answers

async def _replace_page_answers(
    db: AsyncSession,
    response: SurveyResponse,
    questions: Sequence[Question],
    answers: dict[int, str | list[int]],
) -> None:
    question_ids = [q.id for q in questions]
    existing = select(QuestionResponse.id).where(
        QuestionResponse.survey_response_id == response.id,
        QuestionResponse.question_id.in_(question_ids),
    )
    await db.execute(delete(QuestionAnswer).where(QuestionAnswer.question_response_id.in_(existing)))
    await db.execute(
        delete(QuestionResponse).where(
            QuestionResponse.survey_response_id == response.id,
            QuestionResponse.question_id.in_(question_ids),
        )
    )
    for question_id, answer in answers.items():
        question_response = QuestionResponse(survey_response_id=response.id, question_id=question_id)
        if isinstance(answer, str):
            question_response.answers = [QuestionAnswer(question_id=question_id, text_answer=answer)]
        else:
            question_response.answers = [
                QuestionAnswer(question_id=question_id, question_option_id=option_id) for option_id in answer
            ]
        db.add(question_response)

async def _load_response(db: AsyncSession, response_id: int, survey_id: int, collector_id: int) -> SurveyResponse:
    response = await db.get(SurveyResponse, response_id)
    if response is None or response.survey_id != survey_id or response.collector_id != collector_id:
        raise AppError(ErrorKind.NOT_FOUND, "Resource not found.")
    if response.status == ResponseStatus.complete.value:
        raise AppError(ErrorKind.UNAUTHORIZED, "You have already completed this survey.")
    return response

async def save_survey_response(
    db: AsyncSession,
    survey_id: int,
    payload: SurveyResponseSave,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> dict:
    async with serializable_transaction(db):
        survey = assert_survey_exists(await db.get(Survey, survey_id))
        page = await get_survey_page(db, survey_id, payload.page_id)

        collector = None
        if not payload.is_preview:
            collector = assert_collector_exists(await db.get(Collector, payload.collector_id))
            assert_collector_belongs_to_survey(collector, survey_id)
            assert_collector_is_open(collector)

        assert_survey_not_changed(survey, payload.started_at)

        questions = (
            await db.execute(select(Question).where(Question.page_id == page.id).order_by(Question.number))
        ).scalars().all()
        answers = validate_page_answers(payload.question_responses, questions)

        page_count = await db.scalar(select(func.count(SurveyPage.id)).where(SurveyPage.survey_id == survey_id))
        status = ResponseStatus.complete if page.number == page_count else ResponseStatus.incomplete
        if payload.is_preview:
            return {"id": "preview", "status": status}

        if payload.response_id is not None:
            response = await _load_response(db, payload.response_id, survey_id, collector.id)
        else:
            agent = parse_user_agent(user_agent)
            response = SurveyResponse(
                survey_id=survey_id,
                collector_id=collector.id,
                status=status.value,
                ip_address=ip_address,
                device=agent.device,
                browser=agent.browser,
                os=agent.os,
            )
            db.add(response)
            await db.flush()

        await _replace_page_answers(db, response, questions, answers)
        response.status = status.value
    logger.info("saved response=%s survey=%s page=%s status=%s", response.id, survey_id, page.number, status.value)
    return {"id": response.id, "status": status}

async def list_survey_responses(db: AsyncSession, survey_id: int, user_id: str) -> list[SurveyResponse]:
    await get_owned_survey(db, survey_id, user_id)
    rows = await db.execute(
        select(SurveyResponse)
        .where(SurveyResponse.survey_id == survey_id)
        .order_by(SurveyResponse.updated_at.desc(), SurveyResponse.id.desc())
    )
    return list(rows.scalars().all())

async def _page_questions(db: AsyncSession, page_id: int) -> list[Question]:
    rows = await db.execute(select(Question).where(Question.page_id == page_id).order_by(Question.number))
    return list(rows.scalars().all())

async def question_results(db: AsyncSession, survey_id: int, questions: Sequence[Question]) -> list[dict]:
    """Answered/skipped counts per question, per-option counts for choice
    questions and the first answers of textbox questions."""
    question_ids = [q.id for q in questions]
    total = await db.scalar(select(func.count(SurveyResponse.id)).where(SurveyResponse.survey_id == survey_id))

    rows = await db.execute(
        select(QuestionResponse.question_id, func.count(QuestionResponse.id))
        .where(QuestionResponse.question_id.in_(question_ids))
        .group_by(QuestionResponse.question_id)
    )
    answered = {qid: n for qid, n in rows.all()}

    choice_ids = [q.id for q in questions if q.type != QuestionType.textbox.value]
    rows = await db.execute(
        select(QuestionAnswer.question_option_id, func.count(QuestionAnswer.id))
        .where(QuestionAnswer.question_id.in_(choice_ids), QuestionAnswer.question_option_id.is_not(None))
        .group_by(QuestionAnswer.question_option_id)
    )
    per_option = {oid: n for oid, n in rows.all()}

    results = []
    for q in questions:
        count = answered.get(q.id, 0)
        item = QuestionOut.model_validate(q).model_dump()
        item.update(answered_count=count, skipped_count=total - count)
        if q.type == QuestionType.textbox.value:
            texts = await db.execute(
                select(QuestionAnswer)
                .where(QuestionAnswer.question_id == q.id)
                .order_by(QuestionAnswer.created_at, QuestionAnswer.id)
                .limit(TEXT_ANSWERS_SHOWN)
            )
            item["answers"] = [
                {
                    "id": a.id,
                    "question_response_id": a.question_response_id,
                    "text": a.text_answer,
                    "updated_at": a.updated_at,
                }
                for a in texts.scalars().all()
            ]
        else:
            item["choices"] = [
                {"id": o.id, "description": o.description, "number": o.number, "answered_count": per_option.get(o.id, 0)}
                for o in q.options
            ]
        results.append(item)
    return results

async def get_page_question_results(db: AsyncSession, survey_id: int, user_id: str, page_id: int) -> list[dict]:
    await get_owned_survey(db, survey_id, user_id)
    page = await get_survey_page(db, survey_id, page_id)
    return await question_results(db, survey_id, await _page_questions(db, page.id))

async def get_question_results(db: AsyncSession, survey_id: int, user_id: str, question_ids: Sequence[int]) -> list[dict]:
    await get_owned_survey(db, survey_id, user_id)
    wanted = set(question_ids)
    rows = await db.execute(
        select(Question)
        .where(Question.survey_id == survey_id, Question.id.in_(list(wanted)))
        .order_by(Question.number)
    )
    questions = list(rows.scalars().all())
    if len(questions) != len(wanted):
        raise AppError(ErrorKind.BAD_REQUEST, "Question does not belong to this survey.")
    return await question_results(db, survey_id, questions)

async def get_response_volume(db: AsyncSession, survey_id: int, user_id: str, today: date | None = None) -> list[dict]:
    """Responses started per UTC day, from ten days ago through today."""
    await get_owned_survey(db, survey_id, user_id)
    today = today or utcnow().date()
    first = today - timedelta(days=RESPONSE_VOLUME_DAYS)
    since = datetime.combine(first, time.min, tzinfo=timezone.utc)

    day = func.date(SurveyResponse.created_at)
    rows = await db.execute(
        select(day, func.count(SurveyResponse.id))
        .where(SurveyResponse.survey_id == survey_id, SurveyResponse.created_at >= since)
        .group_by(day)
    )
    # sqlite returns the day as text, postgres as a date
    counts = {str(d): n for d, n in rows.all()}
    days = (first + timedelta(days=i) for i in range(RESPONSE_VOLUME_DAYS + 1))
    return [{"day": d.isoformat(), "response_count": counts.get(d.isoformat(), 0)} for d in days]

async def _survey_response(db: AsyncSession, survey_id: int, response_id: int) -> SurveyResponse:
    response = await db.get(SurveyResponse, response_id)
    if response is None or response.survey_id != survey_id:
        raise AppError(ErrorKind.NOT_FOUND, "Resource not found.")
    return response

async def get_survey_response(db: AsyncSession, survey_id: int, user_id: str, response_id: int) -> SurveyResponse:
    await get_owned_survey(db, survey_id, user_id)
    return await _survey_response(db, survey_id, response_id)

async def _page_response_data(db: AsyncSession, survey_id: int, page_id: int, response_id: int | None) -> dict:
    page = await get_survey_page(db, survey_id, page_id)
    questions = await _page_questions(db, page.id)
    question_responses = []
    if response_id is not None:
        rows = await db.execute(
            select(QuestionResponse)
            .join(Question, Question.id == QuestionResponse.question_id)
            .where(
                QuestionResponse.survey_response_id == response_id,
                QuestionResponse.question_id.in_([q.id for q in questions]),
            )
            .order_by(Question.number)
        )
        question_responses = list(rows.scalars().all())
    return {"questions": questions, "question_responses": question_responses}

async def get_survey_response_answers(
    db: AsyncSession,
    survey_id: int,
    user_id: str,
    response_id: int,
    page_id: int,
) -> dict:
    await get_owned_survey(db, survey_id, user_id)
    await _survey_response(db, survey_id, response_id)
    return await _page_response_data(db, survey_id, page_id, response_id)

async def get_responder_page_data(db: AsyncSession, survey_id: int, page_id: int, response_id: int | None = None) -> dict:
    """Questions of one page plus what the responder already saved on it."""
    assert_survey_exists(await db.get(Survey, survey_id))
    if response_id is not None:
        response = await _survey_response(db, survey_id, response_id)
        if response.status == ResponseStatus.complete.value:
            raise AppError(ErrorKind.UNAUTHORIZED, "You have already completed this survey.")
    return await _page_response_data(db, survey_id, page_id, response_id)
