"""Submission scoring and the per-session results view."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from config.settings import settings
from observability.logger import log_event
from services.errors import NotFoundError, PersistenceFailedError, ValidationFailedError, persistence_errors
from services.kv_store import KeyValueStore, correct_key, questions_key, total_key
from services.selector import SessionScope, eligible_questions
from storage.catalog import QuestionRecord, fetch_question
from storage.sessions import (
    SessionRecord,
    UserAnswerPayload,
    count_correct_answers,
    delete_user_answers,
    fetch_presented_questions,
    fetch_session,
    insert_user_answers,
    mark_completed,
    replace_presented_questions,
)
from storage.sqlite import get_conn

logger = logging.getLogger(__name__)

INCOMPLETE_MESSAGE = "Please answer all questions before submitting."
ALREADY_SUBMITTED_MESSAGE = "Interview already submitted."


class ResubmitPolicy(str, Enum):
    REJECT = "reject"
    OVERWRITE = "overwrite"


class SubmissionScore(BaseModel):
    session_id: int
    correct_count: int
    total_count: int
    is_mock: bool

    @property
    def percentage(self) -> float:
        return percent(self.correct_count, self.total_count)


class SessionResultView(BaseModel):
    session_id: int
    correct_count: int
    total_count: int
    percentage: float
    is_mock: bool
    reveal_correct: bool


def percent(correct: int, total: int) -> float:
    """Percentage in ``[0, 100]``; zero when nothing was answered."""

    if total <= 0:
        return 0.0
    return correct / total * 100


def _as_int(value: object) -> Optional[int]:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _normalise(answers: Optional[Mapping[object, object]]) -> Dict[int, Optional[int]]:
    """Coerce submitted keys/values to ints; malformed answer ids become None."""

    normalised: Dict[int, Optional[int]] = {}
    for raw_question, raw_answer in (answers or {}).items():
        question_id = _as_int(raw_question)
        if question_id is not None:
            normalised[question_id] = _as_int(raw_answer)
    return normalised


def _duration_seconds(started_at: str, completed_at: datetime) -> Optional[int]:
    try:
        started = datetime.fromisoformat(started_at)
    except ValueError:
        return None
    if (started.tzinfo is None) != (completed_at.tzinfo is None):
        started = started.replace(tzinfo=None)
        completed_at = completed_at.replace(tzinfo=None)
    return max(0, int((completed_at - started).total_seconds()))


def required_question_ids(
    conn: sqlite3.Connection,
    session: SessionRecord,
    kv: KeyValueStore,
    scope: Optional[Union[SessionScope, str]] = None,
) -> List[int]:
    """Ids the candidate must answer: the presented list, else the full pool."""

    stored = kv.get(questions_key(session.id))
    if stored:
        return [int(qid) for qid in stored]
    return [question.id for question in eligible_questions(conn, session, scope)]


def submit_answers(
    session_id: int,
    answers: Optional[Mapping[object, object]],
    kv: KeyValueStore,
    *,
    policy: Optional[Union[ResubmitPolicy, str]] = None,
    scope: Optional[Union[SessionScope, str]] = None,
    now: Optional[datetime] = None,
) -> SubmissionScore:
    """Validate, score and persist a full submission for ``session_id``.

    Real sessions write one answer row per required question in the same
    transaction that completes the session; mock sessions only leave the
    counts in ``kv`` for the results view. The required ids are recorded
    with the session so an overwrite answers the same set. Incomplete
    submissions change nothing.
    """

    resubmit = ResubmitPolicy(policy or settings.RESUBMIT_POLICY)
    submitted = _normalise(answers)

    with persistence_errors("An error occurred while loading the interview."), get_conn() as conn:
        session = fetch_session(conn, session_id)
        if session is None:
            logger.warning("Interview session not found during submission: %s", session_id)
            raise NotFoundError("Interview session not found.")
        if session.is_completed and resubmit is ResubmitPolicy.REJECT:
            log_event("submission_rejected", session_id, reason="already_completed")
            raise ValidationFailedError(ALREADY_SUBMITTED_MESSAGE)
        if session.is_completed:
            # Overwrites answer the set recorded for the first submission
            required = fetch_presented_questions(conn, session_id) or required_question_ids(conn, session, kv, scope)
        else:
            required = required_question_ids(conn, session, kv, scope)
        questions: Dict[int, Optional[QuestionRecord]] = {
            question_id: fetch_question(conn, question_id) for question_id in required
        }

    missing = [question_id for question_id in required if question_id not in submitted]
    if not required or missing:
        log_event("submission_rejected", session_id, reason="incomplete", count=len(missing))
        raise ValidationFailedError(INCOMPLETE_MESSAGE)

    answered_at = now or datetime.now()
    correct = 0
    rows: List[UserAnswerPayload] = []
    for question_id in required:
        question = questions[question_id]
        if question is None:
            continue
        chosen = next((answer for answer in question.answers if answer.id == submitted[question_id]), None)
        if chosen is not None and chosen.is_correct:
            correct += 1
        if not session.is_mock:
            rows.append(
                UserAnswerPayload(
                    session_id=session_id,
                    candidate_id=session.candidate_id,
                    question_id=question_id,
                    answer_id=chosen.id if chosen else None,
                    answered_at=answered_at.isoformat(),
                )
            )

    try:
        with get_conn() as conn:
            completed = mark_completed(
                conn,
                session_id,
                completed_at=answered_at,
                duration_seconds=_duration_seconds(session.started_at, answered_at),
            )
            if not completed:
                if resubmit is ResubmitPolicy.REJECT:
                    raise ValidationFailedError(ALREADY_SUBMITTED_MESSAGE)
                delete_user_answers(conn, session_id)
            replace_presented_questions(conn, session_id, required)
            if rows:
                insert_user_answers(conn, rows)
    except sqlite3.Error as exc:
        logger.exception("Error submitting interview %s", session_id)
        raise PersistenceFailedError("An error occurred while processing your answers.") from exc

    total = len(required)
    if session.is_mock:
        kv.set(correct_key(session_id), correct)
        kv.set(total_key(session_id), total)
    kv.remove(questions_key(session_id))

    log_event(
        "submission_scored",
        session_id,
        mock=session.is_mock,
        correct=correct,
        total=total,
        outcome="overwritten" if session.is_completed else "completed",
    )
    return SubmissionScore(
        session_id=session_id,
        correct_count=correct,
        total_count=total,
        is_mock=session.is_mock,
    )


def session_results(session_id: int, kv: KeyValueStore) -> SessionResultView:
    """Counts for the results page.

    Real sessions are counted from their stored answers. Mock sessions read
    the cached counts once and discard them.
    """

    with persistence_errors("An error occurred while loading the interview results."), get_conn() as conn:
        session = fetch_session(conn, session_id)
        if session is None:
            logger.warning("Interview session not found for results: %s", session_id)
            raise NotFoundError("Interview session not found.")
        if not session.is_mock:
            correct, total = count_correct_answers(conn, session_id)

    if session.is_mock:
        cached_correct = kv.get(correct_key(session_id))
        cached_total = kv.get(total_key(session_id))
        kv.remove(correct_key(session_id))
        kv.remove(total_key(session_id))
        if cached_correct is not None and cached_total is not None:
            correct, total = int(cached_correct), int(cached_total)
        else:
            correct, total = 0, 0

    return SessionResultView(
        session_id=session_id,
        correct_count=correct,
        total_count=total,
        percentage=percent(correct, total),
        is_mock=session.is_mock,
        reveal_correct=session.is_mock,
    )


__all__ = [
    "ResubmitPolicy",
    "SubmissionScore",
    "SessionResultView",
    "percent",
    "required_question_ids",
    "submit_answers",
    "session_results",
]
