"""Question selection for interview sessions.

A session's question set is drawn once, at random, and then replayed from
the key-value store so page reloads never reshuffle it.
"""
from __future__ import annotations

import random
import sqlite3
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from config.settings import settings
from observability.logger import log_event
from services.errors import NotFoundError, ValidationFailedError, persistence_errors
from services.kv_store import KeyValueStore, questions_key
from storage.catalog import Difficulty, QuestionRecord, fetch_questions, position_topic_ids
from storage.sessions import (
    SessionRecord,
    fetch_presented_questions,
    fetch_session,
    mark_in_progress,
    replace_presented_questions,
)
from storage.sqlite import get_conn


class SessionScope(str, Enum):
    ALL_TOPICS_OF_POSITION = "all_topics"
    SINGLE_TOPIC = "single_topic"


class PresentedAnswer(BaseModel):
    id: int
    text: str
    is_correct: Optional[bool] = None  # only populated when answers are revealed


class PresentedQuestion(BaseModel):
    id: int
    topic_id: int
    text: str
    difficulty: Difficulty
    answers: List[PresentedAnswer] = Field(default_factory=list)


class SelectedQuestionSet(BaseModel):
    session_id: int
    is_mock: bool
    reveal_correct: bool
    replayed: bool = False
    questions: List[PresentedQuestion] = Field(default_factory=list)

    @property
    def question_ids(self) -> List[int]:
        return [question.id for question in self.questions]


def resolve_scope(scope: Optional[Union[SessionScope, str]] = None) -> SessionScope:
    return SessionScope(scope or settings.SESSION_SCOPE)


def eligible_questions(
    conn: sqlite3.Connection,
    session: SessionRecord,
    scope: Optional[Union[SessionScope, str]] = None,
) -> List[QuestionRecord]:
    """Return the pool a session draws from, in catalog order."""

    topic_ids = position_topic_ids(conn, session.position_id)
    if not topic_ids:
        raise NotFoundError("No topics available for this position.")
    if resolve_scope(scope) is SessionScope.SINGLE_TOPIC:
        topic_ids = [session.topic_id]
    return fetch_questions(conn, topic_ids)


def _present(question: QuestionRecord, reveal: bool) -> PresentedQuestion:
    return PresentedQuestion(
        id=question.id,
        topic_id=question.topic_id,
        text=question.text,
        difficulty=question.difficulty,
        answers=[
            PresentedAnswer(id=answer.id, text=answer.text, is_correct=answer.is_correct if reveal else None)
            for answer in question.answers
        ],
    )


def select_questions(
    session_id: int,
    kv: KeyValueStore,
    *,
    scope: Optional[Union[SessionScope, str]] = None,
    limit: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> SelectedQuestionSet:
    """Return the stable question set for ``session_id``.

    The first call shuffles the eligible pool and stores the first ``limit``
    ids under the session key; later calls load exactly those questions in
    the stored order. A completed session replays the set recorded for it
    and writes nothing. An empty pool yields an empty set and stores nothing.
    """

    if limit is not None and limit < 1:
        raise ValidationFailedError("At least one question must be selected.")
    size = settings.QUESTIONS_PER_SESSION if limit is None else limit

    with persistence_errors("An error occurred while loading the interview questions."), get_conn() as conn:
        session = fetch_session(conn, session_id)
        if session is None:
            raise NotFoundError("Interview session not found.")
        pool = eligible_questions(conn, session, scope)
        recorded = fetch_presented_questions(conn, session_id) if session.is_completed else None

    key = questions_key(session_id)
    stored = recorded if recorded is not None else kv.get(key)
    replayed = stored is not None
    if replayed:
        by_id = {question.id: question for question in pool}
        chosen = [by_id[int(qid)] for qid in stored if int(qid) in by_id]
    else:
        shuffled = list(pool)
        (rng or random).shuffle(shuffled)
        chosen = shuffled[:size]

    if chosen and not session.is_completed:
        with persistence_errors("An error occurred while saving the interview questions."), get_conn() as conn:
            if not replayed:
                replace_presented_questions(conn, session_id, [question.id for question in chosen])
            mark_in_progress(conn, session_id)
        if not replayed:
            kv.set(key, [question.id for question in chosen])

    log_event(
        "questions_replayed" if replayed else "questions_selected",
        session_id,
        count=len(chosen),
        mock=session.is_mock,
    )
    return SelectedQuestionSet(
        session_id=session_id,
        is_mock=session.is_mock,
        reveal_correct=session.is_mock,
        replayed=replayed,
        questions=[_present(question, session.is_mock) for question in chosen],
    )


__all__ = [
    "SessionScope",
    "PresentedAnswer",
    "PresentedQuestion",
    "SelectedQuestionSet",
    "resolve_scope",
    "eligible_questions",
    "select_questions",
]
