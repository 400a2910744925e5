"""Content catalog management: positions, topics, questions and answers."""
from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from services.errors import NotFoundError, ValidationFailedError, persistence_errors
from storage import catalog as store
from storage.catalog import AnswerRecord, Difficulty, PositionRecord, QuestionRecord, TopicRecord
from storage.sqlite import get_conn

logger = logging.getLogger(__name__)

DIFFICULTIES = ("Easy", "Medium", "Hard")


class AnswerDraft(BaseModel):  # Answer as entered by HR staff
    id: int = 0
    text: str = ""
    is_correct: bool = False


class QuestionDraft(BaseModel):  # Question as entered by HR staff
    id: int = 0
    text: str = ""
    difficulty: str = "Easy"
    answers: List[AnswerDraft] = Field(default_factory=list)


def _difficulty(value: object) -> Difficulty:
    """Map free-form input to a difficulty level, defaulting to Easy."""

    if isinstance(value, int) and 0 <= value < len(DIFFICULTIES):
        return DIFFICULTIES[value]  # type: ignore[return-value]
    text = str(value or "").strip().capitalize()
    return text if text in DIFFICULTIES else "Easy"  # type: ignore[return-value]


def _require_name(name: Optional[str], label: str, limit: int = 100) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationFailedError(f"{label} name is required.")
    if len(cleaned) > limit:
        raise ValidationFailedError(f"{label} name cannot exceed {limit} characters.")
    return cleaned


def _clean_questions(drafts: Sequence[QuestionDraft]) -> List[QuestionDraft]:
    """Drop blank entries and check every kept question has a correct answer."""

    if not drafts:
        raise ValidationFailedError("At least one question is required.")

    cleaned: List[QuestionDraft] = []
    for draft in drafts:
        text = draft.text.strip()
        if not text:
            continue
        if len(text) > 500:
            raise ValidationFailedError("Question text cannot exceed 500 characters.")
        answers = [
            AnswerDraft(id=answer.id, text=answer.text.strip(), is_correct=answer.is_correct)
            for answer in draft.answers
            if answer.text.strip()
        ]
        if any(len(answer.text) > 250 for answer in answers):
            raise ValidationFailedError("Answer text cannot exceed 250 characters.")
        if not answers:
            raise ValidationFailedError(f"Question '{text}' must have at least one answer.")
        if not any(answer.is_correct for answer in answers):
            raise ValidationFailedError(f"Question '{text}' must have at least one correct answer.")
        cleaned.append(
            QuestionDraft(id=draft.id, text=text, difficulty=_difficulty(draft.difficulty), answers=answers)
        )

    if not cleaned:
        raise ValidationFailedError("At least one valid question is required.")
    return cleaned


def _check_topics(conn: sqlite3.Connection, topic_ids: Sequence[int]) -> None:
    for topic_id in topic_ids:
        if not store.topic_exists(conn, topic_id):
            raise NotFoundError(f"Topic {topic_id} does not exist.")


def _load_position(conn: sqlite3.Connection, position_id: int, *, with_questions: bool = False) -> PositionRecord:
    position = store.fetch_position(conn, position_id, with_questions=with_questions)
    if position is None:
        raise NotFoundError("Position not found.")
    return position


def _load_topic(conn: sqlite3.Connection, topic_id: int) -> TopicRecord:
    topic = store.fetch_topic(conn, topic_id)
    if topic is None:
        logger.warning("Topic %s not found", topic_id)
        raise NotFoundError("Topic not found.")
    return topic


def _load_question(conn: sqlite3.Connection, question_id: int) -> QuestionRecord:
    question = store.fetch_question(conn, question_id)
    if question is None:
        logger.warning("Question %s not found", question_id)
        raise NotFoundError("Question not found.")
    return question


def _load_answer(conn: sqlite3.Connection, answer_id: int) -> AnswerRecord:
    answer = store.fetch_answer(conn, answer_id)
    if answer is None:
        logger.warning("Answer %s not found", answer_id)
        raise NotFoundError("Answer not found.")
    return answer


# ----------------------------------------------------------------------
# Positions
# ----------------------------------------------------------------------
def create_position(name: str, topic_ids: Sequence[int] = ()) -> PositionRecord:
    cleaned = _require_name(name, "Position")
    with persistence_errors("An error occurred while creating the position."), get_conn() as conn:
        _check_topics(conn, topic_ids)
        position_id = store.insert_position(conn, name=cleaned)
        store.link_position_topic_many(conn, position_id, topic_ids)
        return _load_position(conn, position_id)


def edit_position(position_id: int, name: str, topic_ids: Sequence[int]) -> PositionRecord:
    """Rename a position and replace its topic links."""

    cleaned = _require_name(name, "Position")
    with persistence_errors("An error occurred while updating the position."), get_conn() as conn:
        existing = _load_position(conn, position_id)
        _check_topics(conn, topic_ids)
        store.update_position(conn, position_id, name=cleaned, is_active=existing.is_active)
        store.replace_position_topics(conn, position_id, topic_ids)
        return _load_position(conn, position_id)


def set_position_active(position_id: int, active: bool) -> PositionRecord:
    with persistence_errors("An error occurred while updating the position."), get_conn() as conn:
        _load_position(conn, position_id)
        store.set_position_active(conn, position_id, active)
        return _load_position(conn, position_id)


def get_position(position_id: int) -> PositionRecord:
    with persistence_errors("An error occurred while loading the position."), get_conn() as conn:
        return _load_position(conn, position_id, with_questions=True)


def list_positions(active_only: bool = False) -> List[PositionRecord]:
    with persistence_errors("An error occurred while loading positions."), get_conn() as conn:
        return store.list_positions(conn, active_only=active_only)


# ----------------------------------------------------------------------
# Topics
# ----------------------------------------------------------------------
def _insert_question_tree(conn: sqlite3.Connection, topic_id: int, draft: QuestionDraft) -> None:
    question_id = store.insert_question(
        conn, topic_id=topic_id, text=draft.text, difficulty=draft.difficulty
    )
    for answer in draft.answers:
        store.insert_answer(conn, question_id=question_id, text=answer.text, is_correct=answer.is_correct)


def create_topic(
    name: str,
    position_id: int,
    questions: Sequence[QuestionDraft],
    description: str = "",
) -> TopicRecord:
    """Create a topic with its questions and link it to ``position_id``."""

    cleaned_name = _require_name(name, "Topic")
    if len(description) > 500:
        raise ValidationFailedError("Topic description cannot exceed 500 characters.")
    drafts = _clean_questions(questions)
    with persistence_errors("An error occurred while creating the topic."), get_conn() as conn:
        if store.fetch_position(conn, position_id, with_questions=False) is None:
            logger.warning("create_topic: position %s not found", position_id)
            raise NotFoundError("Selected position does not exist.")
        topic_id = store.insert_topic(conn, name=cleaned_name, description=description.strip())
        for draft in drafts:
            _insert_question_tree(conn, topic_id, draft)
        store.link_position_topic_many(conn, position_id, [topic_id])
        return _load_topic(conn, topic_id)


def _sync_answers(conn: sqlite3.Connection, question: QuestionRecord, drafts: Sequence[AnswerDraft]) -> None:
    known = {answer.id for answer in question.answers}
    kept: set[int] = set()
    for draft in drafts:
        if draft.id and draft.id in known:
            store.update_answer(conn, draft.id, text=draft.text, is_correct=draft.is_correct)
            kept.add(draft.id)
        else:
            store.insert_answer(conn, question_id=question.id, text=draft.text, is_correct=draft.is_correct)
    for answer_id in known - kept:
        store.delete_answer(conn, answer_id)


def edit_topic(
    topic_id: int,
    name: str,
    questions: Sequence[QuestionDraft],
    description: Optional[str] = None,
) -> TopicRecord:
    """Replace a topic's name and question set.

    Questions and answers carrying a known id are updated in place; those
    absent from ``questions`` are deleted; id 0 (or unknown) means new.
    """

    cleaned_name = _require_name(name, "Topic")
    drafts = _clean_questions(questions)
    with persistence_errors("An error occurred while updating the topic."), get_conn() as conn:
        topic = _load_topic(conn, topic_id)
        store.update_topic(
            conn,
            topic_id,
            name=cleaned_name,
            description=topic.description if description is None else description.strip(),
        )
        existing = {question.id: question for question in topic.questions}
        kept: set[int] = set()
        for draft in drafts:
            current = existing.get(draft.id) if draft.id else None
            if current is None:
                _insert_question_tree(conn, topic_id, draft)
                continue
            store.update_question(conn, current.id, text=draft.text, difficulty=_difficulty(draft.difficulty))
            _sync_answers(conn, current, draft.answers)
            kept.add(current.id)
        for question_id in set(existing) - kept:
            store.delete_question(conn, question_id)
        return _load_topic(conn, topic_id)


# ----------------------------------------------------------------------
# Questions and answers
# ----------------------------------------------------------------------
def update_question(question_id: int, text: str, difficulty: object = "Easy") -> QuestionRecord:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationFailedError("Question text cannot be empty.")
    with persistence_errors("An error occurred while updating the question."), get_conn() as conn:
        _load_question(conn, question_id)
        store.update_question(conn, question_id, text=cleaned, difficulty=_difficulty(difficulty))
        return _load_question(conn, question_id)


def delete_question(question_id: int) -> None:
    with persistence_errors("An error occurred while deleting the question."), get_conn() as conn:
        if not store.delete_question(conn, question_id):
            logger.warning("delete_question: question %s not found", question_id)
            raise NotFoundError("Question not found.")


def _clean_answer_text(text: Optional[str]) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationFailedError("Answer text cannot be empty.")
    if len(cleaned) > 250:
        raise ValidationFailedError("Answer text cannot exceed 250 characters.")
    return cleaned


def add_answer(question_id: int, text: str, is_correct: bool = False) -> QuestionRecord:
    """Append an answer; a correct one replaces the question's current correct answer."""

    cleaned = _clean_answer_text(text)
    with persistence_errors("An error occurred while adding the answer."), get_conn() as conn:
        _load_question(conn, question_id)
        if is_correct:
            store.clear_correct_answers(conn, question_id)
        store.insert_answer(conn, question_id=question_id, text=cleaned, is_correct=is_correct)
        return _load_question(conn, question_id)


def update_answer(answer_id: int, text: str, is_correct: bool) -> QuestionRecord:
    """Edit an answer; marking it correct unmarks the question's other answers."""

    cleaned = _clean_answer_text(text)
    with persistence_errors("An error occurred while updating the answer."), get_conn() as conn:
        answer = _load_answer(conn, answer_id)
        if is_correct and not answer.is_correct:
            store.clear_correct_answers(conn, answer.question_id, keep_id=answer_id)
        store.update_answer(conn, answer_id, text=cleaned, is_correct=is_correct)
        return _load_question(conn, answer.question_id)


def delete_answer(answer_id: int) -> None:
    with persistence_errors("An error occurred while deleting the answer."), get_conn() as conn:
        if not store.delete_answer(conn, answer_id):
            logger.warning("delete_answer: answer %s not found", answer_id)
            raise NotFoundError("Answer not found.")


__all__ = [
    "AnswerDraft",
    "QuestionDraft",
    "create_position",
    "edit_position",
    "set_position_active",
    "get_position",
    "list_positions",
    "create_topic",
    "edit_topic",
    "update_question",
    "delete_question",
    "add_answer",
    "update_answer",
    "delete_answer",
]
