"""Persistence helpers for positions, topics, questions and answers."""
from __future__ import annotations

import sqlite3
from typing import Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, Field

Difficulty = Literal["Easy", "Medium", "Hard"]

class AnswerRecord(BaseModel):
    id: int
    question_id: int
    text: str
    is_correct: bool


class QuestionRecord(BaseModel):
    id: int
    topic_id: int
    text: str
    difficulty: Difficulty = "Easy"
    answers: List[AnswerRecord] = Field(default_factory=list)

class TopicRecord(BaseModel):
    id: int
    name: str
    description: str = ""
    questions: List[QuestionRecord] = Field(default_factory=list)

class PositionRecord(BaseModel):
    id: int
    name: str
    is_active: bool = True
    topics: List[TopicRecord] = Field(default_factory=list)

class PositionPayload(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    is_active: bool = True

class TopicPayload(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)

class QuestionPayload(BaseModel):
    topic_id: int
    text: str = Field(min_length=1, max_length=500)
    difficulty: Difficulty = "Easy"

class AnswerPayload(BaseModel):
    question_id: int
    text: str = Field(min_length=1, max_length=250)
    is_correct: bool = False

# ----------------------------------------------------------------------
# Writes
# ----------------------------------------------------------------------
def insert_position(conn: sqlite3.Connection, **data) -> int:
    payload = PositionPayload(**data)
    cur = conn.execute(
        "INSERT INTO positions (name, is_active) VALUES (?, ?)",
        (payload.name, int(payload.is_active)),
    )
    return int(cur.lastrowid)

def update_position(conn: sqlite3.Connection, position_id: int, **data) -> None:
    payload = PositionPayload(**data)
    conn.execute(
        "UPDATE positions SET name = ?, is_active = ? WHERE id = ?",
        (payload.name, int(payload.is_active), position_id),
    )

def set_position_active(conn: sqlite3.Connection, position_id: int, active: bool) -> None:
    conn.execute("UPDATE positions SET is_active = ? WHERE id = ?", (int(active), position_id))

def replace_position_topics(conn: sqlite3.Connection, position_id: int, topic_ids: Iterable[int]) -> None:
    """Swap the topic links of ``position_id`` for ``topic_ids``."""

    conn.execute("DELETE FROM position_topics WHERE position_id = ?", (position_id,))
    link_position_topic_many(conn, position_id, topic_ids)

def link_position_topic_many(conn: sqlite3.Connection, position_id: int, topic_ids: Iterable[int]) -> None:
    conn.executemany(
        "INSERT OR IGNORE INTO position_topics (position_id, topic_id) VALUES (?, ?)",
        [(position_id, topic_id) for topic_id in dict.fromkeys(topic_ids)],
    )

def insert_topic(conn: sqlite3.Connection, **data) -> int:
    payload = TopicPayload(**data)
    cur = conn.execute(
        "INSERT INTO topics (name, description) VALUES (?, ?)",
        (payload.name, payload.description),
    )
    return int(cur.lastrowid)

def update_topic(conn: sqlite3.Connection, topic_id: int, **data) -> None:
    payload = TopicPayload(**data)
    conn.execute(
        "UPDATE topics SET name = ?, description = ? WHERE id = ?",
        (payload.name, payload.description, topic_id),
    )

def insert_question(conn: sqlite3.Connection, **data) -> int:
    payload = QuestionPayload(**data)
    cur = conn.execute(
        "INSERT INTO questions (topic_id, text, difficulty) VALUES (?, ?, ?)",
        (payload.topic_id, payload.text, payload.difficulty),
    )
    return int(cur.lastrowid)

def update_question(conn: sqlite3.Connection, question_id: int, *, text: str, difficulty: Difficulty) -> None:
    conn.execute(
        "UPDATE questions SET text = ?, difficulty = ? WHERE id = ?",
        (text, difficulty, question_id),
    )

def delete_question(conn: sqlite3.Connection, question_id: int) -> bool:
    cur = conn.execute("DELETE FROM questions WHERE id = ?", (question_id,))
    return cur.rowcount > 0

def insert_answer(conn: sqlite3.Connection, **data) -> int:
    payload = AnswerPayload(**data)
    cur = conn.execute(
        "INSERT INTO answers (question_id, text, is_correct) VALUES (?, ?, ?)",
        (payload.question_id, payload.text, int(payload.is_correct)),
    )
    return int(cur.lastrowid)

def update_answer(conn: sqlite3.Connection, answer_id: int, *, text: str, is_correct: bool) -> None:
    conn.execute(
        "UPDATE answers SET text = ?, is_correct = ? WHERE id = ?",
        (text, int(is_correct), answer_id),
    )

def delete_answer(conn: sqlite3.Connection, answer_id: int) -> bool:
    cur = conn.execute("DELETE FROM answers WHERE id = ?", (answer_id,))
    return cur.rowcount > 0


def clear_correct_answers(conn: sqlite3.Connection, question_id: int, *, keep_id: Optional[int] = None) -> None:
    """Unmark every correct answer of ``question_id`` except ``keep_id``."""

    conn.execute(
        "UPDATE answers SET is_correct = 0 WHERE question_id = ? AND id != ?",
        (question_id, keep_id if keep_id is not None else -1),
    )

# ----------------------------------------------------------------------
# Reads
# ----------------------------------------------------------------------
def _answers_for(conn: sqlite3.Connection, question_ids: List[int]) -> Dict[int, List[AnswerRecord]]:
    grouped: Dict[int, List[AnswerRecord]] = {qid: [] for qid in question_ids}
    if not question_ids:
        return grouped
    marks = ",".join("?" for _ in question_ids)
    rows = conn.execute(
        f"SELECT id, question_id, text, is_correct FROM answers WHERE question_id IN ({marks}) ORDER BY id",
        question_ids,
    ).fetchall()
    for row in rows:
        grouped[row["question_id"]].append(
            AnswerRecord(
                id=row["id"],
                question_id=row["question_id"],
                text=row["text"],
                is_correct=bool(row["is_correct"]),
            )
        )
    return grouped

def fetch_questions(conn: sqlite3.Connection, topic_ids: List[int]) -> List[QuestionRecord]:
    """Return questions of ``topic_ids`` with answers, ordered by topic order then id."""

    if not topic_ids:
        return []
    marks = ",".join("?" for _ in topic_ids)
    rows = conn.execute(
        f"SELECT id, topic_id, text, difficulty FROM questions WHERE topic_id IN ({marks}) ORDER BY id",
        topic_ids,
    ).fetchall()
    answers = _answers_for(conn, [row["id"] for row in rows])
    rank = {topic_id: index for index, topic_id in enumerate(topic_ids)}
    questions = [
        QuestionRecord(
            id=row["id"],
            topic_id=row["topic_id"],
            text=row["text"],
            difficulty=row["difficulty"],
            answers=answers[row["id"]],
        )
        for row in rows
    ]
    questions.sort(key=lambda question: rank[question.topic_id])
    return questions

def fetch_question(conn: sqlite3.Connection, question_id: int) -> Optional[QuestionRecord]:
    row = conn.execute(
        "SELECT id, topic_id, text, difficulty FROM questions WHERE id = ?",
        (question_id,),
    ).fetchone()
    if row is None:
        return None
    return QuestionRecord(
        id=row["id"],
        topic_id=row["topic_id"],
        text=row["text"],
        difficulty=row["difficulty"],
        answers=_answers_for(conn, [row["id"]])[row["id"]],
    )

def fetch_answer(conn: sqlite3.Connection, answer_id: int) -> Optional[AnswerRecord]:
    row = conn.execute(
        "SELECT id, question_id, text, is_correct FROM answers WHERE id = ?",
        (answer_id,),
    ).fetchone()
    if row is None:
        return None
    return AnswerRecord(
        id=row["id"],
        question_id=row["question_id"],
        text=row["text"],
        is_correct=bool(row["is_correct"]),
    )


def fetch_topic(conn: sqlite3.Connection, topic_id: int, *, with_questions: bool = True) -> Optional[TopicRecord]:
    row = conn.execute("SELECT id, name, description FROM topics WHERE id = ?", (topic_id,)).fetchone()
    if row is None:
        return None
    questions = fetch_questions(conn, [topic_id]) if with_questions else []
    return TopicRecord(id=row["id"], name=row["name"], description=row["description"], questions=questions)

def position_topic_ids(conn: sqlite3.Connection, position_id: int) -> List[int]:
    rows = conn.execute(
        "SELECT topic_id FROM position_topics WHERE position_id = ? ORDER BY rowid",
        (position_id,),
    ).fetchall()
    return [row["topic_id"] for row in rows]

def fetch_position(conn: sqlite3.Connection, position_id: int, *, with_questions: bool = True) -> Optional[PositionRecord]:
    """Load a position with its linked topics, optionally down to answers."""

    row = conn.execute("SELECT id, name, is_active FROM positions WHERE id = ?", (position_id,)).fetchone()
    if row is None:
        return None
    topics: List[TopicRecord] = []
    for topic_id in position_topic_ids(conn, position_id):
        topic = fetch_topic(conn, topic_id, with_questions=with_questions)
        if topic is not None:
            topics.append(topic)
    return PositionRecord(id=row["id"], name=row["name"], is_active=bool(row["is_active"]), topics=topics)

def list_positions(conn: sqlite3.Connection, *, active_only: bool = False) -> List[PositionRecord]:
    sql = "SELECT id FROM positions"
    if active_only:
        sql += " WHERE is_active = 1"
    sql += " ORDER BY id"
    positions: List[PositionRecord] = []
    for row in conn.execute(sql).fetchall():
        position = fetch_position(conn, row["id"], with_questions=False)
        if position is not None:
            positions.append(position)
    return positions

def topic_exists(conn: sqlite3.Connection, topic_id: int) -> bool:
    return conn.execute("SELECT 1 FROM topics WHERE id = ?", (topic_id,)).fetchone() is not None

__all__ = [
    "Difficulty",
    "AnswerRecord",
    "QuestionRecord",
    "TopicRecord",
    "PositionRecord",
    "insert_position",
    "update_position",
    "set_position_active",
    "replace_position_topics",
    "link_position_topic_many",
    "insert_topic",
    "update_topic",
    "insert_question",
    "update_question",
    "delete_question",
    "insert_answer",
    "update_answer",
    "delete_answer",
    "clear_correct_answers",
    "fetch_questions",
    "fetch_question",
    "fetch_answer",
    "fetch_topic",
    "fetch_position",
    "position_topic_ids",
    "list_positions",
    "topic_exists",
]
