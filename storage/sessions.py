"""Persistence helpers for interview sessions and candidate answers."""
from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Iterable, List, Literal, Optional

from pydantic import BaseModel

SessionStatus = Literal["created", "in_progress", "completed"]

class SessionRecord(BaseModel):
    id: int
    candidate_id: str
    position_id: int
    topic_id: int
    is_mock: bool
    status: SessionStatus
    started_at: str
    completed_at: Optional[str] = None
    duration_seconds: Optional[int] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

class UserAnswerPayload(BaseModel):
    session_id: int
    candidate_id: str
    question_id: int
    answer_id: Optional[int] = None
    answered_at: str

class UserAnswerRecord(UserAnswerPayload):
    id: int

class ScoredAnswerRow(BaseModel):  # Answer joined with its topic and correctness
    session_id: int
    question_id: int
    topic_id: int
    is_correct: bool

_SESSION_COLUMNS = (
    "id, candidate_id, position_id, topic_id, is_mock, status, started_at, completed_at, duration_seconds"
)

def _session_from_row(row: sqlite3.Row) -> SessionRecord:
    return SessionRecord(
        id=row["id"],
        candidate_id=row["candidate_id"],
        position_id=row["position_id"],
        topic_id=row["topic_id"],
        is_mock=bool(row["is_mock"]),
        status=row["status"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        duration_seconds=row["duration_seconds"],
    )

def insert_session(
    conn: sqlite3.Connection,
    *,
    candidate_id: str,
    position_id: int,
    topic_id: int,
    is_mock: bool,
    started_at: datetime,
) -> int:
    cur = conn.execute(
        """INSERT INTO interview_sessions
           (candidate_id, position_id, topic_id, is_mock, status, started_at)
           VALUES (?, ?, ?, ?, 'created', ?)""",
        (candidate_id, position_id, topic_id, int(is_mock), started_at.isoformat()),
    )
    return int(cur.lastrowid)

def fetch_session(conn: sqlite3.Connection, session_id: int) -> Optional[SessionRecord]:
    row = conn.execute(
        f"SELECT {_SESSION_COLUMNS} FROM interview_sessions WHERE id = ?",
        (session_id,),
    ).fetchone()
    return _session_from_row(row) if row else None

def mark_in_progress(conn: sqlite3.Connection, session_id: int) -> bool:
    """Move a freshly created session to ``in_progress``; no-op otherwise."""

    cur = conn.execute(
        "UPDATE interview_sessions SET status = 'in_progress' WHERE id = ? AND status = 'created'",
        (session_id,),
    )
    return cur.rowcount > 0

def mark_completed(
    conn: sqlite3.Connection,
    session_id: int,
    *,
    completed_at: datetime,
    duration_seconds: Optional[int],
) -> bool:
    """Set the completion timestamp once; returns False when already completed."""

    cur = conn.execute(
        """UPDATE interview_sessions
           SET status = 'completed', completed_at = ?, duration_seconds = ?
           WHERE id = ? AND completed_at IS NULL""",
        (completed_at.isoformat(), duration_seconds, session_id),
    )
    return cur.rowcount > 0

def insert_user_answers(conn: sqlite3.Connection, rows: Iterable[UserAnswerPayload]) -> int:
    payloads = list(rows)
    conn.executemany(
        """INSERT INTO user_answers (session_id, candidate_id, question_id, answer_id, answered_at)
           VALUES (?, ?, ?, ?, ?)""",
        [
            (p.session_id, p.candidate_id, p.question_id, p.answer_id, p.answered_at)
            for p in payloads
        ],
    )
    return len(payloads)

def delete_user_answers(conn: sqlite3.Connection, session_id: int) -> int:
    cur = conn.execute("DELETE FROM user_answers WHERE session_id = ?", (session_id,))
    return cur.rowcount

def fetch_user_answers(conn: sqlite3.Connection, session_id: int) -> List[UserAnswerRecord]:
    rows = conn.execute(
        """SELECT id, session_id, candidate_id, question_id, answer_id, answered_at
           FROM user_answers WHERE session_id = ? ORDER BY id""",
        (session_id,),
    ).fetchall()
    return [UserAnswerRecord(**dict(row)) for row in rows]

def count_correct_answers(conn: sqlite3.Connection, session_id: int) -> tuple[int, int]:
    """Return ``(correct, total)`` over the stored answers of a session."""

    row = conn.execute(
        """SELECT COUNT(ua.id) AS total,
                  COALESCE(SUM(CASE WHEN a.is_correct = 1 THEN 1 ELSE 0 END), 0) AS correct
           FROM user_answers ua
           LEFT JOIN answers a ON a.id = ua.answer_id
           WHERE ua.session_id = ?""",
        (session_id,),
    ).fetchone()
    return int(row["correct"]), int(row["total"])

def completed_candidate_ids(conn: sqlite3.Connection, position_id: int) -> List[str]:
    """Distinct candidates with a completed real session, by first completion."""

    rows = conn.execute(
        """SELECT candidate_id, MIN(completed_at) AS first_done, MIN(id) AS first_id
           FROM interview_sessions
           WHERE position_id = ? AND completed_at IS NOT NULL AND is_mock = 0
           GROUP BY candidate_id
           ORDER BY first_done, first_id""",
        (position_id,),
    ).fetchall()
    return [row["candidate_id"] for row in rows]

def scored_answers_for(conn: sqlite3.Connection, candidate_id: str, position_id: int) -> List[ScoredAnswerRow]:
    """Answers a candidate gave in completed real sessions for a position."""

    rows = conn.execute(
        """SELECT ua.session_id, ua.question_id, q.topic_id,
                  COALESCE(a.is_correct, 0) AS is_correct
           FROM user_answers ua
           JOIN interview_sessions s ON s.id = ua.session_id
           JOIN questions q ON q.id = ua.question_id
           LEFT JOIN answers a ON a.id = ua.answer_id
           WHERE s.candidate_id = ? AND s.position_id = ?
             AND s.completed_at IS NOT NULL AND s.is_mock = 0
           ORDER BY ua.id""",
        (candidate_id, position_id),
    ).fetchall()
    return [
        ScoredAnswerRow(
            session_id=row["session_id"],
            question_id=row["question_id"],
            topic_id=row["topic_id"],
            is_correct=bool(row["is_correct"]),
        )
        for row in rows
    ]


def replace_presented_questions(conn: sqlite3.Connection, session_id: int, question_ids: Iterable[int]) -> None:
    """Record the ordered question ids shown for a session."""

    conn.execute("DELETE FROM session_questions WHERE session_id = ?", (session_id,))
    conn.executemany(
        "INSERT INTO session_questions (session_id, position, question_id) VALUES (?, ?, ?)",
        [(session_id, index, question_id) for index, question_id in enumerate(question_ids)],
    )


def fetch_presented_questions(conn: sqlite3.Connection, session_id: int) -> List[int]:
    rows = conn.execute(
        "SELECT question_id FROM session_questions WHERE session_id = ? ORDER BY position",
        (session_id,),
    ).fetchall()
    return [row["question_id"] for row in rows]


__all__ = [
    "SessionStatus",
    "SessionRecord",
    "UserAnswerPayload",
    "UserAnswerRecord",
    "ScoredAnswerRow",
    "insert_session",
    "fetch_session",
    "mark_in_progress",
    "mark_completed",
    "insert_user_answers",
    "delete_user_answers",
    "fetch_user_answers",
    "count_correct_answers",
    "completed_candidate_ids",
    "scored_answers_for",
    "replace_presented_questions",
    "fetch_presented_questions",
]
