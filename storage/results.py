"""Persistence helpers for final interview results."""
from __future__ import annotations

import sqlite3
from typing import Optional

from pydantic import BaseModel, Field


class ResultPayload(BaseModel):
    candidate_id: str
    session_id: int
    final_score: int = Field(ge=0, le=100)
    feedback: Optional[str] = Field(default=None, max_length=500)


class ResultRecord(ResultPayload):
    id: int


def upsert_result(conn: sqlite3.Connection, **data) -> int:
    """Insert the result for a session, replacing score and feedback if present."""

    payload = ResultPayload(**data)
    conn.execute(
        """INSERT INTO results (candidate_id, session_id, final_score, feedback)
           VALUES (?, ?, ?, ?)
           ON CONFLICT(session_id) DO UPDATE SET
             final_score = excluded.final_score,
             feedback = excluded.feedback""",
        (payload.candidate_id, payload.session_id, payload.final_score, payload.feedback),
    )
    row = conn.execute("SELECT id FROM results WHERE session_id = ?", (payload.session_id,)).fetchone()
    return int(row["id"])


def fetch_result_for_session(conn: sqlite3.Connection, session_id: int) -> Optional[ResultRecord]:
    row = conn.execute(
        "SELECT id, candidate_id, session_id, final_score, feedback FROM results WHERE session_id = ?",
        (session_id,),
    ).fetchone()
    return ResultRecord(**dict(row)) if row else None


def fetch_result_for_position(conn: sqlite3.Connection, candidate_id: str, position_id: int) -> Optional[ResultRecord]:
    """First recorded result of a candidate across sessions for a position."""

    row = conn.execute(
        """SELECT r.id, r.candidate_id, r.session_id, r.final_score, r.feedback
           FROM results r
           JOIN interview_sessions s ON s.id = r.session_id
           WHERE r.candidate_id = ? AND s.position_id = ?
           ORDER BY r.id
           LIMIT 1""",
        (candidate_id, position_id),
    ).fetchone()
    return ResultRecord(**dict(row)) if row else None


__all__ = [
    "ResultPayload",
    "ResultRecord",
    "upsert_result",
    "fetch_result_for_session",
    "fetch_result_for_position",
]
