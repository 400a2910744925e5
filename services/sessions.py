"""Helpers for starting and loading interview sessions."""
from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Optional

from observability.logger import log_event
from services.errors import NotFoundError, persistence_errors
from storage.candidates import fetch_candidate
from storage.catalog import fetch_position, position_topic_ids
from storage.sessions import SessionRecord, fetch_session, insert_session
from storage.sqlite import get_conn


def _load(conn: sqlite3.Connection, session_id: int) -> SessionRecord:
    session = fetch_session(conn, session_id)
    if session is None:
        raise NotFoundError("Interview session not found.")
    return session


def start_session(
    candidate_id: str,
    position_id: int,
    *,
    mock: bool,
    now: Optional[datetime] = None,
) -> SessionRecord:
    """Create a new session for ``candidate_id`` on ``position_id``.

    The session is pinned to the first topic linked to the position; a
    position without topics cannot be interviewed on.
    """

    started_at = now or datetime.now()
    with persistence_errors("An error occurred while starting the interview."), get_conn() as conn:
        if fetch_candidate(conn, candidate_id) is None:
            raise NotFoundError("User not found.")
        if fetch_position(conn, position_id, with_questions=False) is None:
            raise NotFoundError("Position not found.")
        topic_ids = position_topic_ids(conn, position_id)
        if not topic_ids:
            raise NotFoundError("No topics available for this position.")
        session_id = insert_session(
            conn,
            candidate_id=candidate_id,
            position_id=position_id,
            topic_id=topic_ids[0],
            is_mock=mock,
            started_at=started_at,
        )
        session = _load(conn, session_id)
    log_event(
        "session_started",
        session.id,
        candidate_id=candidate_id,
        position_id=position_id,
        mock=mock,
    )
    return session


def load_session(session_id: int) -> SessionRecord:
    """Load a session or raise ``NotFoundError``."""

    with persistence_errors("An error occurred while loading the interview."), get_conn() as conn:
        return _load(conn, session_id)


__all__ = ["start_session", "load_session"]
