"""Tests for the SQLite migration and write helpers."""
from __future__ import annotations

import os
import sqlite3
import tempfile
from datetime import datetime

import pytest
from pydantic import ValidationError

from config.settings import settings
from storage.candidates import delete_candidate, fetch_candidate_by_email, insert_candidate, list_candidates
from storage.candidates import set_role, update_candidate
from storage.catalog import fetch_position, insert_answer, insert_position, insert_question, insert_topic
from storage.catalog import link_position_topic_many
from storage.migrate import migrate
from storage.results import fetch_result_for_session, upsert_result
from storage.sessions import (
    UserAnswerPayload,
    count_correct_answers,
    fetch_presented_questions,
    insert_session,
    insert_user_answers,
    mark_completed,
    mark_in_progress,
    replace_presented_questions,
)
from storage.sqlite import get_conn


@pytest.fixture()
def temp_db(monkeypatch: pytest.MonkeyPatch):
    """Provide a fresh, unmigrated database path."""

    with tempfile.TemporaryDirectory() as td:
        db_path = os.path.join(td, "nested", "test.db")
        monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
        yield db_path


def test_migrate_creates_tables(temp_db: str):
    migrate(temp_db)
    migrate(temp_db)
    assert os.path.exists(temp_db)

    with sqlite3.connect(temp_db) as conn:
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert {
        "positions",
        "topics",
        "position_topics",
        "questions",
        "answers",
        "candidates",
        "interview_sessions",
        "user_answers",
        "session_questions",
        "results",
        "session_cache",
    } <= names


def test_session_writes_and_counts(temp_db: str):
    migrate(temp_db)
    with get_conn() as conn:
        insert_candidate(conn, candidate_id="c1", first_name="Ada", last_name="L", email="ada@example.com")
        position_id = insert_position(conn, name="Backend")
        topic_id = insert_topic(conn, name="SQL")
        link_position_topic_many(conn, position_id, [topic_id, topic_id])
        question_id = insert_question(conn, topic_id=topic_id, text="Primary key?")
        right = insert_answer(conn, question_id=question_id, text="Unique row id", is_correct=True)
        session_id = insert_session(
            conn,
            candidate_id="c1",
            position_id=position_id,
            topic_id=topic_id,
            is_mock=False,
            started_at=datetime(2024, 1, 1, 9, 0, 0),
        )
        assert mark_in_progress(conn, session_id) is True
        assert mark_in_progress(conn, session_id) is False
        assert fetch_presented_questions(conn, session_id) == []
        replace_presented_questions(conn, session_id, [question_id])
        replace_presented_questions(conn, session_id, [question_id])
        assert fetch_presented_questions(conn, session_id) == [question_id]
        stamp = datetime(2024, 1, 1, 9, 30, 0).isoformat()
        insert_user_answers(
            conn,
            [
                UserAnswerPayload(
                    session_id=session_id, candidate_id="c1", question_id=question_id, answer_id=right, answered_at=stamp
                ),
                UserAnswerPayload(
                    session_id=session_id, candidate_id="c1", question_id=question_id, answer_id=None, answered_at=stamp
                ),
            ],
        )
        first = mark_completed(conn, session_id, completed_at=datetime(2024, 1, 1, 9, 30), duration_seconds=1800)
        second = mark_completed(conn, session_id, completed_at=datetime(2024, 1, 2), duration_seconds=1)

        assert (first, second) == (True, False)
        assert count_correct_answers(conn, session_id) == (1, 2)
        position = fetch_position(conn, position_id)
        assert [topic.id for topic in position.topics] == [topic_id]

        upsert_result(conn, candidate_id="c1", session_id=session_id, final_score=70, feedback="ok")
        upsert_result(conn, candidate_id="c1", session_id=session_id, final_score=85, feedback=None)
        result = fetch_result_for_session(conn, session_id)
    assert (result.final_score, result.feedback) == (85, None)

    with sqlite3.connect(temp_db) as conn:
        row = conn.execute(
            "SELECT status, completed_at, duration_seconds FROM interview_sessions WHERE id = ?", (session_id,)
        ).fetchone()
    assert row == ("completed", "2024-01-01T09:30:00", 1800)


def test_failed_block_rolls_back(temp_db: str):
    migrate(temp_db)
    with pytest.raises(sqlite3.IntegrityError):
        with get_conn() as conn:
            insert_position(conn, name="Ghost")
            conn.execute("INSERT INTO questions (topic_id, text) VALUES (?, ?)", (999, "dangling"))

    with get_conn() as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM positions").fetchone()["n"] == 0


def test_candidate_helpers(temp_db: str):
    migrate(temp_db)
    with get_conn() as conn:
        generated = insert_candidate(conn, first_name="Hr", last_name="Staff", email="HR@Example.com", role="HR")
        insert_candidate(conn, candidate_id="c2", first_name="Bo", last_name="Lee", email="bo@example.com")

        assert generated.id
        assert fetch_candidate_by_email(conn, "hr@example.com").id == generated.id
        assert [c.id for c in list_candidates(conn, role="Candidate")] == ["c2"]
        with pytest.raises(sqlite3.IntegrityError):
            insert_candidate(conn, first_name="Dup", last_name="E", email="bo@example.com")


def test_payload_validation(temp_db: str):
    migrate(temp_db)
    with get_conn() as conn:
        with pytest.raises(ValidationError):
            insert_position(conn, name="")
        with pytest.raises(ValidationError):
            insert_question(conn, topic_id=1, text="x", difficulty="Impossible")


def test_candidate_update_role_and_delete(temp_db: str):
    migrate(temp_db)
    with get_conn() as conn:
        insert_candidate(conn, candidate_id="c1", first_name="Ada", last_name="L", email="ada@example.com")

        assert update_candidate(conn, "c1", first_name="Ada", last_name="Lovelace", email="ada@example.com")
        assert set_role(conn, "c1", "HR")
        assert not update_candidate(conn, "missing", first_name="X", last_name="Y", email="x@example.com")
        record = fetch_candidate_by_email(conn, "ada@example.com")
        assert (record.last_name, record.role) == ("Lovelace", "HR")
        assert delete_candidate(conn, "c1") is True
        assert delete_candidate(conn, "c1") is False
