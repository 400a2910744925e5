import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.settings import settings
from services.kv_store import InMemoryKeyValueStore
from storage.candidates import insert_candidate
from storage.catalog import (
    fetch_question,
    insert_answer,
    insert_position,
    insert_question,
    insert_topic,
    link_position_topic_many,
)
from storage.migrate import migrate
from storage.sqlite import get_conn


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def make_candidate():
    def _make(candidate_id: str = "c1", first: str = "Ada", last: str = "Lovelace", email: str = "") -> str:
        with get_conn() as conn:
            insert_candidate(
                conn,
                candidate_id=candidate_id,
                first_name=first,
                last_name=last,
                email=email or f"{candidate_id}@example.com",
                role="Candidate",
            )
        return candidate_id

    return _make


@pytest.fixture
def make_position():
    """Create a position with ``question_count`` two-answer questions spread over ``topics``."""

    def _make(question_count: int = 12, topics: int = 1, name: str = "Backend Engineer") -> int:
        with get_conn() as conn:
            position_id = insert_position(conn, name=name)
            topic_ids = [insert_topic(conn, name=f"{name} topic {index + 1}") for index in range(topics)]
            link_position_topic_many(conn, position_id, topic_ids)
            for index in range(question_count):
                question_id = insert_question(
                    conn, topic_id=topic_ids[index % topics], text=f"{name} question {index + 1}?"
                )
                insert_answer(conn, question_id=question_id, text="Right", is_correct=True)
                insert_answer(conn, question_id=question_id, text="Wrong", is_correct=False)
        return position_id

    return _make


@pytest.fixture
def answer_key():
    """Map question ids to their ``(correct_answer_id, wrong_answer_id)`` pair."""

    def _key(question_ids: List[int]) -> Dict[int, Tuple[int, int]]:
        key: Dict[int, Tuple[int, int]] = {}
        with get_conn() as conn:
            for question_id in question_ids:
                question = fetch_question(conn, question_id)
                assert question is not None
                right = next(a.id for a in question.answers if a.is_correct)
                wrong = next(a.id for a in question.answers if not a.is_correct)
                key[question_id] = (right, wrong)
        return key

    return _key
