"""YAML-driven seeding of users and the question catalog."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field

from config.settings import settings
from storage.candidates import fetch_candidate_by_email, insert_candidate
from storage.catalog import insert_answer, insert_position, insert_question, insert_topic, link_position_topic_many
from storage.migrate import migrate
from storage.sqlite import get_conn

logger = logging.getLogger(__name__)


class SeedAnswer(BaseModel):
    text: str
    correct: bool = False


class SeedQuestion(BaseModel):
    text: str
    difficulty: str = "Easy"
    answers: List[SeedAnswer] = Field(default_factory=list)


class SeedTopic(BaseModel):
    name: str
    description: str = ""
    questions: List[SeedQuestion] = Field(default_factory=list)


class SeedPosition(BaseModel):
    name: str
    active: bool = True
    topics: List[str] = Field(default_factory=list)


class SeedUser(BaseModel):
    id: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    email: str
    role: str = "Candidate"


class SeedFile(BaseModel):
    users: List[SeedUser] = Field(default_factory=list)
    topics: List[SeedTopic] = Field(default_factory=list)
    positions: List[SeedPosition] = Field(default_factory=list)


class SeedReport(BaseModel):
    users: int = 0
    topics: int = 0
    questions: int = 0
    positions: int = 0


def load_seed(path: Union[str, Path]) -> SeedFile:
    with open(path, "r", encoding="utf-8") as handle:
        data: Dict[str, Any] = yaml.safe_load(handle) or {}
    return SeedFile.model_validate(data)


def _existing_id(conn, table: str, name: str) -> Optional[int]:
    row = conn.execute(f"SELECT id FROM {table} WHERE name = ? ORDER BY id LIMIT 1", (name,)).fetchone()
    return int(row["id"]) if row else None


def apply_seed(seed: SeedFile) -> SeedReport:
    """Insert seed rows that are not present yet; existing rows are left alone."""

    report = SeedReport()
    with get_conn() as conn:
        for user in seed.users:
            if fetch_candidate_by_email(conn, user.email) is not None:
                logger.info("User already exists: %s", user.email)
                continue
            insert_candidate(
                conn,
                candidate_id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                email=user.email,
                role=user.role,
            )
            report.users += 1

        topic_ids: Dict[str, int] = {}
        for topic in seed.topics:
            existing = _existing_id(conn, "topics", topic.name)
            if existing is not None:
                topic_ids[topic.name] = existing
                continue
            topic_id = insert_topic(conn, name=topic.name, description=topic.description)
            topic_ids[topic.name] = topic_id
            report.topics += 1
            for question in topic.questions:
                question_id = insert_question(
                    conn, topic_id=topic_id, text=question.text, difficulty=question.difficulty
                )
                for answer in question.answers:
                    insert_answer(conn, question_id=question_id, text=answer.text, is_correct=answer.correct)
                report.questions += 1

        for position in seed.positions:
            if _existing_id(conn, "positions", position.name) is not None:
                continue
            position_id = insert_position(conn, name=position.name, is_active=position.active)
            linked = [topic_ids[name] for name in position.topics if name in topic_ids]
            missing = [name for name in position.topics if name not in topic_ids]
            if missing:
                logger.warning("Position %s references unknown topics: %s", position.name, ", ".join(missing))
            link_position_topic_many(conn, position_id, linked)
            report.positions += 1

    logger.info(
        "Seeded %s users, %s topics, %s questions, %s positions",
        report.users,
        report.topics,
        report.questions,
        report.positions,
    )
    return report


def seed_database(path: Optional[Union[str, Path]] = None) -> SeedReport:
    """Migrate the configured database and apply the seed file."""

    migrate(settings.DB_PATH)
    return apply_seed(load_seed(path or settings.SEED_PATH))


__all__ = ["SeedFile", "SeedReport", "load_seed", "apply_seed", "seed_database"]
