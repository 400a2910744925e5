"""Application settings and configuration management."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview_portal.db")
    SEED_PATH: str = Field(default="data/seed.yaml")

    QUESTIONS_PER_SESSION: int = Field(default=10, ge=1)
    SESSION_SCOPE: Literal["all_topics", "single_topic"] = "all_topics"
    RESUBMIT_POLICY: Literal["reject", "overwrite"] = "reject"
    KV_BACKEND: Literal["memory", "sqlite"] = "memory"

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
