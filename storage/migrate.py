"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable, Optional

from config.settings import settings

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS positions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  is_active INTEGER NOT NULL DEFAULT 1
);
""",
    """
CREATE TABLE IF NOT EXISTS topics (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  description TEXT NOT NULL DEFAULT ''
);
""",
    """
CREATE TABLE IF NOT EXISTS position_topics (
  position_id INTEGER NOT NULL,
  topic_id INTEGER NOT NULL,
  PRIMARY KEY (position_id, topic_id),
  FOREIGN KEY(position_id) REFERENCES positions(id) ON DELETE CASCADE,
  FOREIGN KEY(topic_id) REFERENCES topics(id) ON DELETE CASCADE
);
""",
    """
CREATE TABLE IF NOT EXISTS questions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  topic_id INTEGER NOT NULL,
  text TEXT NOT NULL,
  difficulty TEXT NOT NULL DEFAULT 'Easy',
  FOREIGN KEY(topic_id) REFERENCES topics(id) ON DELETE CASCADE
);
""",
    """
CREATE TABLE IF NOT EXISTS answers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  question_id INTEGER NOT NULL,
  text TEXT NOT NULL,
  is_correct INTEGER NOT NULL DEFAULT 0,
  FOREIGN KEY(question_id) REFERENCES questions(id) ON DELETE CASCADE
);
""",
    """
CREATE TABLE IF NOT EXISTS candidates (
  id TEXT PRIMARY KEY,
  first_name TEXT NOT NULL,
  last_name TEXT NOT NULL,
  email TEXT NOT NULL UNIQUE,
  role TEXT NOT NULL,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS interview_sessions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  candidate_id TEXT NOT NULL,
  position_id INTEGER NOT NULL,
  topic_id INTEGER NOT NULL,
  is_mock INTEGER NOT NULL,
  status TEXT NOT NULL,
  started_at TEXT NOT NULL,
  completed_at TEXT,
  duration_seconds INTEGER,
  FOREIGN KEY(candidate_id) REFERENCES candidates(id),
  FOREIGN KEY(position_id) REFERENCES positions(id),
  FOREIGN KEY(topic_id) REFERENCES topics(id)
);
""",
    """
CREATE TABLE IF NOT EXISTS user_answers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  session_id INTEGER NOT NULL,
  candidate_id TEXT NOT NULL,
  question_id INTEGER NOT NULL,
  answer_id INTEGER,
  answered_at TEXT NOT NULL,
  FOREIGN KEY(session_id) REFERENCES interview_sessions(id) ON DELETE CASCADE
);
""",
    """
CREATE TABLE IF NOT EXISTS session_questions (
  session_id INTEGER NOT NULL,
  position INTEGER NOT NULL,
  question_id INTEGER NOT NULL,
  PRIMARY KEY (session_id, position),
  FOREIGN KEY(session_id) REFERENCES interview_sessions(id) ON DELETE CASCADE
);
""",
    """
CREATE TABLE IF NOT EXISTS results (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  candidate_id TEXT NOT NULL,
  session_id INTEGER NOT NULL UNIQUE,
  final_score INTEGER NOT NULL,
  feedback TEXT,
  FOREIGN KEY(session_id) REFERENCES interview_sessions(id) ON DELETE CASCADE
);
""",
    """
CREATE TABLE IF NOT EXISTS session_cache (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""",
]


def migrate(db_path: Optional[str] = None) -> None:
    """Apply schema migrations to the SQLite database."""

    db_path = db_path or settings.DB_PATH
    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
