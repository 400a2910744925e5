"""Candidate and staff identity records."""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

Role = Literal["Admin", "HR", "Candidate", "Owner"]


class CandidateRecord(BaseModel):  # Stored user entry
    id: str
    first_name: str
    last_name: str
    email: str
    role: Role
    created_at: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CandidatePayload(BaseModel):
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: str = Field(min_length=3, max_length=256)
    role: Role = "Candidate"


def _from_row(row: sqlite3.Row) -> CandidateRecord:
    return CandidateRecord(
        id=row["id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        role=row["role"],
        created_at=row["created_at"],
    )


def insert_candidate(conn: sqlite3.Connection, *, candidate_id: Optional[str] = None, **data) -> CandidateRecord:
    """Persist a new user and return the stored record."""

    payload = CandidatePayload(**data)
    record = CandidateRecord(
        id=candidate_id or uuid4().hex,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        role=payload.role,
        created_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )
    conn.execute(
        """
        INSERT INTO candidates (id, first_name, last_name, email, role, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (record.id, record.first_name, record.last_name, record.email, record.role, record.created_at),
    )
    return record


def fetch_candidate(conn: sqlite3.Connection, candidate_id: str) -> Optional[CandidateRecord]:
    row = conn.execute(
        "SELECT id, first_name, last_name, email, role, created_at FROM candidates WHERE id = ?",
        (candidate_id,),
    ).fetchone()
    return _from_row(row) if row else None


def fetch_candidate_by_email(conn: sqlite3.Connection, email: str) -> Optional[CandidateRecord]:
    row = conn.execute(
        "SELECT id, first_name, last_name, email, role, created_at FROM candidates WHERE lower(email) = lower(?)",
        (email,),
    ).fetchone()
    return _from_row(row) if row else None


def list_candidates(
    conn: sqlite3.Connection,
    *,
    role: Optional[Role] = None,
    search: Optional[str] = None,
    sort: str = "name_asc",
) -> List[CandidateRecord]:
    """Users filtered by role and a name fragment, ordered by first then last name."""

    sql = "SELECT id, first_name, last_name, email, role, created_at FROM candidates"
    clauses: List[str] = []
    params: List[str] = []
    if role:
        clauses.append("role = ?")
        params.append(role)
    if search:
        pattern = f"%{search}%"
        clauses.append("(first_name LIKE ? OR last_name LIKE ? OR (first_name || ' ' || last_name) LIKE ?)")
        params.extend([pattern, pattern, pattern])
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    if sort == "name_desc":
        sql += " ORDER BY first_name DESC, last_name DESC, id DESC"
    else:
        sql += " ORDER BY first_name, last_name, id"
    return [_from_row(row) for row in conn.execute(sql, params).fetchall()]


def update_candidate(conn: sqlite3.Connection, candidate_id: str, **data) -> bool:
    payload = CandidatePayload(**data)
    cur = conn.execute(
        "UPDATE candidates SET first_name = ?, last_name = ?, email = ? WHERE id = ?",
        (payload.first_name, payload.last_name, payload.email, candidate_id),
    )
    return cur.rowcount > 0


def set_role(conn: sqlite3.Connection, candidate_id: str, role: Role) -> bool:
    cur = conn.execute("UPDATE candidates SET role = ? WHERE id = ?", (role, candidate_id))
    return cur.rowcount > 0


def delete_candidate(conn: sqlite3.Connection, candidate_id: str) -> bool:
    # Raises sqlite3.IntegrityError while interview sessions still reference the user
    cur = conn.execute("DELETE FROM candidates WHERE id = ?", (candidate_id,))
    return cur.rowcount > 0


__all__ = [
    "Role",
    "CandidateRecord",
    "insert_candidate",
    "fetch_candidate",
    "fetch_candidate_by_email",
    "list_candidates",
    "update_candidate",
    "set_role",
    "delete_candidate",
]
