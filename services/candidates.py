"""Candidate and staff account helpers."""
from __future__ import annotations

import sqlite3
from typing import List, Optional

from services.errors import NotFoundError, ValidationFailedError, persistence_errors
from storage.candidates import CandidateRecord, Role, fetch_candidate, fetch_candidate_by_email
from storage.candidates import delete_candidate as _delete_candidate
from storage.candidates import insert_candidate, list_candidates as _list_candidates
from storage.candidates import set_role, update_candidate as _update_candidate
from storage.sqlite import get_conn

ROLES = ("Admin", "HR", "Candidate", "Owner")
# Owner is seeded, never handed out
ASSIGNABLE_ROLES = ("HR", "Candidate", "Admin")
SORTS = ("name_asc", "name_desc")


def _clean_email(email: Optional[str]) -> str:
    cleaned = (email or "").strip()
    if not cleaned or "@" not in cleaned:
        raise ValidationFailedError("A valid email address is required.")
    return cleaned


def create_candidate(
    *,
    first_name: str,
    last_name: str,
    email: str,
    role: str = "Candidate",
    candidate_id: Optional[str] = None,
) -> CandidateRecord:
    cleaned_email = _clean_email(email)
    if role not in ROLES:
        raise ValidationFailedError("Invalid role specified.")
    with persistence_errors("An error occurred while creating the user."), get_conn() as conn:
        if fetch_candidate_by_email(conn, cleaned_email) is not None:
            raise ValidationFailedError("Email is already in use by another user.")
        return insert_candidate(
            conn,
            candidate_id=candidate_id,
            first_name=(first_name or "").strip(),
            last_name=(last_name or "").strip(),
            email=cleaned_email,
            role=role,
        )


def get_candidate(candidate_id: str) -> CandidateRecord:
    with persistence_errors("An error occurred while loading the user."), get_conn() as conn:
        candidate = fetch_candidate(conn, candidate_id)
    if candidate is None:
        raise NotFoundError("User not found.")
    return candidate


def list_candidates(
    role: Optional[Role] = None,
    search: Optional[str] = None,
    sort: str = "name_asc",
) -> List[CandidateRecord]:
    """Users by role, optionally narrowed to names containing ``search``.

    ``sort`` is ``name_asc`` or ``name_desc``; both order by first name then last name.
    """

    if sort not in SORTS:
        raise ValidationFailedError("Invalid sort order specified.")
    fragment = (search or "").strip() or None
    with persistence_errors("An error occurred while loading users."), get_conn() as conn:
        return _list_candidates(conn, role=role, search=fragment, sort=sort)


def update_candidate(
    candidate_id: str,
    *,
    first_name: str,
    last_name: str,
    email: str,
    acting_user_id: Optional[str] = None,
) -> CandidateRecord:
    """Edit a user's name and email. Admin accounts may only be edited by themselves."""

    cleaned_email = _clean_email(email)
    with persistence_errors("An error occurred while updating the user."), get_conn() as conn:
        current = fetch_candidate(conn, candidate_id)
        if current is None:
            raise NotFoundError("User to update not found.")
        if current.role == "Admin" and acting_user_id != candidate_id:
            raise ValidationFailedError("You cannot modify another admin user.")
        owner = fetch_candidate_by_email(conn, cleaned_email)
        if owner is not None and owner.id != candidate_id:
            raise ValidationFailedError("Email is already in use by another user.")
        _update_candidate(
            conn,
            candidate_id,
            first_name=(first_name or "").strip(),
            last_name=(last_name or "").strip(),
            email=cleaned_email,
        )
        updated = fetch_candidate(conn, candidate_id)
    if updated is None:
        raise NotFoundError("User to update not found.")
    return updated


def assign_role(candidate_id: str, role: str, *, acting_user_id: Optional[str] = None) -> CandidateRecord:
    if role not in ASSIGNABLE_ROLES:
        raise ValidationFailedError("Invalid role specified.")
    with persistence_errors("An error occurred while assigning the role."), get_conn() as conn:
        current = fetch_candidate(conn, candidate_id)
        if current is None:
            raise NotFoundError("User not found.")
        if current.role == "Admin" and role != "Admin" and acting_user_id != candidate_id:
            raise ValidationFailedError("Cannot change role of another administrator.")
        set_role(conn, candidate_id, role)  # type: ignore[arg-type]
        updated = fetch_candidate(conn, candidate_id)
    if updated is None:
        raise NotFoundError("User not found.")
    return updated


def delete_candidate(candidate_id: str) -> None:
    """Remove a user who has no interview sessions on record."""

    with persistence_errors("An error occurred while deleting the user."), get_conn() as conn:
        try:
            deleted = _delete_candidate(conn, candidate_id)
        except sqlite3.IntegrityError as exc:
            raise ValidationFailedError(
                "Cannot delete user because they have related records in the system. "
                "Consider deactivating instead of deleting."
            ) from exc
        if not deleted:
            raise NotFoundError("User not found.")


__all__ = [
    "ROLES",
    "ASSIGNABLE_ROLES",
    "create_candidate",
    "get_candidate",
    "list_candidates",
    "update_candidate",
    "assign_role",
    "delete_candidate",
]
