"""Recording of HR-assigned final results."""
from __future__ import annotations

from typing import Optional

from observability.logger import log_event
from services.errors import NotFoundError, PersistenceFailedError, ValidationFailedError, persistence_errors
from storage.results import ResultRecord, fetch_result_for_session, upsert_result
from storage.sessions import fetch_session
from storage.sqlite import get_conn


def record_final_result(session_id: int, final_score: int, feedback: Optional[str] = None) -> ResultRecord:
    """Attach a 0-100 score and optional feedback to a completed real session."""

    if not 0 <= final_score <= 100:
        raise ValidationFailedError("Final score must be between 0 and 100.")
    cleaned = feedback.strip() if feedback else None
    if cleaned and len(cleaned) > 500:
        raise ValidationFailedError("Feedback cannot exceed 500 characters.")

    with persistence_errors("An error occurred while saving the result."), get_conn() as conn:
        session = fetch_session(conn, session_id)
        if session is None:
            raise NotFoundError("Interview session not found.")
        if session.is_mock:
            raise ValidationFailedError("Mock interviews cannot receive a final result.")
        if not session.is_completed:
            raise ValidationFailedError("Interview has not been submitted yet.")
        upsert_result(
            conn,
            candidate_id=session.candidate_id,
            session_id=session_id,
            final_score=final_score,
            feedback=cleaned or None,
        )
        record = fetch_result_for_session(conn, session_id)
        if record is None:
            raise PersistenceFailedError("An error occurred while saving the result.")

    log_event("result_recorded", session_id, candidate_id=session.candidate_id, outcome=final_score)
    return record


__all__ = ["record_final_result"]
