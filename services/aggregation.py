"""Per-position results aggregation across candidates."""
from __future__ import annotations

import logging
import sqlite3
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from observability.logger import log_event
from services.errors import ErrorKind, NotFoundError, PortalError, persistence_errors
from services.scoring import percent
from storage.candidates import fetch_candidate
from storage.catalog import PositionRecord, fetch_position
from storage.results import fetch_result_for_position
from storage.sessions import completed_candidate_ids, scored_answers_for
from storage.sqlite import get_conn

logger = logging.getLogger(__name__)


class TopicSummary(BaseModel):
    id: int
    name: str


class TopicResult(BaseModel):
    topic_id: int
    topic_name: str
    questions_correct: int
    total_questions: int
    percentage_correct: float


class CandidateResult(BaseModel):
    candidate_id: str
    candidate_name: str
    candidate_email: str
    topic_results: List[TopicResult] = Field(default_factory=list)
    total_questions: int = 0
    total_correct: int = 0
    total_percentage: float = 0.0
    final_score: Optional[int] = None
    feedback: Optional[str] = None


class CandidateFailure(BaseModel):  # Candidate skipped during aggregation
    candidate_id: str
    kind: ErrorKind
    reason: str


class PositionResults(BaseModel):
    position_id: int
    position_name: str
    topics: List[TopicSummary] = Field(default_factory=list)
    candidates: List[CandidateResult] = Field(default_factory=list)
    failures: List[CandidateFailure] = Field(default_factory=list)


def candidate_result(candidate_id: str, position: PositionRecord) -> CandidateResult:
    """Roll up one candidate's completed real sessions for ``position``."""

    with get_conn() as conn:
        candidate = fetch_candidate(conn, candidate_id)
        if candidate is None:
            raise NotFoundError(f"User {candidate_id} not found.")
        rows = scored_answers_for(conn, candidate_id, position.id)
        final = fetch_result_for_position(conn, candidate_id, position.id)

    tallies: Dict[int, List[int]] = {}
    for row in rows:
        bucket = tallies.setdefault(row.topic_id, [0, 0])
        bucket[0] += int(row.is_correct)
        bucket[1] += 1

    topic_results: List[TopicResult] = []
    total_correct = 0
    total_questions = 0
    for topic in position.topics:
        correct, answered = tallies.get(topic.id, [0, 0])
        topic_results.append(
            TopicResult(
                topic_id=topic.id,
                topic_name=topic.name,
                questions_correct=correct,
                total_questions=answered,
                percentage_correct=percent(correct, answered),
            )
        )
        total_correct += correct
        total_questions += answered

    return CandidateResult(
        candidate_id=candidate.id,
        candidate_name=candidate.full_name,
        candidate_email=candidate.email,
        topic_results=topic_results,
        total_questions=total_questions,
        total_correct=total_correct,
        total_percentage=percent(total_correct, total_questions),
        final_score=final.final_score if final else None,
        feedback=final.feedback if final else None,
    )


def aggregate_position(position_id: int) -> PositionResults:
    """Rank every candidate with a completed session for ``position_id``.

    A candidate that cannot be computed is logged and reported in
    ``failures``; the rest of the batch still completes.
    """

    with persistence_errors("An error occurred while loading the position results."), get_conn() as conn:
        position = fetch_position(conn, position_id, with_questions=False)
        if position is None:
            raise NotFoundError("Position not found.")
        candidate_ids = completed_candidate_ids(conn, position_id)

    candidates: List[CandidateResult] = []
    failures: List[CandidateFailure] = []
    for candidate_id in candidate_ids:
        try:
            candidates.append(candidate_result(candidate_id, position))
        except PortalError as exc:
            logger.warning("Skipping candidate %s for position %s: %s", candidate_id, position_id, exc.message)
            failures.append(CandidateFailure(candidate_id=candidate_id, kind=exc.kind, reason=exc.message))
        except sqlite3.Error as exc:
            logger.exception("Skipping candidate %s for position %s", candidate_id, position_id)
            failures.append(
                CandidateFailure(candidate_id=candidate_id, kind=ErrorKind.PERSISTENCE_FAILED, reason=str(exc))
            )

    # list.sort is stable, so ties keep first-completion order
    candidates.sort(key=lambda result: result.total_percentage, reverse=True)

    log_event(
        "aggregation_completed",
        None,
        position_id=position_id,
        count=len(candidates),
        outcome=f"{len(failures)} skipped",
    )
    return PositionResults(
        position_id=position.id,
        position_name=position.name,
        topics=[TopicSummary(id=topic.id, name=topic.name) for topic in position.topics],
        candidates=candidates,
        failures=failures,
    )


__all__ = [
    "TopicSummary",
    "TopicResult",
    "CandidateResult",
    "CandidateFailure",
    "PositionResults",
    "candidate_result",
    "aggregate_position",
]
