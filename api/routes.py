"""FastAPI routes for the catalog, interview sessions and results."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from api.schemas import (
    ActiveReq,
    AnswerReq,
    CandidateReq,
    CandidateUpdateReq,
    ErrorResp,
    FinalResultReq,
    PositionReq,
    QuestionUpdateReq,
    RoleReq,
    StartReq,
    SubmitReq,
    TopicEditReq,
    TopicReq,
)
from services import candidates, catalog
from services.aggregation import PositionResults, aggregate_position
from services.errors import ErrorKind, PortalError
from services.kv_store import KeyValueStore, build_store
from services.results import record_final_result
from services.scoring import SessionResultView, SubmissionScore, session_results, submit_answers
from services.selector import SelectedQuestionSet, select_questions
from services.sessions import load_session, start_session
from storage.candidates import CandidateRecord
from storage.catalog import PositionRecord, QuestionRecord, TopicRecord
from storage.results import ResultRecord
from storage.sessions import SessionRecord

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_FAILED: 422,
    ErrorKind.PERSISTENCE_FAILED: 500,
}

_kv_store: Optional[KeyValueStore] = None


def get_kv_store() -> KeyValueStore:
    """Process-wide transient store, built lazily from settings."""

    global _kv_store
    if _kv_store is None:
        _kv_store = build_store()
    return _kv_store


async def portal_error_handler(_: Request, exc: PortalError) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(exc.kind, 500),
        content={"detail": exc.message, "kind": exc.kind.value},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PortalError, portal_error_handler)  # type: ignore[arg-type]


ERROR_RESPONSES = {status: {"model": ErrorResp} for status in STATUS_BY_KIND.values()}

router = APIRouter(prefix="/api/interview-sessions", responses=ERROR_RESPONSES)
catalog_router = APIRouter(prefix="/api", responses=ERROR_RESPONSES)
results_router = APIRouter(prefix="/api/results", responses=ERROR_RESPONSES)


# ----------------------------------------------------------------------
# Interview sessions
# ----------------------------------------------------------------------
@router.post("/start", response_model=SessionRecord, status_code=201)
def start(req: StartReq) -> SessionRecord:
    return start_session(req.candidate_id, req.position_id, mock=req.interview_type == "mock")


@router.get("/{session_id}", response_model=SessionRecord)
def get_session(session_id: int) -> SessionRecord:
    return load_session(session_id)


@router.get("/{session_id}/questions", response_model=SelectedQuestionSet)
def questions(session_id: int, kv: KeyValueStore = Depends(get_kv_store)) -> SelectedQuestionSet:
    return select_questions(session_id, kv)


@router.post("/{session_id}/submit", response_model=SubmissionScore)
def submit(session_id: int, req: SubmitReq, kv: KeyValueStore = Depends(get_kv_store)) -> SubmissionScore:
    return submit_answers(session_id, req.answers, kv)


@router.get("/{session_id}/results", response_model=SessionResultView)
def results(session_id: int, kv: KeyValueStore = Depends(get_kv_store)) -> SessionResultView:
    return session_results(session_id, kv)


# ----------------------------------------------------------------------
# Catalog
# ----------------------------------------------------------------------
@catalog_router.get("/positions", response_model=List[PositionRecord])
def list_positions(active_only: bool = False) -> List[PositionRecord]:
    return catalog.list_positions(active_only=active_only)


@catalog_router.post("/positions", response_model=PositionRecord, status_code=201)
def create_position(req: PositionReq) -> PositionRecord:
    return catalog.create_position(req.name, req.topic_ids)


@catalog_router.get("/positions/{position_id}", response_model=PositionRecord)
def get_position(position_id: int) -> PositionRecord:
    return catalog.get_position(position_id)


@catalog_router.put("/positions/{position_id}", response_model=PositionRecord)
def edit_position(position_id: int, req: PositionReq) -> PositionRecord:
    return catalog.edit_position(position_id, req.name, req.topic_ids)


@catalog_router.post("/positions/{position_id}/active", response_model=PositionRecord)
def set_active(position_id: int, req: ActiveReq) -> PositionRecord:
    return catalog.set_position_active(position_id, req.active)


@catalog_router.post("/topics", response_model=TopicRecord, status_code=201)
def create_topic(req: TopicReq) -> TopicRecord:
    return catalog.create_topic(req.name, req.position_id, req.questions, description=req.description)


@catalog_router.put("/topics/{topic_id}", response_model=TopicRecord)
def edit_topic(topic_id: int, req: TopicEditReq) -> TopicRecord:
    return catalog.edit_topic(topic_id, req.name, req.questions, description=req.description)


@catalog_router.put("/questions/{question_id}", response_model=QuestionRecord)
def update_question(question_id: int, req: QuestionUpdateReq) -> QuestionRecord:
    return catalog.update_question(question_id, req.text, req.difficulty)


@catalog_router.post("/questions/{question_id}/answers", response_model=QuestionRecord, status_code=201)
def add_answer(question_id: int, req: AnswerReq) -> QuestionRecord:
    return catalog.add_answer(question_id, req.text, req.is_correct)


@catalog_router.put("/answers/{answer_id}", response_model=QuestionRecord)
def update_answer(answer_id: int, req: AnswerReq) -> QuestionRecord:
    return catalog.update_answer(answer_id, req.text, req.is_correct)


@catalog_router.delete("/questions/{question_id}", status_code=204)
def delete_question(question_id: int) -> Response:
    catalog.delete_question(question_id)
    return Response(status_code=204)


@catalog_router.delete("/answers/{answer_id}", status_code=204)
def delete_answer(answer_id: int) -> Response:
    catalog.delete_answer(answer_id)
    return Response(status_code=204)


@catalog_router.get("/candidates", response_model=List[CandidateRecord])
def list_candidates(
    role: Optional[str] = None, search: Optional[str] = None, sort: str = "name_asc"
) -> List[CandidateRecord]:
    return candidates.list_candidates(role=role, search=search, sort=sort)  # type: ignore[arg-type]


@catalog_router.post("/candidates", response_model=CandidateRecord, status_code=201)
def create_candidate(req: CandidateReq) -> CandidateRecord:
    return candidates.create_candidate(
        first_name=req.first_name,
        last_name=req.last_name,
        email=req.email,
        role=req.role,
    )


@catalog_router.put("/candidates/{candidate_id}", response_model=CandidateRecord)
def update_candidate(candidate_id: str, req: CandidateUpdateReq) -> CandidateRecord:
    return candidates.update_candidate(
        candidate_id,
        first_name=req.first_name,
        last_name=req.last_name,
        email=req.email,
        acting_user_id=req.acting_user_id,
    )


@catalog_router.post("/candidates/{candidate_id}/role", response_model=CandidateRecord)
def assign_role(candidate_id: str, req: RoleReq) -> CandidateRecord:
    return candidates.assign_role(candidate_id, req.role, acting_user_id=req.acting_user_id)


@catalog_router.delete("/candidates/{candidate_id}", status_code=204)
def delete_candidate(candidate_id: str) -> Response:
    candidates.delete_candidate(candidate_id)
    return Response(status_code=204)


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------
@results_router.get("/positions/{position_id}", response_model=PositionResults)
def position_results(position_id: int) -> PositionResults:
    return aggregate_position(position_id)


@results_router.post("/sessions/{session_id}", response_model=ResultRecord)
def final_result(session_id: int, req: FinalResultReq) -> ResultRecord:
    return record_final_result(session_id, req.final_score, req.feedback)


__all__ = [
    "router",
    "catalog_router",
    "results_router",
    "get_kv_store",
    "register_error_handlers",
]
