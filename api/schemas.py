"""Pydantic schemas for the interview portal API."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from services.catalog import QuestionDraft
from services.errors import ErrorKind


class StartReq(BaseModel):
    candidate_id: str
    position_id: int
    interview_type: Literal["mock", "real"] = "real"


class SubmitReq(BaseModel):
    # Values stay loose so a malformed answer id scores zero instead of failing the request
    answers: Dict[str, Any] = Field(default_factory=dict)


class PositionReq(BaseModel):
    name: str
    topic_ids: List[int] = Field(default_factory=list)


class ActiveReq(BaseModel):
    active: bool


class TopicReq(BaseModel):
    name: str
    position_id: int
    description: str = ""
    questions: List[QuestionDraft] = Field(default_factory=list)


class TopicEditReq(BaseModel):
    name: str
    description: Optional[str] = None
    questions: List[QuestionDraft] = Field(default_factory=list)


class QuestionUpdateReq(BaseModel):
    text: str
    difficulty: str = "Easy"


class AnswerReq(BaseModel):
    text: str
    is_correct: bool = False


class CandidateReq(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str
    role: str = "Candidate"


class CandidateUpdateReq(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str
    acting_user_id: Optional[str] = None


class RoleReq(BaseModel):
    role: str
    acting_user_id: Optional[str] = None


class FinalResultReq(BaseModel):
    final_score: int
    feedback: Optional[str] = None


class ErrorResp(BaseModel):
    detail: str
    kind: ErrorKind
