"""Attempt schemas: live session state, history rows and gateway payloads."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from quiz_engine.schemas.quiz import WIRE_CONFIG, EntityId, MatchPair, Question, QuizDefinition


class AttemptStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


# ── History (remote service) ──────────────────────────────────────────────────


class Attempt(BaseModel):
    """One historical attempt as returned by the quiz-responses service."""

    model_config = WIRE_CONFIG

    id: EntityId
    quiz_id: EntityId | None = None
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    score: float | None = None
    time_spent: float | None = None  # seconds
    created_at: datetime | None = None
    completed_at: datetime | None = None


# ── Gateway payloads ──────────────────────────────────────────────────────────


class StartedAttempt(BaseModel):
    """Response of the start-attempt call; extra fields are kept."""

    model_config = WIRE_CONFIG | {"extra": "allow"}

    id: EntityId


class CompletedAttempt(BaseModel):
    """Response of the complete-attempt call; ``score`` is authoritative."""

    model_config = WIRE_CONFIG | {"extra": "allow"}

    score: float | None = None


class AnswerSubmission(BaseModel):
    """A single per-question write to the remote service."""

    model_config = WIRE_CONFIG

    attempt_id: EntityId
    question_id: EntityId
    question_type: str
    answer: Any = None
    time_spent_ms: int = Field(default=0, ge=0)


class RecordResult(BaseModel):
    """Outcome of a best-effort per-question write. Never raised, only logged."""

    model_config = WIRE_CONFIG

    question_id: str
    ok: bool
    error: str | None = None


# ── Live attempt state ────────────────────────────────────────────────────────


class AnswerRecord(BaseModel):
    """Current value for one (attempt, question); later writes overwrite it."""

    model_config = WIRE_CONFIG

    attempt_id: str | None = None
    question_id: str
    value: Any = None
    time_spent_ms: int = Field(default=0, ge=0)


class FeedbackRecord(BaseModel):
    """Instant correctness feedback; exists only while the answer is non-empty."""

    model_config = WIRE_CONFIG

    question_id: str
    is_correct: bool
    user_answer: Any = None
    message: str


class AttemptSession(BaseModel):
    """Lifecycle of the attempt owned by one controller."""

    model_config = WIRE_CONFIG

    id: str | None = None
    quiz_id: str
    status: AttemptStatus = AttemptStatus.NOT_STARTED
    started_at: datetime | None = None
    completed_at: datetime | None = None
    score: float | None = None
    score_verified: bool = False
    awaiting_confirmation: bool = False
    completion_error: str | None = None


# ── Review / display ──────────────────────────────────────────────────────────


class MatchDisplayRow(BaseModel):
    """One line of the canonical item → match table."""

    model_config = WIRE_CONFIG

    item: str
    item_text: str
    match: str | None = None
    match_text: str | None = None


class ReviewItem(BaseModel):
    """Post-attempt review of a single question."""

    model_config = WIRE_CONFIG

    question_id: str
    question: str
    question_type: str
    user_answer: Any = None
    is_correct: bool
    correct_answer: str | bool | list[MatchDisplayRow] | None = None
    explanation: str | None = None


class AttemptView(BaseModel):
    """Snapshot of a controller, returned by the attempt routes."""

    model_config = WIRE_CONFIG

    session: AttemptSession
    quiz_title: str
    current_index: int
    total_questions: int
    current_question: Question | None = None
    current_answer: Any = None
    current_feedback: FeedbackRecord | None = None
    can_advance: bool
    answered_count: int
    pending_writes: int = 0


# ── Request bodies ────────────────────────────────────────────────────────────


class AttemptStartRequest(BaseModel):
    """POST /api/attempts/start: the quiz to take."""

    quiz: QuizDefinition


class AnswerUpdate(BaseModel):
    """PUT /api/attempts/{id}/answer"""

    value: Any = None


class MatchUpdate(MatchPair):
    """PUT /api/attempts/{id}/matches: an empty ``match`` clears the item."""

    match: str = ""
