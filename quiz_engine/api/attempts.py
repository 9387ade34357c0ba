"""Attempt routes: question-by-question quiz taking.

Flow:
  1. POST /api/attempts/start            → open an attempt, cursor on question 1
  2. PUT  /api/attempts/{id}/answer       → store an answer, get instant feedback
     PUT  /api/attempts/{id}/matches      → select one item → match pair
  3. POST /api/attempts/{id}/next         → persist in background, advance
     POST /api/attempts/{id}/previous     → step back
  4. POST /api/attempts/{id}/confirm      → complete the attempt
  5. GET  /api/attempts/{id}/review       → per-question outcome
  6. GET  /api/attempts/                  → attempt history from the remote service
  7. GET  /api/attempts/{id}/details      → stored attempt record from the remote service
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from quiz_engine.api.deps import get_gateway, get_registry
from quiz_engine.core.errors import (
    AttemptNotFound,
    GatewayError,
    InvalidTransition,
    QuestionNotAnswered,
    StartAttemptFailure,
)
from quiz_engine.schemas.attempt import (
    AnswerUpdate,
    Attempt,
    AttemptStartRequest,
    AttemptView,
    MatchUpdate,
    ReviewItem,
)
from quiz_engine.services.attempt_controller import AttemptController
from quiz_engine.services.attempt_registry import AttemptRegistry
from quiz_engine.services.quiz_gateway import QuizResponsesGateway

logger = logging.getLogger(__name__)
router = APIRouter()


def _controller(attempt_id: str, registry: AttemptRegistry) -> AttemptController:
    try:
        return registry.get(attempt_id)
    except AttemptNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


def _conflict(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/start", response_model=AttemptView, status_code=status.HTTP_201_CREATED)
async def start_attempt(
    body: AttemptStartRequest,
    gateway: QuizResponsesGateway = Depends(get_gateway),
    registry: AttemptRegistry = Depends(get_registry),
):
    """Open a new attempt for the given quiz definition."""
    controller = AttemptController(body.quiz, gateway)
    try:
        await controller.start()
    except StartAttemptFailure as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    registry.add(controller)
    return controller.view()


@router.get("/", response_model=list[Attempt])
async def list_attempts(
    quiz_id: str | None = None,
    gateway: QuizResponsesGateway = Depends(get_gateway),
):
    """The current user's past attempts, optionally for one quiz."""
    try:
        return await gateway.fetch_user_attempts(quiz_id)
    except GatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e


@router.get("/{attempt_id}", response_model=AttemptView)
async def get_attempt(attempt_id: str, registry: AttemptRegistry = Depends(get_registry)):
    return _controller(attempt_id, registry).view()


@router.put("/{attempt_id}/answer", response_model=AttemptView)
async def set_answer(
    attempt_id: str,
    body: AnswerUpdate,
    registry: AttemptRegistry = Depends(get_registry),
):
    """Store the answer for the current question; feedback is in the view."""
    controller = _controller(attempt_id, registry)
    try:
        controller.set_answer(body.value)
    except InvalidTransition as e:
        raise _conflict(e) from e
    return controller.view()


@router.put("/{attempt_id}/matches", response_model=AttemptView)
async def set_match(
    attempt_id: str,
    body: MatchUpdate,
    registry: AttemptRegistry = Depends(get_registry),
):
    controller = _controller(attempt_id, registry)
    try:
        controller.set_match(body.item, body.match)
    except InvalidTransition as e:
        raise _conflict(e) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return controller.view()


@router.post("/{attempt_id}/next", response_model=AttemptView)
async def next_question(attempt_id: str, registry: AttemptRegistry = Depends(get_registry)):
    controller = _controller(attempt_id, registry)
    try:
        return await controller.next()
    except (InvalidTransition, QuestionNotAnswered) as e:
        raise _conflict(e) from e


@router.post("/{attempt_id}/previous", response_model=AttemptView)
async def previous_question(attempt_id: str, registry: AttemptRegistry = Depends(get_registry)):
    controller = _controller(attempt_id, registry)
    try:
        return controller.previous()
    except InvalidTransition as e:
        raise _conflict(e) from e


@router.post("/{attempt_id}/cancel-confirmation", response_model=AttemptView)
async def cancel_confirmation(attempt_id: str, registry: AttemptRegistry = Depends(get_registry)):
    controller = _controller(attempt_id, registry)
    try:
        return controller.cancel_confirmation()
    except InvalidTransition as e:
        raise _conflict(e) from e


@router.post("/{attempt_id}/confirm", response_model=AttemptView)
async def confirm_submit(attempt_id: str, registry: AttemptRegistry = Depends(get_registry)):
    """Complete the attempt.

    A failed completion call still returns the attempt as COMPLETED, with
    ``scoreVerified`` false and the failure in ``completionError``.
    """
    controller = _controller(attempt_id, registry)
    try:
        await controller.confirm_submit()
    except (InvalidTransition, QuestionNotAnswered) as e:
        raise _conflict(e) from e
    return controller.view()


@router.get("/{attempt_id}/review", response_model=list[ReviewItem])
async def review_attempt(attempt_id: str, registry: AttemptRegistry = Depends(get_registry)):
    """Per-question correctness and canonical answers."""
    return _controller(attempt_id, registry).review()


@router.get("/{attempt_id}/details")
async def get_attempt_details(
    attempt_id: str,
    gateway: QuizResponsesGateway = Depends(get_gateway),
):
    """The attempt as stored by the quiz-responses service, answers included.

    Works for past attempts too, not only those with a live controller.
    """
    try:
        return await gateway.get_attempt_details(attempt_id)
    except GatewayError as e:
        if e.status_code == status.HTTP_404_NOT_FOUND:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
