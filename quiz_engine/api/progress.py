"""Progress & analytics routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from quiz_engine.api.deps import get_gateway
from quiz_engine.core.errors import FetchAttemptsFailure, GatewayError
from quiz_engine.schemas.analytics import AnalysisReport
from quiz_engine.services.quiz_gateway import QuizResponsesGateway
from quiz_engine.services.recommendations import analyze
from quiz_engine.services.statistics import compute_statistics

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=AnalysisReport)
async def get_progress(
    quiz_id: str | None = None,
    gateway: QuizResponsesGateway = Depends(get_gateway),
):
    """Statistics, strengths, weaknesses and recommendations for the current user.

    If the history cannot be fetched the report still comes back, built from
    an empty list, with the failure in ``error`` for the client to show as a
    banner.
    """
    error = None
    try:
        attempts = await gateway.fetch_user_attempts(quiz_id)
    except GatewayError as e:
        failure = FetchAttemptsFailure(e)
        logger.warning("%s", failure)
        attempts, error = [], str(failure)

    stats = compute_statistics(attempts, quiz_id)
    return analyze(stats, error=error)


@router.get("/leaderboard/{quiz_id}")
async def get_leaderboard(
    quiz_id: str,
    limit: int = 10,
    gateway: QuizResponsesGateway = Depends(get_gateway),
):
    try:
        return await gateway.get_quiz_leaderboard(quiz_id, limit=limit)
    except GatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
