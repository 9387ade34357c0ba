"""Async HTTP client for the remote quiz-responses service."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from quiz_engine.config import settings
from quiz_engine.core.errors import GatewayError
from quiz_engine.schemas.attempt import (
    AnswerSubmission,
    Attempt,
    CompletedAttempt,
    StartedAttempt,
)

logger = logging.getLogger(__name__)

# question type → per-type submit endpoint and the field name carrying the answer
_SUBMIT_ROUTES: dict[str, tuple[str, str, str]] = {
    "multiple-choice": ("/quiz-responses/submit-multiple-choice", "MULTI_CHOICE", "selectedOption"),
    "true-false": ("/quiz-responses/submit-true-false", "TRUE_FALSE", "selectedAnswer"),
    "fill-in-blank": ("/quiz-responses/submit-fill-in-blank", "FILL_IN_THE_BLANK", "userAnswer"),
    "matching": ("/quiz-responses/submit-matching", "MATCHING", "userMatches"),
}


class AttemptGateway(Protocol):
    """The persistence operations the attempt controller depends on."""

    async def start_attempt(self, quiz_id: str) -> StartedAttempt: ...

    async def submit_answer(self, submission: AnswerSubmission) -> dict[str, Any]: ...

    async def complete_attempt(
        self, attempt_id: str, total_time_spent: float | None = None
    ) -> CompletedAttempt: ...

    async def fetch_user_attempts(self, quiz_id: str | None = None) -> list[Attempt]: ...


def _unwrap_attempt_list(payload: Any) -> list[Any]:
    """Accept a bare list or a ``{"data": [...]}`` / ``{"attempts": [...]}`` envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("data", "attempts"):
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


class QuizResponsesGateway:
    """Thin wrapper around the quiz-responses HTTP API.

    The underlying ``httpx.AsyncClient`` is shared; each gateway only adds
    the caller's bearer token.
    """

    def __init__(self, http: httpx.AsyncClient, token: str | None = None) -> None:
        self._http = http
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> Any:
        try:
            r = await self._http.request(method, url, headers=self._headers, **kwargs)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GatewayError(operation, e.response.text[:200] or str(e), e.response.status_code) from e
        except httpx.HTTPError as e:
            raise GatewayError(operation, str(e) or type(e).__name__) from e
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            raise GatewayError(operation, f"response is not JSON: {e}") from e

    # ── attempt lifecycle ─────────────────────────────────────────────────

    async def start_attempt(self, quiz_id: str) -> StartedAttempt:
        data = await self._request(
            "start_attempt", "POST", "/quiz-responses/start-attempt", json={"quizId": quiz_id}
        )
        return StartedAttempt.model_validate(data)

    async def submit_answer(self, submission: AnswerSubmission) -> dict[str, Any]:
        try:
            url, wire_type, answer_field = _SUBMIT_ROUTES[submission.question_type]
        except KeyError:
            raise GatewayError(
                "submit_answer", f"unsupported question type {submission.question_type!r}"
            ) from None
        payload = {
            "attemptId": submission.attempt_id,
            "questionId": submission.question_id,
            "questionType": wire_type,
            answer_field: submission.answer,
            "timeSpent": submission.time_spent_ms,
        }
        return await self._request("submit_answer", "POST", url, json=payload)

    async def complete_attempt(
        self, attempt_id: str, total_time_spent: float | None = None
    ) -> CompletedAttempt:
        payload: dict[str, Any] = {"attemptId": attempt_id}
        if total_time_spent is not None:
            payload["totalTimeSpent"] = total_time_spent
        data = await self._request(
            "complete_attempt", "PUT", "/quiz-responses/complete-attempt", json=payload
        )
        return CompletedAttempt.model_validate(data)

    # ── history ───────────────────────────────────────────────────────────

    async def fetch_user_attempts(self, quiz_id: str | None = None) -> list[Attempt]:
        params = {"quizId": quiz_id} if quiz_id is not None else None
        data = await self._request(
            "fetch_user_attempts", "GET", "/quiz-responses/user-attempts", params=params
        )
        try:
            return [Attempt.model_validate(row) for row in _unwrap_attempt_list(data)]
        except ValidationError as e:
            raise GatewayError(
                "fetch_user_attempts", f"malformed attempt history: {e.error_count()} invalid field(s)"
            ) from e

    async def get_attempt_details(self, attempt_id: str) -> dict[str, Any]:
        return await self._request(
            "get_attempt_details", "GET", f"/quiz-responses/attempt/{attempt_id}"
        )

    async def get_quiz_leaderboard(self, quiz_id: str, limit: int = 10) -> list[dict[str, Any]]:
        data = await self._request(
            "get_quiz_leaderboard",
            "GET",
            f"/quiz-responses/leaderboard/{quiz_id}",
            params={"limit": limit},
        )
        return _unwrap_attempt_list(data)


# ── shared HTTP client ────────────────────────────────────────────────────────

_http: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    global _http
    if _http is None:
        _http = httpx.AsyncClient(
            base_url=settings.QUIZ_API_URL.rstrip("/"),
            timeout=settings.QUIZ_API_TIMEOUT_SECONDS,
        )
        logger.info("Quiz-responses client initialised → %s", settings.QUIZ_API_URL)
    return _http


async def close_http_client() -> None:
    global _http
    if _http is not None:
        await _http.aclose()
        _http = None
