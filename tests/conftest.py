"""Shared pytest fixtures for engine tests."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from quiz_engine.api.deps import get_gateway, get_registry
from quiz_engine.core.errors import GatewayError
from quiz_engine.main import app
from quiz_engine.schemas.attempt import AnswerSubmission, CompletedAttempt, StartedAttempt
from quiz_engine.schemas.quiz import QuizDefinition
from quiz_engine.services.attempt_registry import AttemptRegistry


class FakeGateway:
    """In-memory stand-in for the quiz-responses service.

    Flip the ``fail_*`` flags to make an operation raise ``GatewayError``.
    ``submit_delay`` keeps per-question writes in flight so tests can observe
    ordering and concurrency.
    """

    def __init__(self, attempt_id: str = "att-1", score: float | None = 100.0) -> None:
        self.attempt_id = attempt_id
        self.score = score
        self.attempts = []
        self.leaderboard = []
        self.details: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.submissions: list[AnswerSubmission] = []
        self.fail_start = False
        self.fail_submit = False
        self.fail_complete = False
        self.fail_fetch = False
        self.submit_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    async def start_attempt(self, quiz_id):
        self.calls.append(("start", quiz_id))
        if self.fail_start:
            raise GatewayError("start_attempt", "service unavailable", 503)
        return StartedAttempt(id=self.attempt_id)

    async def submit_answer(self, submission):
        self.calls.append(("submit", submission.question_id))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.submit_delay:
                await asyncio.sleep(self.submit_delay)
            if self.fail_submit:
                raise GatewayError("submit_answer", "write rejected", 500)
            self.submissions.append(submission)
            return {"ok": True}
        finally:
            self.in_flight -= 1

    async def complete_attempt(self, attempt_id, total_time_spent=None):
        self.calls.append(("complete", attempt_id, total_time_spent))
        if self.fail_complete:
            raise GatewayError("complete_attempt", "timeout talking to scorer")
        return CompletedAttempt(score=self.score)

    async def fetch_user_attempts(self, quiz_id=None):
        self.calls.append(("fetch", quiz_id))
        if self.fail_fetch:
            raise GatewayError("fetch_user_attempts", "connection refused")
        return list(self.attempts)

    async def get_attempt_details(self, attempt_id):
        self.calls.append(("details", attempt_id))
        if self.fail_fetch:
            raise GatewayError("get_attempt_details", "connection refused")
        if attempt_id not in self.details:
            raise GatewayError("get_attempt_details", "attempt not found", 404)
        return self.details[attempt_id]

    async def get_quiz_leaderboard(self, quiz_id, limit=10):
        self.calls.append(("leaderboard", quiz_id, limit))
        return self.leaderboard[:limit]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


QUIZ_PAYLOAD = {
    "id": 42,
    "title": "European capitals",
    "description": "Warm-up quiz",
    "questions": [
        {
            "id": "q1",
            "type": "multiple-choice",
            "question": "Capital of France?",
            "options": ["Paris", "London", "Berlin", "Rome"],
            "correctAnswer": "a",
        },
        {
            "id": "q2",
            "type": "true-false",
            "question": "Berlin is the capital of Germany.",
            "correctAnswer": True,
        },
        {
            "id": "q3",
            "type": "fill-in-blank",
            "question": "The capital of Italy is ____.",
            "correctAnswer": "Rome",
        },
        {
            "id": "q4",
            "type": "matching",
            "question": "Match each country with its capital.",
            "columnA": {"1": "France", "2": "Germany"},
            "columnB": {"a": "Paris", "b": "Berlin"},
            "correctMatches": [{"item": "1", "match": "a"}, {"item": "2", "match": "b"}],
        },
    ],
}

CORRECT_ANSWERS = {
    "q1": 0,
    "q2": 0,
    "q3": "  rome ",
    "q4": [{"item": "2", "match": "b"}, {"item": "1", "match": "a"}],
}


@pytest.fixture
def quiz() -> QuizDefinition:
    return QuizDefinition.model_validate(QUIZ_PAYLOAD)


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> AttemptRegistry:
    return AttemptRegistry()


@pytest.fixture(scope="function")
def client(fake_gateway: FakeGateway, registry: AttemptRegistry):
    """FastAPI test client wired to the fake gateway and a fresh registry."""
    app.dependency_overrides[get_gateway] = lambda: fake_gateway
    app.dependency_overrides[get_registry] = lambda: registry

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
