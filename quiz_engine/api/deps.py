"""FastAPI dependencies shared across routes."""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from quiz_engine.services.attempt_registry import AttemptRegistry, get_attempt_registry
from quiz_engine.services.quiz_gateway import QuizResponsesGateway, get_http_client

# Authentication belongs to the quiz-responses service; the token is only forwarded.
bearer_scheme = HTTPBearer(auto_error=False)


def get_gateway(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> QuizResponsesGateway:
    """Gateway bound to the caller's bearer token (if any)."""
    token = credentials.credentials if credentials else None
    return QuizResponsesGateway(get_http_client(), token)


def get_registry() -> AttemptRegistry:
    return get_attempt_registry()
