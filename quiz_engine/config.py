"""Engine configuration loaded from environment variables."""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings

# Always resolve .env relative to the project root, no matter where uvicorn is started from
_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    """Application settings, all values sourced from env / .env file."""

    # ── Server ──────────────────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    ENV: str = "development"

    # ── CORS ────────────────────────────────────────────────────────────
    CORS_ORIGINS: List[str] = ["*"]
    ALLOWED_HOSTS: List[str] = ["*"]

    # ── Quiz-responses service (remote persistence gateway) ─────────────
    QUIZ_API_URL: str = "http://localhost:5000/api"
    # None means no timeout: gateway calls wait as long as the remote side takes.
    QUIZ_API_TIMEOUT_SECONDS: float | None = None

    # ── Live attempts ───────────────────────────────────────────────────
    # Completed attempts stay reviewable for this long, then their controller is dropped.
    COMPLETED_ATTEMPT_TTL_SECONDS: int = 900

    # ── Statistics windows ──────────────────────────────────────────────
    WEEKLY_WINDOW_DAYS: int = 7
    TREND_WINDOW: int = 5

    # ── Strength / weakness thresholds ──────────────────────────────────
    STRENGTH_ACCURACY_MIN: float = 85.0
    STRENGTH_CONSISTENCY_MIN: float = 80.0
    STRENGTH_COMPLETION_MIN: float = 90.0
    STRENGTH_TREND_MIN: float = 10.0
    WEAKNESS_ACCURACY_MAX: float = 70.0
    WEAKNESS_CONSISTENCY_MAX: float = 60.0
    WEAKNESS_COMPLETION_MAX: float = 70.0
    WEAKNESS_TREND_MAX: float = -10.0
    RECOMMEND_FOCUS_COMPLETION_MAX: float = 80.0

    # ── Display labels for true/false answers ───────────────────────────
    TRUE_LABEL: str = "True"
    FALSE_LABEL: str = "False"

    model_config = {"env_file": str(_ENV_FILE), "case_sensitive": True, "extra": "ignore"}


settings = Settings()
