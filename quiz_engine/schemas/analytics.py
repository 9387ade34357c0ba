"""Statistics and analysis schemas (derived, never persisted)."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_SNAPSHOT_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class WeeklyProgress(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    attempts_this_week: int = 0
    average_score_this_week: float = 0.0
    time_spent_this_week: float = 0.0


class GradeDistribution(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    excellent: int = 0
    good: int = 0
    average: int = 0
    needs_improvement: int = 0


class QuizStatistics(BaseModel):
    """Performance snapshot computed from a list of attempts.

    ``has_data`` is False when the (filtered) attempt list was empty; every
    numeric field is then zero.
    """

    model_config = _SNAPSHOT_CONFIG

    quiz_id: str | None = None
    has_data: bool = False
    total_attempts: int = 0
    completed: int = 0
    average_score: float = 0.0
    best_score: float = 0.0
    worst_score: float = 0.0
    consistency: float = 0.0
    trend: float = 0.0
    recent_scores: tuple[float, ...] = ()
    completion_rate: float = 0.0
    average_time: float = 0.0
    best_time: float = 0.0
    total_time_spent: float = 0.0
    last_attempted: datetime | None = None
    weekly_progress: WeeklyProgress = WeeklyProgress()
    grade_distribution: GradeDistribution = GradeDistribution()


class Insight(BaseModel):
    """A classified strength or weakness."""

    model_config = _SNAPSHOT_CONFIG

    type: str
    title: str
    description: str
    icon: str
    severity: Literal["high", "medium"] | None = None


class Recommendation(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    type: str
    title: str
    description: str
    icon: str


class PerformanceLevel(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    level: Literal["expert", "advanced", "intermediate", "beginner"]
    score: float
    icon: str
    description: str


class AnalysisReport(BaseModel):
    """Statistics plus the qualitative signals derived from them.

    ``error`` carries the banner text when attempt history could not be
    fetched; the statistics are then the no-data snapshot.
    """

    model_config = _SNAPSHOT_CONFIG

    stats: QuizStatistics
    performance_level: PerformanceLevel | None = None
    strengths: tuple[Insight, ...] = ()
    weaknesses: tuple[Insight, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()
    error: str | None = None
