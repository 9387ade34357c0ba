"""Performance statistics over a user's attempt history.

``compute_statistics`` is a pure function of its inputs and is recomputed
from scratch on every call; nothing is cached between calls.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Iterable

from quiz_engine.config import settings
from quiz_engine.schemas.analytics import GradeDistribution, QuizStatistics, WeeklyProgress
from quiz_engine.schemas.attempt import Attempt, AttemptStatus

logger = logging.getLogger(__name__)

# Grade tiers (lower bounds, inclusive)
GRADE_EXCELLENT = 90.0
GRADE_GOOD = 80.0
GRADE_AVERAGE = 70.0

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def calculate_grade(score: float) -> str:
    """Tier of a single score: excellent, good, average or needsImprovement."""
    if score >= GRADE_EXCELLENT:
        return "excellent"
    if score >= GRADE_GOOD:
        return "good"
    if score >= GRADE_AVERAGE:
        return "average"
    return "needsImprovement"


def _aware(dt: datetime | None) -> datetime:
    """Naive timestamps from the service are UTC."""
    if dt is None:
        return _EPOCH
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _population_stddev(values: list[float]) -> float:
    if len(values) < 2:
        return 0.0
    avg = _mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def _r(x: float) -> float:
    return round(x, 2)


def grade_distribution(scores: Iterable[float]) -> GradeDistribution:
    counts = {"excellent": 0, "good": 0, "average": 0, "needsImprovement": 0}
    for s in scores:
        counts[calculate_grade(s)] += 1
    return GradeDistribution(
        excellent=counts["excellent"],
        good=counts["good"],
        average=counts["average"],
        needs_improvement=counts["needsImprovement"],
    )


def weekly_progress(
    attempts: list[Attempt], *, now: datetime, days: int = settings.WEEKLY_WINDOW_DAYS
) -> WeeklyProgress:
    """Attempts of any status created within the trailing window."""
    since = now - timedelta(days=days)
    recent = [a for a in attempts if a.created_at is not None and _aware(a.created_at) >= since]
    return WeeklyProgress(
        attempts_this_week=len(recent),
        average_score_this_week=_r(_mean([a.score or 0.0 for a in recent])),
        time_spent_this_week=_r(sum(a.time_spent or 0.0 for a in recent)),
    )


def compute_statistics(
    attempts: list[Attempt],
    quiz_id: str | None = None,
    *,
    now: datetime | None = None,
    trend_window: int = settings.TREND_WINDOW,
) -> QuizStatistics:
    """Aggregate *attempts* (optionally only those of *quiz_id*) into a snapshot.

    An empty list yields the no-data snapshot (``has_data=False``, all zeros)
    instead of an error.
    """
    if quiz_id is not None:
        quiz_id = str(quiz_id)
        attempts = [a for a in attempts if a.quiz_id == quiz_id]
    if not attempts:
        return QuizStatistics(quiz_id=quiz_id)

    now = _aware(now or datetime.now(timezone.utc))

    # Chronological order; attempts without a timestamp sort first.
    completed = sorted(
        (a for a in attempts if a.status == AttemptStatus.COMPLETED),
        key=lambda a: _aware(a.created_at),
    )
    scores = [a.score or 0.0 for a in completed]
    times = [a.time_spent or 0.0 for a in completed]

    average = _mean(scores)
    consistency = max(0.0, 100.0 - _population_stddev(scores))

    recent_scores = scores[-trend_window:] if trend_window > 0 else []
    trend = recent_scores[-1] - recent_scores[0] if len(recent_scores) >= 2 else 0.0

    dated = [a.created_at for a in attempts if a.created_at is not None]
    last_attempted = max(dated, key=_aware) if dated else None

    stats = QuizStatistics(
        quiz_id=quiz_id,
        has_data=True,
        total_attempts=len(attempts),
        completed=len(completed),
        average_score=_r(average),
        best_score=_r(max(scores, default=0.0)),
        worst_score=_r(min(scores, default=0.0)),
        consistency=_r(consistency),
        trend=_r(trend),
        recent_scores=tuple(recent_scores),
        completion_rate=_r(len(completed) / len(attempts) * 100),
        average_time=_r(_mean(times)),
        best_time=_r(min(times, default=0.0)),
        total_time_spent=_r(sum(times)),
        last_attempted=last_attempted,
        weekly_progress=weekly_progress(attempts, now=now),
        grade_distribution=grade_distribution(scores),
    )
    logger.debug(
        "Statistics for quiz=%s: %d attempts, avg=%.2f, trend=%.2f",
        quiz_id, stats.total_attempts, stats.average_score, stats.trend,
    )
    return stats
