"""Strengths, weaknesses and study recommendations from a statistics snapshot."""

from __future__ import annotations

from dataclasses import dataclass

from quiz_engine.config import settings
from quiz_engine.schemas.analytics import (
    AnalysisReport,
    Insight,
    PerformanceLevel,
    QuizStatistics,
    Recommendation,
)


@dataclass(frozen=True)
class Thresholds:
    """Cut-offs for classifying a snapshot.

    Strengths use inclusive lower bounds (except trend), weaknesses use
    exclusive upper bounds.
    """

    strength_accuracy_min: float = 85.0
    strength_consistency_min: float = 80.0
    strength_completion_min: float = 90.0
    strength_trend_min: float = 10.0
    weakness_accuracy_max: float = 70.0
    weakness_consistency_max: float = 60.0
    weakness_completion_max: float = 70.0
    weakness_trend_max: float = -10.0
    focus_completion_max: float = 80.0

    @classmethod
    def from_settings(cls) -> "Thresholds":
        return cls(
            strength_accuracy_min=settings.STRENGTH_ACCURACY_MIN,
            strength_consistency_min=settings.STRENGTH_CONSISTENCY_MIN,
            strength_completion_min=settings.STRENGTH_COMPLETION_MIN,
            strength_trend_min=settings.STRENGTH_TREND_MIN,
            weakness_accuracy_max=settings.WEAKNESS_ACCURACY_MAX,
            weakness_consistency_max=settings.WEAKNESS_CONSISTENCY_MAX,
            weakness_completion_max=settings.WEAKNESS_COMPLETION_MAX,
            weakness_trend_max=settings.WEAKNESS_TREND_MAX,
            focus_completion_max=settings.RECOMMEND_FOCUS_COMPLETION_MAX,
        )


DEFAULT_THRESHOLDS = Thresholds()

# Weights and cut-offs of the overall performance level
_LEVEL_WEIGHTS = (0.5, 0.3, 0.2)  # average score, consistency, completion rate
_LEVELS = (
    (85.0, "expert", "👑", "Expert Level"),
    (70.0, "advanced", "🎯", "Advanced"),
    (50.0, "intermediate", "📈", "Intermediate"),
)
_BASE_LEVEL = ("beginner", "🌱", "Beginner")


def identify_strengths(stats: QuizStatistics, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> list[Insight]:
    if not stats.has_data:
        return []
    out: list[Insight] = []
    if stats.average_score >= thresholds.strength_accuracy_min:
        out.append(Insight(
            type="accuracy", icon="🎯", title="High accuracy",
            description="Your answers are right most of the time.",
        ))
    if stats.consistency >= thresholds.strength_consistency_min:
        out.append(Insight(
            type="consistency", icon="📈", title="Consistent performance",
            description="Your scores stay stable from one attempt to the next.",
        ))
    if stats.completion_rate >= thresholds.strength_completion_min:
        out.append(Insight(
            type="completion", icon="✅", title="Reliable completion",
            description="You finish almost every quiz you start.",
        ))
    if stats.trend > thresholds.strength_trend_min:
        out.append(Insight(
            type="improvement", icon="📊", title="Improving",
            description="Your recent scores are clearly higher than before.",
        ))
    return out


def identify_weaknesses(stats: QuizStatistics, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> list[Insight]:
    if not stats.has_data:
        return []
    out: list[Insight] = []
    if stats.average_score < thresholds.weakness_accuracy_max:
        out.append(Insight(
            type="accuracy", icon="📚", title="Needs review", severity="high",
            description="Your average score is low; revisit the lesson material.",
        ))
    if stats.consistency < thresholds.weakness_consistency_max:
        out.append(Insight(
            type="consistency", icon="🎯", title="Inconsistent results", severity="medium",
            description="Your scores vary a lot between attempts.",
        ))
    if stats.completion_rate < thresholds.weakness_completion_max:
        out.append(Insight(
            type="completion", icon="⏱️", title="Time management", severity="medium",
            description="Many attempts are left unfinished.",
        ))
    if stats.trend < thresholds.weakness_trend_max:
        out.append(Insight(
            type="declining", icon="📉", title="Declining scores", severity="high",
            description="Your recent scores are lower than your earlier ones.",
        ))
    return out


def generate_recommendations(
    stats: QuizStatistics, thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> list[Recommendation]:
    """Ordered study actions; ``excellence`` when nothing needs attention."""
    if not stats.has_data:
        return []
    recs: list[Recommendation] = []
    if stats.average_score < thresholds.weakness_accuracy_max:
        recs.append(Recommendation(
            type="review", icon="📚", title="Review the content",
            description="Go back over the lessons before your next attempt.",
        ))
    if stats.consistency < thresholds.weakness_consistency_max:
        recs.append(Recommendation(
            type="practice", icon="🎯", title="Practice more",
            description="Regular practice will steady your results.",
        ))
    if stats.completion_rate < thresholds.focus_completion_max:
        recs.append(Recommendation(
            type="focus", icon="⏰", title="Improve your time management",
            description="Try to finish every quiz you start.",
        ))
    if stats.trend < thresholds.weakness_trend_max:
        recs.append(Recommendation(
            type="motivation", icon="💪", title="Stay motivated",
            description="A short break and a fresh start can turn the trend around.",
        ))
    if not recs:
        recs.append(Recommendation(
            type="excellence", icon="🌟", title="Keep it up",
            description="Your results are strong; try a harder quiz.",
        ))
    return recs


def performance_level(stats: QuizStatistics) -> PerformanceLevel:
    w_avg, w_cons, w_comp = _LEVEL_WEIGHTS
    score = stats.average_score * w_avg + stats.consistency * w_cons + stats.completion_rate * w_comp
    level, icon, description = _BASE_LEVEL
    for cutoff, name, name_icon, name_description in _LEVELS:
        if score >= cutoff:
            level, icon, description = name, name_icon, name_description
            break
    return PerformanceLevel(level=level, score=round(score, 2), icon=icon, description=description)


def analyze(
    stats: QuizStatistics,
    thresholds: Thresholds | None = None,
    *,
    error: str | None = None,
) -> AnalysisReport:
    """Bundle a snapshot with its qualitative signals."""
    thresholds = thresholds or Thresholds.from_settings()
    return AnalysisReport(
        stats=stats,
        performance_level=performance_level(stats) if stats.has_data else None,
        strengths=tuple(identify_strengths(stats, thresholds)),
        weaknesses=tuple(identify_weaknesses(stats, thresholds)),
        recommendations=tuple(generate_recommendations(stats, thresholds)),
        error=error,
    )
