"""Pydantic schemas, re-exported for convenience."""

from quiz_engine.schemas.quiz import (  # noqa: F401
    FillInBlankQuestion,
    MatchingQuestion,
    MatchPair,
    MultipleChoiceQuestion,
    Question,
    QuizDefinition,
    TrueFalseQuestion,
)
from quiz_engine.schemas.attempt import (  # noqa: F401
    AnswerRecord,
    AnswerSubmission,
    AnswerUpdate,
    Attempt,
    AttemptSession,
    AttemptStartRequest,
    AttemptStatus,
    AttemptView,
    CompletedAttempt,
    FeedbackRecord,
    MatchDisplayRow,
    MatchUpdate,
    RecordResult,
    ReviewItem,
    StartedAttempt,
)
from quiz_engine.schemas.analytics import (  # noqa: F401
    AnalysisReport,
    GradeDistribution,
    Insight,
    PerformanceLevel,
    QuizStatistics,
    Recommendation,
    WeeklyProgress,
)
