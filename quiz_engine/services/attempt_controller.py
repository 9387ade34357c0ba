"""Attempt lifecycle: one controller owns one quiz attempt.

Flow:
  1. start()           → open the attempt remotely, cursor on question 0
  2. set_answer(value) → store the answer, instant feedback when non-empty
  3. next()            → best-effort persist the answer, advance (or ask for
                         confirmation on the last question)
  4. previous()        → step back, answers and feedback are kept
  5. confirm_submit()  → flush pending writes, complete remotely, COMPLETED

Per-question writes are fire-and-forget: callers never wait for them and
their failures are only logged. They are still issued one after another,
so the remote side never sees two concurrent writes for the same attempt.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from quiz_engine.config import settings
from quiz_engine.core.errors import (
    CompletionFailure,
    InvalidTransition,
    QuestionNotAnswered,
    StartAttemptFailure,
)
from quiz_engine.schemas.attempt import (
    AnswerRecord,
    AnswerSubmission,
    AttemptSession,
    AttemptStatus,
    AttemptView,
    FeedbackRecord,
    RecordResult,
    ReviewItem,
)
from quiz_engine.schemas.quiz import MatchingQuestion, Question, QuizDefinition
from quiz_engine.services import grading
from quiz_engine.services.quiz_gateway import AttemptGateway

logger = logging.getLogger(__name__)

CORRECT_MESSAGE = "Correct answer!"
INCORRECT_MESSAGE = "Incorrect answer"


@dataclass
class AttemptState:
    """Everything a controller mutates; nothing outside the controller writes it."""

    session: AttemptSession
    current_index: int = 0
    answers: dict[str, AnswerRecord] = field(default_factory=dict)
    feedback: dict[str, FeedbackRecord] = field(default_factory=dict)
    last_writes: dict[str, RecordResult] = field(default_factory=dict)


class AttemptController:
    """Drives a single attempt through NOT_STARTED → IN_PROGRESS → COMPLETED."""

    def __init__(
        self,
        quiz: QuizDefinition,
        gateway: AttemptGateway,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not quiz.questions:
            raise ValueError(f"Quiz {quiz.id} has no questions")
        self.quiz = quiz
        self._gateway = gateway
        self._clock = clock
        self.state = AttemptState(session=AttemptSession(quiz_id=quiz.id))

        self._entered_at = clock()
        self._started_at_clock: float | None = None
        self._dirty: set[str] = set()
        self._write_tail: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()
        self._completing = False

    # ── read-only views ───────────────────────────────────────────────────

    @property
    def session(self) -> AttemptSession:
        return self.state.session

    @property
    def attempt_id(self) -> str | None:
        return self.state.session.id

    @property
    def current_question(self) -> Question:
        return self.quiz.questions[self.state.current_index]

    @property
    def is_last_question(self) -> bool:
        return self.state.current_index == len(self.quiz.questions) - 1

    def answer_for(self, question_id: str) -> Any:
        record = self.state.answers.get(question_id)
        return record.value if record else None

    def is_current_answered(self) -> bool:
        q = self.current_question
        return grading.is_answered(q, self.answer_for(q.id))

    @property
    def answered_count(self) -> int:
        return sum(
            1 for q in self.quiz.questions if grading.is_answered(q, self.answer_for(q.id))
        )

    @property
    def pending_writes(self) -> int:
        return sum(1 for t in self._pending if not t.done())

    def view(self) -> AttemptView:
        q = self.current_question
        return AttemptView(
            session=self.state.session,
            quiz_title=self.quiz.title,
            current_index=self.state.current_index,
            total_questions=len(self.quiz.questions),
            current_question=q,
            current_answer=self.answer_for(q.id),
            current_feedback=self.state.feedback.get(q.id),
            can_advance=self.is_current_answered(),
            answered_count=self.answered_count,
            pending_writes=self.pending_writes,
        )

    # ── guards ────────────────────────────────────────────────────────────

    def _require_in_progress(self, command: str) -> None:
        status = self.state.session.status
        if status != AttemptStatus.IN_PROGRESS:
            raise InvalidTransition(command, status.value)
        if self._completing:
            raise InvalidTransition(command, "being submitted")

    def _require_answered(self) -> Question:
        q = self.current_question
        if not grading.is_answered(q, self.answer_for(q.id)):
            raise QuestionNotAnswered(q.id)
        return q

    # ── lifecycle ─────────────────────────────────────────────────────────

    async def start(self) -> AttemptSession:
        """Open the attempt remotely. On failure the attempt stays NOT_STARTED."""
        status = self.state.session.status
        if status != AttemptStatus.NOT_STARTED:
            raise InvalidTransition("start", status.value)

        try:
            started = await self._gateway.start_attempt(self.quiz.id)
        except Exception as e:
            logger.warning("Starting attempt for quiz %s failed: %s", self.quiz.id, e)
            raise StartAttemptFailure(self.quiz.id, e) from e

        self.state.session = self.state.session.model_copy(
            update={
                "id": started.id,
                "status": AttemptStatus.IN_PROGRESS,
                "started_at": datetime.now(timezone.utc),
            }
        )
        self.state.current_index = 0
        self._started_at_clock = self._entered_at = self._clock()
        logger.info("Attempt %s started for quiz %s", started.id, self.quiz.id)
        return self.state.session

    def set_answer(self, value: Any) -> FeedbackRecord | None:
        """Store *value* for the current question and refresh its feedback."""
        self._require_in_progress("answer")
        q = self.current_question
        value = copy.deepcopy(value)
        previous = self.state.answers.get(q.id)

        self.state.answers[q.id] = AnswerRecord(
            attempt_id=self.attempt_id,
            question_id=q.id,
            value=value,
            time_spent_ms=previous.time_spent_ms if previous else 0,
        )
        if previous is None or previous.value != value:
            self._dirty.add(q.id)

        if not grading.feedback_ready(q, value):
            self.state.feedback.pop(q.id, None)
            return None

        ok = grading.is_correct(q, value)
        logger.debug("Question %s answered → %s", q.id, "correct" if ok else "incorrect")
        fb = FeedbackRecord(
            question_id=q.id,
            is_correct=ok,
            user_answer=value,
            message=CORRECT_MESSAGE if ok else INCORRECT_MESSAGE,
        )
        self.state.feedback[q.id] = fb
        return fb

    def set_match(self, item: str, match: str | None) -> FeedbackRecord | None:
        """Select (or with an empty *match*, clear) the match for one column-A item."""
        q = self.current_question
        if not isinstance(q, MatchingQuestion):
            raise ValueError(f"Question {q.id} is not a matching question")
        current = self.answer_for(q.id)
        matches = [
            m for m in (current if isinstance(current, list) else [])
            if isinstance(m, dict) and str(m.get("item")) != str(item)
        ]
        if match:
            matches.append({"item": str(item), "match": str(match)})
        return self.set_answer(matches)

    async def next(self) -> AttemptView:
        """Persist the current answer in the background and move forward."""
        self._require_in_progress("advance")
        q = self._require_answered()
        if self.state.session.awaiting_confirmation and q.id not in self._dirty:
            return self.view()
        self._stamp_time(q.id)
        self._schedule_record(q)

        if self.is_last_question:
            self.state.session = self.state.session.model_copy(update={"awaiting_confirmation": True})
        else:
            self.state.current_index += 1
            self._entered_at = self._clock()
        return self.view()

    def previous(self) -> AttemptView:
        self._require_in_progress("go back")
        self._stamp_time(self.current_question.id)
        if self.state.session.awaiting_confirmation:
            self.cancel_confirmation()
        if self.state.current_index > 0:
            self.state.current_index -= 1
        self._entered_at = self._clock()
        return self.view()

    def cancel_confirmation(self) -> AttemptView:
        self._require_in_progress("cancel confirmation")
        self.state.session = self.state.session.model_copy(update={"awaiting_confirmation": False})
        return self.view()

    async def confirm_submit(self) -> AttemptSession:
        """Complete the attempt.

        When the completion call fails the attempt is still marked COMPLETED
        locally, with ``score=None`` and ``score_verified=False``; the failure
        is kept in ``completion_error``.
        """
        self._require_in_progress("submit")
        if not self.is_last_question:
            raise InvalidTransition(
                "submit",
                f"on question {self.state.current_index + 1} of {len(self.quiz.questions)}",
            )
        q = self._require_answered()

        self._completing = True
        try:
            await self.flush()
            if q.id in self._dirty:
                self._stamp_time(q.id)
                self._dirty.discard(q.id)
                await self.record_answer(self._submission_for(q))

            attempt_id = self.attempt_id
            total_seconds = round(self._clock() - (self._started_at_clock or self._clock()))
            try:
                completed = await self._gateway.complete_attempt(attempt_id, total_time_spent=total_seconds)
            except Exception as e:
                failure = CompletionFailure(attempt_id, e)
                logger.warning("%s; attempt marked completed without a verified score", failure)
                update = {"score": None, "score_verified": False, "completion_error": str(failure)}
            else:
                logger.info("Attempt %s completed with score %s", attempt_id, completed.score)
                update = {"score": completed.score, "score_verified": True, "completion_error": None}

            self.state.session = self.state.session.model_copy(
                update={
                    **update,
                    "status": AttemptStatus.COMPLETED,
                    "completed_at": datetime.now(timezone.utc),
                    "awaiting_confirmation": False,
                }
            )
        finally:
            self._completing = False
        return self.state.session

    # ── persistence ───────────────────────────────────────────────────────

    def _stamp_time(self, question_id: str) -> None:
        record = self.state.answers.get(question_id)
        if record is None:
            return
        elapsed_ms = max(0, int((self._clock() - self._entered_at) * 1000))
        self.state.answers[question_id] = record.model_copy(update={"time_spent_ms": elapsed_ms})

    def _submission_for(self, q: Question) -> AnswerSubmission:
        record = self.state.answers[q.id]
        return AnswerSubmission(
            attempt_id=self.attempt_id,
            question_id=q.id,
            question_type=q.type,
            answer=grading.to_submission_payload(q, record.value),
            time_spent_ms=record.time_spent_ms,
        )

    def _schedule_record(self, q: Question) -> None:
        submission = self._submission_for(q)
        self._dirty.discard(q.id)
        task = asyncio.create_task(self._record_after(self._write_tail, submission))
        self._write_tail = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record_after(
        self, previous: asyncio.Task | None, submission: AnswerSubmission
    ) -> RecordResult:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        return await self.record_answer(submission)

    async def record_answer(self, submission: AnswerSubmission) -> RecordResult:
        """Best-effort write of one answer; failures are logged, never raised."""
        try:
            await self._gateway.submit_answer(submission)
        except Exception as e:
            logger.warning(
                "Submitting answer for question %s of attempt %s failed: %s",
                submission.question_id, submission.attempt_id, e,
            )
            result = RecordResult(question_id=submission.question_id, ok=False, error=str(e))
        else:
            result = RecordResult(question_id=submission.question_id, ok=True)
        self.state.last_writes[submission.question_id] = result
        return result

    async def flush(self) -> None:
        """Wait for every scheduled per-question write to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ── review ────────────────────────────────────────────────────────────

    def review(self) -> list[ReviewItem]:
        """Per-question outcome, graded by the same rules as live feedback."""
        items = []
        for q in self.quiz.questions:
            value = self.answer_for(q.id)
            items.append(
                ReviewItem(
                    question_id=q.id,
                    question=q.question,
                    question_type=q.type,
                    user_answer=value,
                    is_correct=grading.is_correct(q, value),
                    correct_answer=grading.get_correct_answer_display(
                        q, true_label=settings.TRUE_LABEL, false_label=settings.FALSE_LABEL
                    ),
                    explanation=q.explanation,
                )
            )
        return items
