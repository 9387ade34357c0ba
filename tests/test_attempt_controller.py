"""Tests for the attempt state machine.

Covers:
  start → answer → next/previous → confirm_submit
  best-effort per-question writes (ordering, failures, non-blocking)
  completion failure semantics and post-attempt review
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from quiz_engine.core.errors import InvalidTransition, QuestionNotAnswered, StartAttemptFailure
from quiz_engine.schemas.attempt import AttemptStatus, CompletedAttempt, StartedAttempt
from quiz_engine.services.attempt_controller import AttemptController

from conftest import CORRECT_ANSWERS


# ── Helpers ────────────────────────────────────────────────────────────────────


async def _started(quiz, gateway, **kwargs) -> AttemptController:
    controller = AttemptController(quiz, gateway, **kwargs)
    await controller.start()
    return controller


async def _answer_all(controller: AttemptController, answers=CORRECT_ANSWERS) -> None:
    """Answer every question and stop at the confirmation step."""
    for q in controller.quiz.questions:
        controller.set_answer(answers[q.id])
        await controller.next()


# ── Start ──────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_start_opens_attempt_on_first_question(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)

    assert controller.session.status == AttemptStatus.IN_PROGRESS
    assert controller.session.id == "att-1"
    assert controller.session.started_at is not None
    assert controller.current_question.id == "q1"
    assert fake_gateway.calls == [("start", "42")]


@pytest.mark.asyncio
async def test_start_failure_keeps_attempt_not_started(quiz, fake_gateway):
    fake_gateway.fail_start = True
    controller = AttemptController(quiz, fake_gateway)

    with pytest.raises(StartAttemptFailure):
        await controller.start()

    assert controller.session.status == AttemptStatus.NOT_STARTED
    assert controller.session.id is None
    assert fake_gateway.calls == [("start", "42")]  # no automatic retry

    fake_gateway.fail_start = False
    await controller.start()
    assert controller.session.status == AttemptStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_commands_rejected_before_start(quiz, fake_gateway):
    controller = AttemptController(quiz, fake_gateway)
    with pytest.raises(InvalidTransition):
        controller.set_answer(0)
    with pytest.raises(InvalidTransition):
        await controller.next()


@pytest.mark.asyncio
async def test_start_twice_is_rejected(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    with pytest.raises(InvalidTransition):
        await controller.start()


def test_quiz_without_questions_is_rejected(quiz, fake_gateway):
    empty = quiz.model_copy(update={"questions": []})
    with pytest.raises(ValueError):
        AttemptController(empty, fake_gateway)


# ── Answers & feedback ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_set_answer_gives_instant_feedback(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)

    fb = controller.set_answer(2)
    assert fb is not None and fb.is_correct is False

    fb = controller.set_answer(0)
    assert fb.is_correct is True
    assert controller.state.feedback["q1"].is_correct is True
    assert len(controller.state.answers) == 1  # overwritten, not appended


@pytest.mark.asyncio
async def test_set_answer_is_idempotent(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)

    controller.set_answer(0)
    first_feedback = dict(controller.state.feedback)
    first_answers = dict(controller.state.answers)
    controller.set_answer(0)

    assert controller.state.feedback == first_feedback
    assert controller.state.answers == first_answers
    assert fake_gateway.submissions == []


@pytest.mark.asyncio
async def test_clearing_answer_clears_feedback(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    controller.set_answer(0)
    await controller.next()
    controller.set_answer(0)
    await controller.next()

    controller.set_answer("Rome")
    assert "q3" in controller.state.feedback
    controller.set_answer("   ")
    assert "q3" not in controller.state.feedback
    assert controller.is_current_answered() is False


@pytest.mark.asyncio
async def test_partial_matching_has_no_feedback(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    for q in quiz.questions[:3]:
        controller.set_answer(CORRECT_ANSWERS[q.id])
        await controller.next()

    assert controller.set_match("1", "b") is None
    assert "q4" not in controller.state.feedback

    fb = controller.set_match("2", "a")
    assert fb is not None and fb.is_correct is False

    controller.set_match("1", "a")
    fb = controller.set_match("2", "b")
    assert fb.is_correct is True
    assert len(controller.answer_for("q4")) == 2

    assert controller.set_match("2", "") is None
    assert "q4" not in controller.state.feedback


@pytest.mark.asyncio
async def test_set_match_on_other_question_type(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    with pytest.raises(ValueError):
        controller.set_match("1", "a")


# ── Navigation ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_next_requires_an_answer(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    with pytest.raises(QuestionNotAnswered):
        await controller.next()
    assert controller.state.current_index == 0


@pytest.mark.asyncio
async def test_next_does_not_wait_for_the_write(quiz, fake_gateway):
    fake_gateway.submit_delay = 0.05
    controller = await _started(quiz, fake_gateway)

    controller.set_answer(0)
    view = await controller.next()

    assert view.current_index == 1
    assert controller.pending_writes == 1
    assert fake_gateway.submissions == []

    await controller.flush()
    assert [s.question_id for s in fake_gateway.submissions] == ["q1"]
    assert controller.state.last_writes["q1"].ok is True


@pytest.mark.asyncio
async def test_failed_write_never_blocks_navigation(quiz, fake_gateway):
    fake_gateway.fail_submit = True
    controller = await _started(quiz, fake_gateway)

    controller.set_answer(0)
    await controller.next()
    await controller.flush()

    assert controller.state.current_index == 1
    result = controller.state.last_writes["q1"]
    assert result.ok is False
    assert "write rejected" in result.error


@pytest.mark.asyncio
async def test_writes_are_sequential_and_ordered(quiz, fake_gateway):
    fake_gateway.submit_delay = 0.01
    controller = await _started(quiz, fake_gateway)

    for q in quiz.questions[:3]:
        controller.set_answer(CORRECT_ANSWERS[q.id])
        await controller.next()
    assert controller.pending_writes >= 1

    await controller.flush()
    assert fake_gateway.max_in_flight == 1
    assert [s.question_id for s in fake_gateway.submissions] == ["q1", "q2", "q3"]


@pytest.mark.asyncio
async def test_true_false_submitted_as_boolean(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    controller.set_answer(0)
    await controller.next()
    controller.set_answer(1)
    await controller.next()
    await controller.flush()

    tf = fake_gateway.submissions[1]
    assert tf.question_type == "true-false"
    assert tf.answer is False


@pytest.mark.asyncio
async def test_time_on_question_uses_clock(quiz, fake_gateway, clock):
    controller = await _started(quiz, fake_gateway, clock=clock)

    clock.advance(2.5)
    controller.set_answer(0)
    await controller.next()
    clock.advance(1.0)
    controller.set_answer(0)
    await controller.next()
    await controller.flush()

    assert [s.time_spent_ms for s in fake_gateway.submissions] == [2500, 1000]


@pytest.mark.asyncio
async def test_previous_keeps_answers_and_feedback(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    controller.set_answer(2)
    await controller.next()
    controller.set_answer(0)

    view = controller.previous()

    assert view.current_index == 0
    assert view.current_answer == 2
    assert view.current_feedback.is_correct is False
    assert controller.answer_for("q2") == 0
    assert controller.state.feedback["q2"].is_correct is True


@pytest.mark.asyncio
async def test_previous_on_first_question_stays(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    assert controller.previous().current_index == 0


@pytest.mark.asyncio
async def test_next_on_last_question_asks_for_confirmation(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    await _answer_all(controller)

    assert controller.state.current_index == 3
    assert controller.session.awaiting_confirmation is True
    assert controller.session.status == AttemptStatus.IN_PROGRESS

    controller.cancel_confirmation()
    assert controller.session.awaiting_confirmation is False

    await controller.next()
    controller.previous()
    assert controller.session.awaiting_confirmation is False
    assert controller.state.current_index == 2


# ── Completion ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_end_to_end_all_correct(quiz, fake_gateway):
    fake_gateway.score = 100.0
    controller = await _started(quiz, fake_gateway)

    live_feedback = {}
    for q in quiz.questions:
        live_feedback[q.id] = controller.set_answer(CORRECT_ANSWERS[q.id]).is_correct
        await controller.next()

    session = await controller.confirm_submit()

    assert session.status == AttemptStatus.COMPLETED
    assert session.score == 100.0
    assert session.score_verified is True
    assert session.completed_at is not None

    review = controller.review()
    assert all(item.is_correct for item in review)
    assert {item.question_id: item.is_correct for item in review} == live_feedback
    assert review[0].correct_answer == "Paris"
    assert review[1].correct_answer == "True"
    assert review[2].correct_answer == "Rome"
    assert [row.match_text for row in review[3].correct_answer] == ["Paris", "Berlin"]


@pytest.mark.asyncio
async def test_confirm_flushes_writes_before_completing(quiz, fake_gateway):
    fake_gateway.submit_delay = 0.01
    controller = await _started(quiz, fake_gateway)
    await _answer_all(controller)

    await controller.confirm_submit()

    kinds = [c[0] for c in fake_gateway.calls]
    assert kinds == ["start", "submit", "submit", "submit", "submit", "complete"]
    assert fake_gateway.max_in_flight == 1


@pytest.mark.asyncio
async def test_confirm_persists_unsent_current_answer(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    for q in quiz.questions[:3]:
        controller.set_answer(CORRECT_ANSWERS[q.id])
        await controller.next()
    controller.set_answer(CORRECT_ANSWERS["q4"])

    await controller.confirm_submit()

    assert [s.question_id for s in fake_gateway.submissions] == ["q1", "q2", "q3", "q4"]
    assert fake_gateway.submissions[-1].answer == [
        {"item": "2", "match": "b"},
        {"item": "1", "match": "a"},
    ]


@pytest.mark.asyncio
async def test_confirm_before_last_question_is_rejected(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    controller.set_answer(0)
    with pytest.raises(InvalidTransition):
        await controller.confirm_submit()


@pytest.mark.asyncio
async def test_completion_failure_still_marks_completed(quiz, fake_gateway):
    fake_gateway.fail_complete = True
    controller = await _started(quiz, fake_gateway)
    await _answer_all(controller)

    session = await controller.confirm_submit()

    assert session.status == AttemptStatus.COMPLETED
    assert session.score is None
    assert session.score_verified is False
    assert "timeout talking to scorer" in session.completion_error


@pytest.mark.asyncio
async def test_completed_attempt_is_terminal(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    await _answer_all(controller)
    await controller.confirm_submit()

    with pytest.raises(InvalidTransition):
        controller.set_answer(1)
    with pytest.raises(InvalidTransition):
        controller.previous()
    with pytest.raises(InvalidTransition):
        await controller.confirm_submit()


@pytest.mark.asyncio
async def test_commands_rejected_while_submitting(quiz, fake_gateway):
    fake_gateway.submit_delay = 0.05
    controller = await _started(quiz, fake_gateway)
    await _answer_all(controller)

    submitting = asyncio.create_task(controller.confirm_submit())
    await asyncio.sleep(0)
    with pytest.raises(InvalidTransition):
        controller.previous()
    await submitting
    assert controller.session.status == AttemptStatus.COMPLETED


@pytest.mark.asyncio
async def test_total_time_sent_on_completion(quiz, clock):
    gateway = AsyncMock()
    gateway.start_attempt.return_value = StartedAttempt(id=5)
    gateway.complete_attempt.return_value = CompletedAttempt(score=75.0)

    controller = await _started(quiz, gateway, clock=clock)
    for q in quiz.questions:
        clock.advance(10)
        controller.set_answer(CORRECT_ANSWERS[q.id])
        await controller.next()
    session = await controller.confirm_submit()

    gateway.complete_attempt.assert_awaited_once_with("5", total_time_spent=40)
    assert gateway.submit_answer.await_count == 4
    assert session.score == 75.0


@pytest.mark.asyncio
async def test_repeated_next_while_awaiting_confirmation_writes_once(quiz, fake_gateway):
    controller = await _started(quiz, fake_gateway)
    await _answer_all(controller)

    await controller.next()
    await controller.next()
    controller.set_answer(CORRECT_ANSWERS["q4"])  # same value
    await controller.next()
    await controller.flush()
    assert [s.question_id for s in fake_gateway.submissions] == ["q1", "q2", "q3", "q4"]

    changed = [{"item": "1", "match": "b"}, {"item": "2", "match": "a"}]
    controller.set_answer(changed)
    view = await controller.next()
    await controller.flush()

    assert view.session.awaiting_confirmation is True
    assert [s.question_id for s in fake_gateway.submissions] == ["q1", "q2", "q3", "q4", "q4"]
    assert fake_gateway.submissions[-1].answer == changed
