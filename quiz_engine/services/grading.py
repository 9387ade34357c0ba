"""Answer evaluation for every question variant.

Each variant has its own correctness rule:
  - multiple-choice: option index, the key may be stored as an index or a letter a–d
  - true-false: the UI sends index 0 for "true" and 1 for "false"
  - fill-in-blank: trimmed, case-insensitive exact match
  - matching: set equality between submitted and canonical item → match pairs

Evaluation is pure and never raises: a question whose correctness data is
missing or malformed is simply graded wrong.
"""

from __future__ import annotations

import logging
from typing import Any, assert_never

from quiz_engine.schemas.attempt import MatchDisplayRow
from quiz_engine.schemas.quiz import (
    FillInBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    Question,
    TrueFalseQuestion,
)

logger = logging.getLogger(__name__)

_LETTER_TO_INDEX = {"a": 0, "b": 1, "c": 2, "d": 3}


# ── Normalisation helpers ─────────────────────────────────────────────────────


def _as_index(value: Any) -> int | None:
    """Coerce an option index (int or numeric string) to int, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def correct_option_index(question: MultipleChoiceQuestion) -> int | None:
    """Index form of a multiple-choice key, whether stored as an index or a letter."""
    key = question.correct_answer
    if isinstance(key, str):
        letter = key.strip().lower()
        if letter in _LETTER_TO_INDEX:
            return _LETTER_TO_INDEX[letter]
    return _as_index(key)


def _true_false_choice(value: Any) -> bool | None:
    """Map the UI encoding (0 = true, 1 = false) to a boolean."""
    if isinstance(value, bool):
        return value
    idx = _as_index(value)
    if idx == 0:
        return True
    if idx == 1:
        return False
    return None


def _pair_set(pairs: Any) -> set[tuple[str, str]] | None:
    """Turn submitted or canonical matches into a set of (item, match) tuples."""
    if not isinstance(pairs, (list, tuple)):
        return None
    out: set[tuple[str, str]] = set()
    for p in pairs:
        if isinstance(p, dict):
            item, match = p.get("item"), p.get("match")
        else:
            item, match = getattr(p, "item", None), getattr(p, "match", None)
        if item is None or match is None:
            return None
        out.add((str(item), str(match)))
    return out


def _match_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


# ── Emptiness & readiness ─────────────────────────────────────────────────────


def has_answer_value(value: Any) -> bool:
    """False for None, blank strings and empty collections."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def is_answered(question: Question, value: Any) -> bool:
    """Readiness gate: may the user leave this question?

    Multiple-choice and true/false need a selection, fill-in-blank needs
    non-blank text, matching needs exactly one match per column-A item.
    """
    if value is None:
        return False
    if isinstance(question, (MultipleChoiceQuestion, TrueFalseQuestion)):
        return True
    if isinstance(question, FillInBlankQuestion):
        return isinstance(value, str) and value.strip() != ""
    if isinstance(question, MatchingQuestion):
        matches = _match_list(value)
        required = set(question.column_a)
        items = [str(m.get("item")) if isinstance(m, dict) else str(getattr(m, "item", "")) for m in matches]
        return len(items) == len(required) and set(items) == required
    assert_never(question)


# ── Correctness ───────────────────────────────────────────────────────────────


def is_correct(question: Question, submitted: Any) -> bool:
    """Grade *submitted* against the question's canonical answer."""
    if isinstance(question, MultipleChoiceQuestion):
        expected = correct_option_index(question)
        chosen = _as_index(submitted)
        return expected is not None and chosen is not None and chosen == expected

    if isinstance(question, TrueFalseQuestion):
        if question.correct_answer is None:
            return False
        choice = _true_false_choice(submitted)
        return choice is not None and choice == question.correct_answer

    if isinstance(question, FillInBlankQuestion):
        if question.correct_answer is None or not isinstance(submitted, str):
            return False
        student = submitted.strip()
        if not student:
            return False
        return student.lower() == question.correct_answer.strip().lower()

    if isinstance(question, MatchingQuestion):
        canonical = _pair_set(question.correct_matches)
        submitted_list = _match_list(submitted)
        given = _pair_set(submitted_list)
        if not canonical or given is None:
            return False
        if len(submitted_list) != len(question.correct_matches or []):
            return False
        return canonical.issubset(given)

    assert_never(question)


def feedback_ready(question: Question, value: Any) -> bool:
    """Whether instant feedback should be shown for *value*.

    Partial matchings never show correctness; every other variant shows
    feedback as soon as the value is non-empty.
    """
    if isinstance(question, MatchingQuestion):
        return has_answer_value(value) and is_answered(question, value)
    if isinstance(question, (MultipleChoiceQuestion, TrueFalseQuestion, FillInBlankQuestion)):
        return has_answer_value(value)
    assert_never(question)


# ── Display & wire form ───────────────────────────────────────────────────────


def get_correct_answer_display(
    question: Question,
    *,
    true_label: str = "True",
    false_label: str = "False",
) -> str | list[MatchDisplayRow] | None:
    """Renderable canonical answer for post-attempt review."""
    if isinstance(question, MultipleChoiceQuestion):
        idx = correct_option_index(question)
        if idx is None or not 0 <= idx < len(question.options):
            return None
        return question.options[idx]

    if isinstance(question, TrueFalseQuestion):
        if question.correct_answer is None:
            return None
        return true_label if question.correct_answer else false_label

    if isinstance(question, FillInBlankQuestion):
        return question.correct_answer

    if isinstance(question, MatchingQuestion):
        if not question.correct_matches:
            return None
        by_item = {m.item: m.match for m in question.correct_matches}
        rows = []
        for key, text in question.column_a.items():
            match = by_item.get(key)
            rows.append(
                MatchDisplayRow(
                    item=key,
                    item_text=text,
                    match=match,
                    match_text=question.column_b.get(match) if match is not None else None,
                )
            )
        return rows

    assert_never(question)


def to_submission_payload(question: Question, value: Any) -> Any:
    """Answer in the shape the remote service stores it."""
    if isinstance(question, TrueFalseQuestion):
        return _true_false_choice(value)
    if isinstance(question, MatchingQuestion):
        return [
            {"item": str(m["item"]), "match": str(m["match"])} if isinstance(m, dict)
            else {"item": m.item, "match": m.match}
            for m in _match_list(value)
        ]
    if isinstance(question, (MultipleChoiceQuestion, FillInBlankQuestion)):
        return value
    assert_never(question)
