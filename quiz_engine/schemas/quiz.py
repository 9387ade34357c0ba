"""Quiz definition schemas, one model per question variant."""

from typing import Annotated, Literal, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    WrapValidator,
    field_validator,
)
from pydantic.alias_generators import to_camel

# Wire format uses camelCase (correctAnswer, columnA, ...); Python code uses snake_case.
WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# The remote service hands out integer ids; the engine keys everything by string.
EntityId = Annotated[str, BeforeValidator(lambda v: str(v) if isinstance(v, int) else v)]


def _none_if_invalid(value, handler):
    try:
        return handler(value)
    except ValidationError:
        return None


# Correctness data that does not parse is kept as None, and the question is graded wrong.
AnswerKey = WrapValidator(_none_if_invalid)


class MatchPair(BaseModel):
    """One item → match selection of a matching question."""

    model_config = WIRE_CONFIG

    item: EntityId
    match: EntityId


class _QuestionBase(BaseModel):
    model_config = WIRE_CONFIG

    id: EntityId
    question: str = ""
    explanation: str | None = None


class MultipleChoiceQuestion(_QuestionBase):
    """Pick one option. ``correct_answer`` is a 0-based index or a letter a–d."""

    type: Literal["multiple-choice"] = "multiple-choice"
    options: list[str] = []
    correct_answer: Annotated[int | str | None, AnswerKey] = None


class TrueFalseQuestion(_QuestionBase):
    """Options are shown as index 0 = true, 1 = false."""

    type: Literal["true-false"] = "true-false"
    correct_answer: Annotated[bool | None, AnswerKey] = None


class FillInBlankQuestion(_QuestionBase):
    type: Literal["fill-in-blank"] = "fill-in-blank"
    correct_answer: Annotated[str | None, AnswerKey] = None


class MatchingQuestion(_QuestionBase):
    """Pair every column-A key with a column-B key."""

    type: Literal["matching"] = "matching"
    column_a: dict[str, str] = Field(default_factory=dict)
    column_b: dict[str, str] = Field(default_factory=dict)
    correct_matches: Annotated[list[MatchPair] | None, AnswerKey] = None


Question = Annotated[
    Union[MultipleChoiceQuestion, TrueFalseQuestion, FillInBlankQuestion, MatchingQuestion],
    Field(discriminator="type"),
]


class QuizDefinition(BaseModel):
    """A quiz as handed to the attempt controller; question order drives navigation."""

    model_config = WIRE_CONFIG

    id: EntityId
    title: str
    description: str = ""
    questions: list[Question]

    @field_validator("questions")
    @classmethod
    def _unique_question_ids(cls, questions: list) -> list:
        seen: set[str] = set()
        for q in questions:
            if q.id in seen:
                raise ValueError(f"duplicate question id: {q.id}")
            seen.add(q.id)
        return questions
