"""Error taxonomy for the quiz attempt and analytics engine."""

from __future__ import annotations


class QuizEngineError(Exception):
    """Base class for every error raised by the engine."""


class GatewayError(QuizEngineError):
    """A call to the remote quiz-responses service failed.

    ``status_code`` is set when the service answered with an HTTP error,
    and is ``None`` for transport failures (connection refused, DNS, ...).
    """

    def __init__(self, operation: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.message = message
        self.status_code = status_code


class StartAttemptFailure(QuizEngineError):
    """The remote service refused to open an attempt; it stays NOT_STARTED."""

    def __init__(self, quiz_id: str, cause: Exception) -> None:
        super().__init__(f"Could not start an attempt for quiz {quiz_id}: {cause}")
        self.quiz_id = quiz_id
        self.cause = cause


class CompletionFailure(QuizEngineError):
    """The completion call failed, so the score could not be fetched."""

    def __init__(self, attempt_id: str, cause: Exception) -> None:
        super().__init__(f"Could not complete attempt {attempt_id}: {cause}")
        self.attempt_id = attempt_id
        self.cause = cause


class FetchAttemptsFailure(QuizEngineError):
    """Attempt history could not be loaded."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Could not load attempt history: {cause}")
        self.cause = cause


class InvalidTransition(QuizEngineError):
    """A command was issued in a state that does not accept it."""

    def __init__(self, command: str, status: str) -> None:
        super().__init__(f"Cannot {command} while attempt is {status}")
        self.command = command
        self.status = status


class QuestionNotAnswered(QuizEngineError):
    """The readiness gate refused to leave the current question."""

    def __init__(self, question_id: str) -> None:
        super().__init__(f"Question {question_id} has not been answered")
        self.question_id = question_id


class AttemptNotFound(QuizEngineError):
    """No controller owns the requested attempt."""

    def __init__(self, attempt_id: str) -> None:
        super().__init__(f"Attempt {attempt_id} not found")
        self.attempt_id = attempt_id
