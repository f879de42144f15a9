from __future__ import annotations

"""Exception types for the quiz trainer core."""

from typing import Any, Optional


class QuizTrainerError(Exception):
    """Base exception for quiztrainer."""


class EmptyPoolError(QuizTrainerError):
    """No eligible questions were left after a pipeline stage.

    `stage` is "sampling" when nothing matched the exam settings and
    "hard_mode" when the hard-mode filter removed everything.
    """

    SAMPLING = "sampling"
    HARD_MODE = "hard_mode"

    def __init__(self, stage: str, message: Optional[str] = None) -> None:
        if message is None:
            message = (
                "No hard questions left: every attempted question is above the accuracy threshold."
                if stage == self.HARD_MODE
                else "No questions matched these settings."
            )
        super().__init__(message)
        self.stage = stage

    @property
    def mastered(self) -> bool:
        return self.stage == self.HARD_MODE


class PersistenceError(QuizTrainerError):
    """Reading questions or writing attempt records failed."""

    def __init__(self, message: str, operation: str = "", cause: Any = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.cause = cause


class InvariantViolation(QuizTrainerError):
    """A question is malformed (bad option set or answer not among options)."""

    def __init__(self, question_id: Any, reason: str) -> None:
        super().__init__(f"Question {question_id}: {reason}")
        self.question_id = question_id
        self.reason = reason
