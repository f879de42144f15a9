"""quiztrainer package initialization.

Self-quizzing trainer core: weighted question sampling, exam sessions with
instant or deferred feedback, answer grading and accuracy tracking.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .errors import EmptyPoolError, InvariantViolation, PersistenceError, QuizTrainerError
from .models import AnswerState, AttemptRecord, ExamSettings, Question
from .app.exam_builder import build_exam, start_exam
from .app.session_manager import ExamSession
from .results.repository import InMemoryRepository, ParquetRepository, QuestionRepository

__all__ = [
    "__version__",
    "QuizTrainerError",
    "EmptyPoolError",
    "PersistenceError",
    "InvariantViolation",
    "Question",
    "AttemptRecord",
    "ExamSettings",
    "AnswerState",
    "ExamSession",
    "build_exam",
    "start_exam",
    "QuestionRepository",
    "InMemoryRepository",
    "ParquetRepository",
]
