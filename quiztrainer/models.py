from __future__ import annotations

"""Core data model: questions, attempt records, exam settings, per-question answer state."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

MULTIPLE_CHOICE = "multiple_choice"
SHORT_ANSWER = "short_answer"
QUESTION_TYPES = {MULTIPLE_CHOICE, SHORT_ANSWER}

QuestionType = Literal["multiple_choice", "short_answer"]


@dataclass(frozen=True)
class Question:
    """A single quiz item.

    For multiple choice, `correct_answer` is the literal text of one option.
    For short answer, it is a comma-separated list of accepted synonyms and
    `options` is empty.
    """

    id: int
    text: str
    type: QuestionType = MULTIPLE_CHOICE
    options: Tuple[str, ...] = ()
    correct_answer: str = ""
    explanation: str = ""
    category: str = ""

    @property
    def is_multiple_choice(self) -> bool:
        return self.type == MULTIPLE_CHOICE

    @property
    def is_short_answer(self) -> bool:
        return self.type == SHORT_ANSWER

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Question":
        """Build from a storage row; accepts both our names and the question-bank column names."""
        qtype = row.get("type") or row.get("question_type") or MULTIPLE_CHOICE
        options = row.get("options")
        if options is None:
            options = ()
        return cls(
            id=int(row["id"]),
            text=str(row.get("text") if row.get("text") is not None else row.get("question_text", "")),
            type=str(qtype),  # type: ignore[arg-type]
            options=tuple(str(o) for o in options),
            correct_answer=str(row.get("correct_answer") or ""),
            explanation=str(row.get("explanation") or ""),
            category=str(row.get("category") or ""),
        )

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["options"] = list(self.options)
        return row


@dataclass(frozen=True)
class AttemptRecord:
    """Immutable log entry for one graded answer."""

    user: Optional[str]
    question_id: int
    category: str
    is_correct: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: Optional[str] = None


@dataclass(frozen=True)
class ExamSettings:
    """Settings chosen before an exam starts; fixed for the session's lifetime."""

    category: Optional[str] = None
    allow_backtracking: bool = True
    instant_feedback: bool = True
    timed: bool = False
    record_stats: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExamSettings":
        cat = data.get("category")
        return cls(
            category=str(cat) if cat else None,
            allow_backtracking=bool(data.get("allow_backtracking", True)),
            instant_feedback=bool(data.get("instant_feedback", True)),
            timed=bool(data.get("timed", False)),
            record_stats=bool(data.get("record_stats", True)),
        )


@dataclass
class AnswerState:
    selected_option: Optional[str] = None
    is_answered: bool = False
    is_correct: bool = False
    overruled: bool = False
