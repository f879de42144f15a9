from __future__ import annotations

"""Question repository seam and two reference implementations.

`InMemoryRepository` keeps everything in lists (tests, embedding).
`ParquetRepository` reads/writes through `storage.store`; any failure in
there surfaces as `PersistenceError`.
"""

import logging
import random
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import pandas as pd
from pydantic import ValidationError

from storage.store import (
    append_attempts,
    append_questions,
    init_store,
    load_attempts,
    load_questions,
    validate_attempts,
    validate_questions,
)

from ..errors import PersistenceError
from ..models import AttemptRecord, Question

logger = logging.getLogger(__name__)


class QuestionRepository(Protocol):
    """Storage seam for questions and attempt records.

    Implementations raise `PersistenceError` when the backing store fails.
    `list_attempts(None)` returns every user's attempts.
    """

    def list_questions(self, category: Optional[str] = None) -> List[Question]: ...

    def sample_questions_by_category(self, category: str, limit: int) -> List[Question]: ...

    def sample_mixed_questions(self, limit: int) -> List[Question]: ...

    def record_attempts(self, records: Sequence[AttemptRecord]) -> None: ...

    def list_attempts(self, user: Optional[str]) -> List[AttemptRecord]: ...


def _random_subset(items: List[Question], limit: int, rng: random.Random) -> List[Question]:
    if limit <= 0 or limit >= len(items):
        out = list(items)
        rng.shuffle(out)
        return out
    return rng.sample(items, limit)


class InMemoryRepository:
    def __init__(
        self,
        questions: Iterable[Question] = (),
        attempts: Iterable[AttemptRecord] = (),
        rng: Optional[random.Random] = None,
    ) -> None:
        self._questions: Dict[int, Question] = {}
        for q in questions:
            self._questions[q.id] = q
        self._attempts: List[AttemptRecord] = list(attempts)
        self._rng = rng or random.Random()

    def add_questions(self, questions: Iterable[Question]) -> None:
        for q in questions:
            self._questions[q.id] = q

    def list_questions(self, category: Optional[str] = None) -> List[Question]:
        qs = sorted(self._questions.values(), key=lambda q: q.id)
        if category is None:
            return qs
        return [q for q in qs if q.category == category]

    def sample_questions_by_category(self, category: str, limit: int) -> List[Question]:
        return _random_subset(self.list_questions(category), limit, self._rng)

    def sample_mixed_questions(self, limit: int) -> List[Question]:
        return _random_subset(self.list_questions(), limit, self._rng)

    def record_attempts(self, records: Sequence[AttemptRecord]) -> None:
        self._attempts.extend(records)

    def list_attempts(self, user: Optional[str]) -> List[AttemptRecord]:
        if user is None:
            return list(self._attempts)
        return [a for a in self._attempts if a.user == user]


def _rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame rows as plain dicts with pandas missing values turned into None."""
    if df.empty:
        return []
    clean = df.astype(object).where(pd.notna(df), None)
    return clean.to_dict(orient="records")


def _attempt_from_row(row: Dict[str, Any]) -> AttemptRecord:
    ts = row["timestamp"]
    if isinstance(ts, pd.Timestamp):
        ts = ts.to_pydatetime()
    return AttemptRecord(
        user=row.get("user"),
        question_id=int(row["question_id"]),
        category=str(row.get("category") or ""),
        is_correct=bool(row.get("is_correct")),
        timestamp=ts,
        session_id=row.get("session_id"),
    )


class ParquetRepository:
    """Repository over the Parquet store in `data_dir` (questions.parquet, attempts.parquet)."""

    def __init__(self, data_dir: Path | str, rng: Optional[random.Random] = None) -> None:
        self.data_dir = Path(data_dir)
        self._rng = rng or random.Random()
        try:
            init_store(self.data_dir)
        except OSError as exc:
            raise PersistenceError(f"cannot initialise store at {self.data_dir}", "init", exc) from exc

    def add_questions(self, questions: Iterable[Question]) -> None:
        try:
            df = validate_questions([q.to_row() for q in questions])
            append_questions(df, self.data_dir)
        except (ValidationError, OSError, ValueError) as exc:
            raise PersistenceError("failed to store questions", "add_questions", exc) from exc

    def list_questions(self, category: Optional[str] = None) -> List[Question]:
        try:
            df = load_questions(self.data_dir, category=category)
        except (OSError, ValueError) as exc:
            raise PersistenceError("failed to load questions", "list_questions", exc) from exc
        return [Question.from_row(r) for r in _rows(df)]

    def sample_questions_by_category(self, category: str, limit: int) -> List[Question]:
        return _random_subset(self.list_questions(category), limit, self._rng)

    def sample_mixed_questions(self, limit: int) -> List[Question]:
        return _random_subset(self.list_questions(), limit, self._rng)

    def record_attempts(self, records: Sequence[AttemptRecord]) -> None:
        if not records:
            return
        rows = [
            {
                "user": r.user,
                "question_id": r.question_id,
                "category": r.category,
                "is_correct": r.is_correct,
                "timestamp": r.timestamp,
                "session_id": r.session_id,
            }
            for r in records
        ]
        try:
            df = validate_attempts(rows)
            append_attempts(df, self.data_dir)
        except (ValidationError, OSError, ValueError) as exc:
            raise PersistenceError("failed to record attempts", "record_attempts", exc) from exc
        logger.debug("Recorded %d attempts to %s", len(rows), self.data_dir)

    def list_attempts(self, user: Optional[str]) -> List[AttemptRecord]:
        try:
            df = load_attempts(self.data_dir, user=user)
        except (OSError, ValueError) as exc:
            raise PersistenceError("failed to load attempts", "list_attempts", exc) from exc
        return [_attempt_from_row(r) for r in _rows(df)]
