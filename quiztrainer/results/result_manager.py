from __future__ import annotations

"""Attempt recorder: forwards graded answers to the repository.

Write failures are logged and returned as False; the caller keeps its
in-memory state. Errors that are not `PersistenceError` (a remote store
that drops the connection, say) are wrapped into one. Every record handed
in is kept locally either way so a session can still report what it
produced.
"""

import logging
from typing import List, Optional, Sequence

from ..errors import PersistenceError
from ..models import AttemptRecord
from .repository import QuestionRepository

logger = logging.getLogger(__name__)


class AttemptRecorder:
    def __init__(self, repo: Optional[QuestionRepository] = None) -> None:
        self.repo = repo
        self._emitted: List[AttemptRecord] = []
        self.last_error: Optional[PersistenceError] = None

    @property
    def emitted(self) -> List[AttemptRecord]:
        return list(self._emitted)

    def record(self, records: Sequence[AttemptRecord]) -> bool:
        """Persist one batch. Returns False if the repository rejected it."""
        batch = list(records)
        if not batch:
            return True
        self._emitted.extend(batch)
        if self.repo is None:
            return True
        try:
            self.repo.record_attempts(batch)
        except PersistenceError as e:
            self.last_error = e
            logger.warning("Could not save %d attempt(s): %s", len(batch), e)
            return False
        except Exception as e:
            self.last_error = PersistenceError(f"record_attempts failed: {e}", "record_attempts", e)
            logger.warning("Could not save %d attempt(s): %s", len(batch), e)
            return False
        return True

    def summarize(self, session_id: Optional[str] = None) -> dict:
        total = 0
        correct = 0
        for rec in self._emitted:
            if session_id is not None and rec.session_id != session_id:
                continue
            total += 1
            if rec.is_correct:
                correct += 1
        return {"session_id": session_id, "total": total, "correct": correct}
