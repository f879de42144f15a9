from __future__ import annotations

"""Exam session state machine.

One `ExamSession` per exam run. It owns the per-question answer states,
the cursor and the score, and hands graded answers to an `AttemptRecorder`.

Instant feedback: select -> confirm (locks, grades, records) -> optional
overrule for short answers. Deferred feedback: selections stay editable
until `finish()`, which grades and records everything in one batch.

Every transition returns True when applied and False when ignored
(finished session, locked answer, out-of-range index, wrong mode).
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Set
from uuid import uuid4
import logging

from ..models import AnswerState, AttemptRecord, ExamSettings, Question
from ..policy.grading import evaluate, policy_for
from ..results.result_manager import AttemptRecorder
from ..stats.stats import new_session_stats, update_stats
from .explain import trace as xtrace

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def time_limit_for(num_questions: int, seconds_per_question: float) -> Optional[float]:
    """Total time budget for a timed exam, or None if it cannot be computed."""
    try:
        per = float(seconds_per_question)
    except (TypeError, ValueError):
        return None
    if per <= 0 or num_questions <= 0:
        return None
    return per * num_questions


class ExamSession:
    def __init__(
        self,
        questions: Sequence[Question],
        settings: Optional[ExamSettings] = None,
        *,
        user: Optional[str] = None,
        recorder: Any = None,
        session_id: Optional[str] = None,
        time_limit_s: Optional[float] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.questions: List[Question] = list(questions)
        self.settings = settings or ExamSettings()
        self.policy = policy_for(self.settings)
        self.user = user
        self.session_id = session_id or str(uuid4())
        if recorder is not None and not isinstance(recorder, AttemptRecorder):
            recorder = AttemptRecorder(recorder)
        self.recorder: Optional[AttemptRecorder] = recorder
        self._clock: Clock = clock or _utcnow

        self.states: Dict[int, AnswerState] = {i: AnswerState() for i in range(len(self.questions))}
        self.current_index = 0
        self.score = 0
        self.finished = False
        self.visited: Set[int] = {0} if self.questions else set()
        self.warnings: List[str] = []
        self.started_at: datetime = self._clock()
        self.ended_at: Optional[datetime] = None
        self.time_limit_s: Optional[float] = None
        if self.settings.timed and time_limit_s is not None and time_limit_s > 0:
            self.time_limit_s = float(time_limit_s)

        if not self.questions:
            self.finished = True
            self.ended_at = self.started_at
        xtrace(
            "session_started",
            {
                "session": self.session_id,
                "questions": len(self.questions),
                "mode": self.policy.name,
                "timed": self.time_limit_s is not None,
            },
        )

    # --- read side ---

    def __len__(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def current_state(self) -> Optional[AnswerState]:
        return self.states.get(self.current_index)

    @property
    def answered_count(self) -> int:
        return sum(1 for s in self.states.values() if s.is_answered)

    def remaining_seconds(self, now: Optional[datetime] = None) -> Optional[float]:
        if self.time_limit_s is None:
            return None
        elapsed = ((now or self._clock()) - self.started_at).total_seconds()
        return max(0.0, self.time_limit_s - elapsed)

    def can_overrule(self) -> bool:
        if self.finished:
            return False
        q = self.current_question
        state = self.current_state
        if q is None or state is None:
            return False
        return self.policy.can_overrule(q, state)

    # --- transitions ---

    def _active(self) -> bool:
        if self.finished:
            return False
        self.check_time()
        return not self.finished

    def select(self, option: str) -> bool:
        """Set the current selection. Locked answers (instant mode) ignore it."""
        if not self._active() or option is None:
            return False
        q = self.questions[self.current_index]
        state = self.states[self.current_index]
        if not self.policy.can_select(state):
            return False
        if q.is_multiple_choice and option not in q.options:
            return False
        state.selected_option = option
        return True

    def confirm(self) -> bool:
        """Instant mode only: grade and lock the current answer."""
        if not self._active():
            return False
        q = self.questions[self.current_index]
        state = self.states[self.current_index]
        if not self.policy.can_confirm(state):
            return False
        state.is_correct = evaluate(q, state.selected_option, state.overruled)
        state.is_answered = True
        if state.is_correct:
            self.score += 1
        xtrace("answer_graded", {"index": self.current_index, "question": q.id, "correct": state.is_correct})
        self._emit([self._record_for(q, state)])
        return True

    def overrule(self) -> bool:
        """Count a confirmed wrong short answer as correct; the typed text is kept."""
        if not self._active() or not self.can_overrule():
            return False
        state = self.states[self.current_index]
        state.overruled = True
        state.is_correct = True
        self.score += 1
        xtrace("answer_overruled", {"index": self.current_index, "question": self.questions[self.current_index].id})
        return True

    def advance(self) -> bool:
        if not self._active():
            return False
        if self.current_index >= len(self.questions) - 1:
            return self.finish()
        self.current_index += 1
        self.visited.add(self.current_index)
        return True

    def retreat(self) -> bool:
        if not self._active() or not self.settings.allow_backtracking:
            return False
        if self.current_index <= 0:
            return False
        self.current_index -= 1
        self.visited.add(self.current_index)
        return True

    def jump_to(self, index: int) -> bool:
        if not self._active():
            return False
        if not isinstance(index, int) or index < 0 or index >= len(self.questions):
            return False
        if not self.settings.allow_backtracking and index not in self.visited:
            return False
        self.current_index = index
        self.visited.add(index)
        return True

    def finish(self) -> bool:
        """End the exam. Deferred mode grades and records every selection here."""
        if self.finished:
            return False
        batch: List[AttemptRecord] = []
        if not self.settings.instant_feedback:
            score = 0
            for i, q in enumerate(self.questions):
                state = self.states[i]
                if not state.selected_option and not state.overruled:
                    continue
                state.is_correct = evaluate(q, state.selected_option, state.overruled)
                state.is_answered = True
                if state.is_correct:
                    score += 1
                batch.append(self._record_for(q, state))
            self.score = score
        self.finished = True
        self.ended_at = self._clock()
        self._emit(batch)
        xtrace("session_finished", {"session": self.session_id, "score": self.score, "total": len(self.questions)})
        return True

    def check_time(self, now: Optional[datetime] = None) -> bool:
        """Finish a timed exam whose budget ran out. Returns True if it just expired."""
        if self.finished or self.time_limit_s is None:
            return False
        elapsed = ((now or self._clock()) - self.started_at).total_seconds()
        if elapsed < self.time_limit_s:
            return False
        logger.info("Session %s ran out of time after %.0fs", self.session_id, elapsed)
        return self.finish()

    # --- output ---

    def summary(self) -> Dict[str, Any]:
        tally = new_session_stats()
        for i, q in enumerate(self.questions):
            state = self.states[i]
            if state.is_answered:
                update_stats(tally, q.category, state.is_correct)
        return {
            "session_id": self.session_id,
            "questions": len(self.questions),
            "total": tally["total"],
            "correct": tally["correct"],
            "score": self.score,
            "per_category": tally["per_category"],
            "finished": self.finished,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "warnings": list(self.warnings),
        }

    def _record_for(self, q: Question, state: AnswerState) -> AttemptRecord:
        return AttemptRecord(
            user=self.user,
            question_id=q.id,
            category=q.category,
            is_correct=state.is_correct,
            timestamp=self._clock(),
            session_id=self.session_id,
        )

    def _emit(self, records: List[AttemptRecord]) -> None:
        if not self.settings.record_stats or self.recorder is None or not records:
            return
        if not self.recorder.record(records):
            err = self.recorder.last_error
            self.warnings.append(f"Could not save {len(records)} answer(s): {err}")
