from __future__ import annotations

"""Answer evaluation and feedback policies (instant vs deferred)."""

from typing import FrozenSet, Optional, Protocol

from ..models import MULTIPLE_CHOICE, SHORT_ANSWER, AnswerState, ExamSettings, Question


def normalize_answer(text: str) -> str:
    return text.strip().lower()


def accepted_answers(question: Question) -> FrozenSet[str]:
    """Synonyms accepted for a short-answer question, trimmed and lowercased."""
    return frozenset(
        tok for tok in (normalize_answer(t) for t in question.correct_answer.split(",")) if tok
    )


def evaluate(question: Question, submitted: Optional[str], overruled: bool = False) -> bool:
    """Grade one submission.

    An overruled answer is always correct. Multiple choice compares option
    text exactly; short answer checks membership in the synonym set after
    trimming and case folding.
    """
    if overruled:
        return True
    if submitted is None:
        return False
    if question.type == MULTIPLE_CHOICE:
        return submitted == question.correct_answer
    if question.type == SHORT_ANSWER:
        return normalize_answer(submitted) in accepted_answers(question)
    return False


class FeedbackPolicy(Protocol):
    name: str

    def can_select(self, state: AnswerState) -> bool: ...

    def can_confirm(self, state: AnswerState) -> bool: ...

    def can_overrule(self, question: Question, state: AnswerState) -> bool: ...


class InstantFeedback:
    """Confirm locks the answer and reveals the result right away."""

    name = "instant"

    def can_select(self, state: AnswerState) -> bool:
        return not state.is_answered

    def can_confirm(self, state: AnswerState) -> bool:
        return not state.is_answered and bool(state.selected_option)

    def can_overrule(self, question: Question, state: AnswerState) -> bool:
        return (
            state.is_answered
            and not state.is_correct
            and question.type == SHORT_ANSWER
            and not state.overruled
        )


class DeferredFeedback:
    """Selections stay editable; everything is graded when the exam finishes."""

    name = "deferred"

    def can_select(self, state: AnswerState) -> bool:
        return True

    def can_confirm(self, state: AnswerState) -> bool:
        return False

    def can_overrule(self, question: Question, state: AnswerState) -> bool:
        return False


def policy_for(settings: ExamSettings) -> FeedbackPolicy:
    return InstantFeedback() if settings.instant_feedback else DeferredFeedback()


def can_overrule(settings: ExamSettings, state: AnswerState, question: Question) -> bool:
    return policy_for(settings).can_overrule(question, state)
