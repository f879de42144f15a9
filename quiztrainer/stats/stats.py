from __future__ import annotations

"""Accuracy aggregation: fold attempt history into per-question and per-category stats."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from ..models import AttemptRecord, Question

DEFAULT_GREEN_LIMIT = 0.70
DEFAULT_ORANGE_MARGIN = 0.10


@dataclass(frozen=True)
class QuestionStat:
    question_id: int
    attempts: int = 0
    correct_count: int = 0

    @property
    def accuracy(self) -> Optional[float]:
        if self.attempts <= 0:
            return None
        return self.correct_count / self.attempts


@dataclass(frozen=True)
class CategoryStat:
    """Sum of a category's question stats.

    `accuracy` is None when nothing in the category has been attempted, so a
    fresh category never reads as 0% or as mastered.
    """

    category: str
    attempts: int = 0
    correct_count: int = 0
    questions_seen: int = 0
    total_questions: int = 0

    @property
    def has_data(self) -> bool:
        return self.attempts > 0

    @property
    def accuracy(self) -> Optional[float]:
        if self.attempts <= 0:
            return None
        return self.correct_count / self.attempts


def apply(stat: QuestionStat, outcome: bool) -> QuestionStat:
    """Return `stat` updated with one more graded attempt."""
    return QuestionStat(
        question_id=stat.question_id,
        attempts=stat.attempts + 1,
        correct_count=stat.correct_count + (1 if outcome else 0),
    )


def fold(attempts: Iterable[AttemptRecord]) -> Dict[int, QuestionStat]:
    """Recompute per-question stats from an attempt history snapshot."""
    out: Dict[int, QuestionStat] = {}
    for rec in attempts:
        stat = out.get(rec.question_id) or QuestionStat(question_id=rec.question_id)
        out[rec.question_id] = apply(stat, bool(rec.is_correct))
    return out


def aggregate_categories(
    stats: Mapping[int, QuestionStat],
    questions: Iterable[Question],
) -> Dict[str, CategoryStat]:
    """Per-category totals over `questions`, including categories with no attempts."""
    acc: Dict[str, Dict[str, int]] = {}
    for q in questions:
        bucket = acc.setdefault(q.category, {"attempts": 0, "correct": 0, "seen": 0, "total": 0})
        bucket["total"] += 1
        stat = stats.get(q.id)
        if stat is not None and stat.attempts > 0:
            bucket["attempts"] += stat.attempts
            bucket["correct"] += stat.correct_count
            bucket["seen"] += 1
    return {
        cat: CategoryStat(
            category=cat,
            attempts=b["attempts"],
            correct_count=b["correct"],
            questions_seen=b["seen"],
            total_questions=b["total"],
        )
        for cat, b in acc.items()
    }


def fold_categories(attempts: Iterable[AttemptRecord]) -> Dict[str, CategoryStat]:
    """Per-category totals straight from attempt records (category taken from each record).

    Without the question bank the category size is unknown, so
    `total_questions` stays 0; use `aggregate_categories` when it matters.
    """
    totals: Dict[str, Dict[str, int]] = defaultdict(lambda: {"attempts": 0, "correct": 0})
    seen: Dict[str, set] = defaultdict(set)
    for rec in attempts:
        b = totals[rec.category]
        b["attempts"] += 1
        b["correct"] += 1 if rec.is_correct else 0
        seen[rec.category].add(rec.question_id)
    return {
        cat: CategoryStat(
            category=cat,
            attempts=b["attempts"],
            correct_count=b["correct"],
            questions_seen=len(seen[cat]),
        )
        for cat, b in totals.items()
    }


def overall_totals(stats: Mapping[int, QuestionStat]) -> Dict[str, int]:
    total = 0
    correct = 0
    unique = 0
    for s in stats.values():
        total += s.attempts
        correct += s.correct_count
        if s.attempts > 0:
            unique += 1
    return {"attempts": total, "correct": correct, "unique_answered": unique}


def mastery_band(
    accuracy: Optional[float],
    green_limit: float = DEFAULT_GREEN_LIMIT,
    orange_margin: float = DEFAULT_ORANGE_MARGIN,
) -> str:
    """Colour band for an accuracy: "green", "orange", "red", or "none" without data."""
    if accuracy is None:
        return "none"
    if accuracy >= green_limit:
        return "green"
    if accuracy >= green_limit - orange_margin:
        return "orange"
    return "red"


def new_session_stats() -> Dict:
    """Create a new, empty per-session tally."""
    return {"total": 0, "correct": 0, "per_category": {}}


def update_stats(stats: Dict, category: str, correct: bool) -> None:
    """Update a session tally for a single graded answer."""
    stats["total"] = int(stats.get("total", 0)) + 1
    if correct:
        stats["correct"] = int(stats.get("correct", 0)) + 1
    per = stats.setdefault("per_category", {})
    bucket = per.setdefault(category, {"asked": 0, "correct": 0})
    bucket["asked"] += 1
    bucket["correct"] += 1 if correct else 0


def format_summary(
    categories: Mapping[str, CategoryStat],
    green_limit: float = DEFAULT_GREEN_LIMIT,
    orange_margin: float = DEFAULT_ORANGE_MARGIN,
) -> str:
    """Return a human-readable per-category accuracy summary."""
    attempts = sum(c.attempts for c in categories.values())
    correct = sum(c.correct_count for c in categories.values())
    lines = [f"Total: {correct}/{attempts} correct"]
    for name in sorted(categories):
        c = categories[name]
        if c.accuracy is None:
            lines.append(f"{name}: -")
            continue
        band = mastery_band(c.accuracy, green_limit, orange_margin)
        lines.append(f"{name}: {c.correct_count}/{c.attempts} ({c.accuracy:.0%}, {band})")
    return "\n".join(lines)
