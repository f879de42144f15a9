from __future__ import annotations

"""Question selection: weighted stratified sampling, hard-mode filter, option shuffling."""

import logging
import random
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..errors import InvariantViolation
from ..models import MULTIPLE_CHOICE, QUESTION_TYPES, SHORT_ANSWER, Question
from ..stats.stats import QuestionStat
from .weights import CategoryWeights

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 6
HARD_MODE_THRESHOLD = 0.60
# "Marathon": mixed exams requested without a cap stop here
MARATHON_CAP = 100


def validate_question(q: Question) -> None:
    """Raise InvariantViolation if the question cannot be served in an exam."""
    if q.type not in QUESTION_TYPES:
        raise InvariantViolation(q.id, f"unknown question type {q.type!r}")
    if q.type == MULTIPLE_CHOICE:
        n = len(q.options)
        if n < MIN_OPTIONS or n > MAX_OPTIONS:
            raise InvariantViolation(q.id, f"expected {MIN_OPTIONS}-{MAX_OPTIONS} options, got {n}")
        if len(set(q.options)) != n:
            raise InvariantViolation(q.id, "options are not unique")
        if q.correct_answer not in q.options:
            raise InvariantViolation(q.id, "correct answer is not one of the options")
    elif q.type == SHORT_ANSWER:
        if not any(tok.strip() for tok in q.correct_answer.split(",")):
            raise InvariantViolation(q.id, "no accepted answers")


def usable_questions(pool: Iterable[Question], exclude_ids: Optional[Iterable[int]] = None) -> List[Question]:
    """Drop excluded, duplicate and malformed questions, keeping pool order."""
    excluded = set(exclude_ids or ())
    seen = set()
    out: List[Question] = []
    for q in pool:
        if q.id in excluded or q.id in seen:
            continue
        try:
            validate_question(q)
        except InvariantViolation as e:
            logger.warning("Excluding malformed question from sampling: %s", e)
            continue
        seen.add(q.id)
        out.append(q)
    return out


def _as_weights(weights: Union[CategoryWeights, Mapping[str, int], None]) -> CategoryWeights:
    if isinstance(weights, CategoryWeights):
        return weights
    return CategoryWeights(weights or {})


def _sample_single(candidates: List[Question], category: str, target: int, rng: random.Random) -> List[Question]:
    in_cat = [q for q in candidates if q.category == category]
    if target <= 0 or target >= len(in_cat):
        return in_cat
    return rng.sample(in_cat, target)


def _sample_mixed(
    candidates: List[Question],
    categories: List[str],
    weights: CategoryWeights,
    target: int,
    rng: random.Random,
) -> List[Question]:
    by_cat: Dict[str, List[Question]] = {c: [] for c in categories}
    for q in candidates:
        bucket = by_cat.get(q.category)
        if bucket is not None:
            bucket.append(q)

    selected: List[Question] = []

    def take(cat: str) -> None:
        bucket = by_cat[cat]
        i = rng.randrange(len(bucket))
        bucket[i], bucket[-1] = bucket[-1], bucket[i]
        selected.append(bucket.pop())

    # Baseline coverage: one question from every non-empty category
    if target >= len(categories):
        for cat in categories:
            if by_cat[cat]:
                take(cat)

    lottery = weights.lottery(c for c in categories if by_cat[c])
    while len(selected) < target and len(lottery):
        cat = lottery.draw(rng)
        if not by_cat[cat]:
            lottery.discard(cat)
            continue
        take(cat)
    return selected


def sample(
    pool: Sequence[Question],
    categories: Sequence[str],
    weights: Union[CategoryWeights, Mapping[str, int], None],
    target_count: int,
    exclude_ids: Optional[Iterable[int]] = None,
    *,
    rng: Optional[random.Random] = None,
    mixed_cap: int = MARATHON_CAP,
) -> List[Question]:
    """Draw an exam's question set from `pool`.

    A single category means single-category mode: up to `target_count`
    distinct questions from it (all of them when `target_count <= 0`).
    Several categories mean mixed mode: baseline coverage of every category
    when `target_count >= len(categories)`, then weighted lottery draws until
    the target is met or the pool runs dry. `target_count <= 0` in mixed mode
    means `mixed_cap`.

    The result is uniformly shuffled. An empty list is returned when nothing
    satisfies the constraints.
    """
    rng = rng or random.Random()
    cats = [str(c) for c in dict.fromkeys(categories)]
    if not cats:
        return []
    candidates = usable_questions(pool, exclude_ids)

    if len(cats) == 1:
        picked = _sample_single(candidates, cats[0], int(target_count), rng)
    else:
        target = int(target_count) if target_count > 0 else int(mixed_cap)
        picked = _sample_mixed(candidates, cats, _as_weights(weights), target, rng)

    rng.shuffle(picked)
    return picked


def backfill(
    selected: Sequence[Question],
    pool: Iterable[Question],
    target_count: int,
    exclude_ids: Optional[Iterable[int]] = None,
    *,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    """Top up `selected` with distinct random questions from `pool` until `target_count`."""
    out = list(selected)
    need = int(target_count) - len(out)
    if need <= 0:
        return out
    rng = rng or random.Random()
    taken = {q.id for q in out}
    taken.update(exclude_ids or ())
    remaining = usable_questions(pool, taken)
    out.extend(rng.sample(remaining, min(need, len(remaining))))
    return out


def filter_hard(
    pool: Iterable[Question],
    stats: Mapping[int, QuestionStat],
    threshold: float = HARD_MODE_THRESHOLD,
) -> List[Question]:
    """Keep questions never attempted or answered correctly less than `threshold` of the time."""
    try:
        limit = float(threshold)
    except (TypeError, ValueError):
        limit = -1.0
    if not 0.0 < limit <= 1.0:
        logger.warning("Hard-mode threshold %r out of range, using %.2f", threshold, HARD_MODE_THRESHOLD)
        limit = HARD_MODE_THRESHOLD
    out: List[Question] = []
    for q in pool:
        stat = stats.get(q.id)
        if stat is None or stat.attempts == 0:
            out.append(q)
        elif stat.correct_count / stat.attempts < limit:
            out.append(q)
    return out


def shuffle_options(question: Question, rng: Optional[random.Random] = None) -> Question:
    """Return a copy of a multiple-choice question with options in random order.

    Fisher-Yates: walk i from the last index down to 1 and swap with a
    uniform j in [0, i]. Short-answer questions pass through unchanged.
    """
    if question.type != MULTIPLE_CHOICE:
        return question
    rng = rng or random.Random()
    opts = list(question.options)
    for i in range(len(opts) - 1, 0, -1):
        j = rng.randint(0, i)
        opts[i], opts[j] = opts[j], opts[i]
    return Question(
        id=question.id,
        text=question.text,
        type=question.type,
        options=tuple(opts),
        correct_answer=question.correct_answer,
        explanation=question.explanation,
        category=question.category,
    )


def shuffle_all(questions: Iterable[Question], rng: Optional[random.Random] = None) -> List[Question]:
    rng = rng or random.Random()
    return [shuffle_options(q, rng) for q in questions]
