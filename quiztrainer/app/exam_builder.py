from __future__ import annotations

"""Exam builder: repository -> sampler -> hard-mode filter -> option shuffle.

`build_exam` returns the ordered question list for one exam or raises
`EmptyPoolError` when nothing is left to ask. `start_exam` wraps it into
an `ExamSession` using config values for weights, caps and timing.
"""

import logging
import random
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Union

from ..config.config import load_config, validate_config, weights_from_config
from ..errors import EmptyPoolError
from ..models import ExamSettings, Question
from ..results.repository import QuestionRepository
from ..samplers.question_sampler import (
    HARD_MODE_THRESHOLD,
    MARATHON_CAP,
    backfill,
    filter_hard,
    sample,
    shuffle_all,
)
from ..samplers.weights import CategoryWeights
from ..stats.stats import QuestionStat, fold
from ..util.randomness import make_rng
from .explain import enable as enable_explain, trace as xtrace
from .session_manager import ExamSession, time_limit_for

logger = logging.getLogger(__name__)


def _categories_of(pool: Iterable[Question]) -> List[str]:
    return sorted({q.category for q in pool if q.category})


def build_exam(
    repo: QuestionRepository,
    settings: ExamSettings,
    *,
    limit: int,
    hard_mode: bool = False,
    stats: Optional[Mapping[int, QuestionStat]] = None,
    user: Optional[str] = None,
    weights: Union[CategoryWeights, Mapping[str, int], None] = None,
    categories: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
    threshold: float = HARD_MODE_THRESHOLD,
    mixed_cap: int = MARATHON_CAP,
    exclude_ids: Optional[Iterable[int]] = None,
) -> List[Question]:
    """Assemble the question sequence for one exam.

    With `settings.category` set, up to `limit` questions come from that
    category (all of it when `limit <= 0`). Otherwise a mixed exam is drawn
    over `categories` (default: every category in the bank) by weighted
    lottery, topped up from the repository's mixed sample when short.

    Hard mode keeps only questions the user has not mastered; `stats` is
    folded from the user's attempt history when not given.

    Raises:
        EmptyPoolError: stage "sampling" if nothing matched, "hard_mode" if
            the hard-mode filter removed everything.
        PersistenceError: the repository failed.
    """
    rng = rng or make_rng()
    excluded = set(exclude_ids or ())

    if settings.category:
        cat = settings.category
        if limit > 0:
            fetched = repo.sample_questions_by_category(cat, limit)
            picked = sample(fetched, [cat], weights, limit, excluded, rng=rng)
            if len(picked) < limit:
                picked = backfill(picked, repo.list_questions(cat), limit, excluded, rng=rng)
        else:
            picked = sample(repo.list_questions(cat), [cat], weights, 0, excluded, rng=rng)
    else:
        target = limit if limit > 0 else mixed_cap
        pool = repo.list_questions()
        cats = list(categories) if categories else _categories_of(pool)
        picked = sample(pool, cats, weights, target, excluded, rng=rng, mixed_cap=mixed_cap)
        if len(picked) < target:
            fill = repo.sample_mixed_questions(target - len(picked))
            picked = backfill(picked, fill, target, excluded, rng=rng)

    rng.shuffle(picked)
    if not picked:
        raise EmptyPoolError(EmptyPoolError.SAMPLING)

    if hard_mode:
        if stats is None:
            # anonymous callers have no history of their own
            stats = fold(repo.list_attempts(user)) if user is not None else {}
        picked = filter_hard(picked, stats, threshold)
        if not picked:
            raise EmptyPoolError(EmptyPoolError.HARD_MODE)

    questions = shuffle_all(picked, rng)
    xtrace(
        "exam_built",
        {"category": settings.category, "limit": limit, "hard_mode": hard_mode, "questions": len(questions)},
    )
    return questions


def start_exam(
    repo: QuestionRepository,
    settings: ExamSettings,
    *,
    limit: int,
    hard_mode: bool = False,
    cfg: Optional[Mapping[str, Any]] = None,
    user: Optional[str] = None,
    stats: Optional[Mapping[int, QuestionStat]] = None,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ExamSession:
    """Build an exam and open a session on it, recording attempts to `repo`.

    `cfg` is a validated config (see `validate_config`); without one the
    packaged defaults.yml is loaded.
    """
    cfg = cfg if cfg is not None else validate_config(load_config())
    if (cfg.get("explain", {}) or {}).get("enabled"):
        enable_explain(True)
    sampling = cfg.get("sampling", {}) or {}
    rng = rng or make_rng(sampling.get("seed"))
    questions = build_exam(
        repo,
        settings,
        limit=limit,
        hard_mode=hard_mode,
        stats=stats,
        user=user,
        weights=weights_from_config(cfg),
        rng=rng,
        threshold=(cfg.get("hard_mode", {}) or {}).get("threshold", HARD_MODE_THRESHOLD),
        mixed_cap=sampling.get("mixed_cap", MARATHON_CAP),
    )
    time_limit = None
    if settings.timed:
        spq = (cfg.get("exam", {}) or {}).get("seconds_per_question", 60)
        time_limit = time_limit_for(len(questions), spq)
    return ExamSession(questions, settings, user=user, recorder=repo, time_limit_s=time_limit, clock=clock)
