from __future__ import annotations

"""Configuration loading and validation for quiztrainer.

This module loads YAML configuration, applies defaults, and clamps values
that are out of range back to sane defaults with a warning.
"""

import logging
import random
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

import yaml

from ..app.presets import CATEGORY_LOBBY_PRESETS, QUICK_HUB_PRESETS
from ..samplers.question_sampler import HARD_MODE_THRESHOLD, MARATHON_CAP
from ..samplers.weights import DEFAULT_WEIGHT, CategoryWeights
from ..results.repository import InMemoryRepository, ParquetRepository, QuestionRepository
from ..stats.stats import DEFAULT_GREEN_LIMIT, DEFAULT_ORANGE_MARGIN, CategoryStat, format_summary

if TYPE_CHECKING:
    from analytics.config import AnalyticsConfig

logger = logging.getLogger(__name__)

DEFAULT_SECONDS_PER_QUESTION = 60


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("Config file not found: %s", path)
        raise
    if not isinstance(data, dict):
        logger.warning("Config file %s does not hold a mapping, ignoring it.", path)
        return {}
    return data


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values (not yet validated).
    """
    if path:
        return _load_yaml(Path(path))
    return _load_yaml(Path(__file__).with_name("defaults.yml"))


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name)
    if not isinstance(value, dict):
        if value is not None:
            logger.warning("Config section '%s' must be a mapping, using defaults.", name)
        value = {}
        cfg[name] = value
    return value


def _fraction(
    section: Dict[str, Any], key: str, default: float, *, allow_zero: bool = False, allow_one: bool = True
) -> None:
    raw = section.get(key)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        value = -1.0
    low_ok = value >= 0.0 if allow_zero else value > 0.0
    high_ok = value <= 1.0 if allow_one else value < 1.0
    if not (low_ok and high_ok):
        logger.warning("Invalid %s %r, using %s.", key, raw, default)
        value = default
    section[key] = value


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    categories = _section(cfg, "categories")
    sampling = _section(cfg, "sampling")
    hard = _section(cfg, "hard_mode")
    presets = _section(cfg, "presets")
    stats = _section(cfg, "stats")
    exam = _section(cfg, "exam")
    storage = _section(cfg, "storage")
    explain = _section(cfg, "explain")

    categories.setdefault("default_weight", DEFAULT_WEIGHT)
    categories.setdefault("weights", {})
    sampling.setdefault("mixed_cap", MARATHON_CAP)
    sampling.setdefault("seed", None)
    hard.setdefault("threshold", HARD_MODE_THRESHOLD)
    presets.setdefault("quick_hub", {})
    presets.setdefault("category_lobby", {})
    stats.setdefault("green_limit", DEFAULT_GREEN_LIMIT)
    stats.setdefault("orange_margin", DEFAULT_ORANGE_MARGIN)
    exam.setdefault("seconds_per_question", DEFAULT_SECONDS_PER_QUESTION)
    storage.setdefault("enabled", True)
    storage.setdefault("data_dir", "./data")
    explain.setdefault("enabled", False)

    dw = categories.get("default_weight")
    if not isinstance(dw, int) or isinstance(dw, bool) or dw <= 0:
        logger.warning("Invalid default_weight %r, using %d.", dw, DEFAULT_WEIGHT)
        categories["default_weight"] = DEFAULT_WEIGHT

    weights = categories.get("weights")
    if not isinstance(weights, dict):
        logger.warning("categories.weights must be a mapping, ignoring it.")
        weights = {}
    clean: Dict[str, int] = {}
    for cat, w in weights.items():
        if isinstance(w, int) and not isinstance(w, bool) and w > 0:
            clean[str(cat)] = w
        else:
            logger.warning("Dropping invalid weight %r for category '%s'.", w, cat)
    categories["weights"] = clean

    cap = sampling.get("mixed_cap")
    if not isinstance(cap, int) or isinstance(cap, bool) or cap <= 0:
        logger.warning("Invalid mixed_cap %r, using %d.", cap, MARATHON_CAP)
        sampling["mixed_cap"] = MARATHON_CAP

    seed = sampling.get("seed")
    if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool)):
        logger.warning("Invalid seed %r, ignoring it.", seed)
        sampling["seed"] = None

    _fraction(hard, "threshold", HARD_MODE_THRESHOLD)
    _fraction(stats, "green_limit", DEFAULT_GREEN_LIMIT)
    _fraction(stats, "orange_margin", DEFAULT_ORANGE_MARGIN, allow_zero=True, allow_one=False)

    spq = exam.get("seconds_per_question")
    try:
        spq_val = float(spq)
    except (TypeError, ValueError):
        spq_val = 0.0
    if spq_val <= 0:
        logger.warning("Invalid seconds_per_question %r, using %d.", spq, DEFAULT_SECONDS_PER_QUESTION)
        spq_val = DEFAULT_SECONDS_PER_QUESTION
    exam["seconds_per_question"] = spq_val

    for table in ("quick_hub", "category_lobby"):
        if not isinstance(presets.get(table), dict):
            logger.warning("presets.%s must be a mapping, using built-ins.", table)
            presets[table] = {}

    storage["enabled"] = bool(storage.get("enabled"))
    storage["data_dir"] = str(storage.get("data_dir") or "./data")
    explain["enabled"] = bool(explain.get("enabled"))
    return cfg


def weights_from_config(cfg: Mapping[str, Any]) -> CategoryWeights:
    section = cfg.get("categories", {}) or {}
    return CategoryWeights(section.get("weights") or {}, default=section.get("default_weight", DEFAULT_WEIGHT))


def presets_from_config(cfg: Mapping[str, Any], table: str) -> Dict[str, Dict[str, Any]]:
    """Built-in preset table `table` ("quick_hub" or "category_lobby") with config overrides merged in."""
    base = QUICK_HUB_PRESETS if table == "quick_hub" else CATEGORY_LOBBY_PRESETS
    merged = {name: dict(params) for name, params in base.items()}
    overrides = ((cfg.get("presets") or {}).get(table)) or {}
    for name, params in overrides.items():
        if not isinstance(params, dict):
            continue
        merged.setdefault(name, dict(next(iter(base.values()))))
        merged[name].update(params)
    return merged


def analytics_config_from(cfg: Mapping[str, Any]) -> AnalyticsConfig:
    """Mastery band limits from the `stats` section as an `AnalyticsConfig`."""
    from analytics.config import AnalyticsConfig

    section = cfg.get("stats") or {}
    return AnalyticsConfig(
        green_limit=section.get("green_limit", DEFAULT_GREEN_LIMIT),
        orange_margin=section.get("orange_margin", DEFAULT_ORANGE_MARGIN),
    )


def summary_from_config(cfg: Mapping[str, Any], categories: Mapping[str, CategoryStat]) -> str:
    section = cfg.get("stats") or {}
    return format_summary(
        categories,
        green_limit=section.get("green_limit", DEFAULT_GREEN_LIMIT),
        orange_margin=section.get("orange_margin", DEFAULT_ORANGE_MARGIN),
    )


def repository_from_config(cfg: Mapping[str, Any], rng: Optional[random.Random] = None) -> QuestionRepository:
    """Parquet store under `storage.data_dir`, or an in-memory one when storage is disabled.

    Raises:
        PersistenceError: if the data directory cannot be initialised.
    """
    section = cfg.get("storage") or {}
    if not section.get("enabled", True):
        logger.info("Storage disabled, keeping questions and attempts in memory.")
        return InMemoryRepository(rng=rng)
    data_dir = section.get("data_dir") or "./data"
    logger.info("Using Parquet store at %s", data_dir)
    return ParquetRepository(data_dir, rng=rng)
