from __future__ import annotations

"""Curated exam presets.

Quick hub presets run mixed exams across every category; category lobby
presets run inside one category. `limit` 0 means "no cap" (all questions in a
category, the marathon cap in mixed mode).
"""

from dataclasses import replace
from typing import Any, Dict, Mapping, Optional, Tuple

from ..models import ExamSettings

_DEFAULT_SETTINGS = {
    "allow_backtracking": True,
    "instant_feedback": True,
    "timed": False,
    "record_stats": True,
}

QUICK_HUB_PRESETS: Dict[str, Dict[str, Any]] = {
    "quick": {"limit": 10, "hard_mode": False, **_DEFAULT_SETTINGS},
    "standard": {"limit": 40, "hard_mode": False, **_DEFAULT_SETTINGS},
    "marathon": {"limit": 100, "hard_mode": False, **_DEFAULT_SETTINGS},
}

CATEGORY_LOBBY_PRESETS: Dict[str, Dict[str, Any]] = {
    "instant": {"limit": 40, "hard_mode": False, **_DEFAULT_SETTINGS},
    "hard": {"limit": 50, "hard_mode": True, **_DEFAULT_SETTINGS},
}


def resolve_preset(
    name: str,
    category: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    presets: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> Tuple[ExamSettings, int, bool]:
    """Return (settings, limit, hard_mode) for a named preset.

    Without a category the quick hub table is used, with one the category
    lobby table. `presets` replaces the built-in table (e.g. from config).
    Raises KeyError for an unknown name.
    """
    table = presets if presets is not None else (CATEGORY_LOBBY_PRESETS if category else QUICK_HUB_PRESETS)
    params = {**dict(table[name]), **dict(overrides or {})}
    settings = ExamSettings.from_dict(params)
    settings = replace(settings, category=category or None)
    try:
        limit = int(params.get("limit", 0))
    except (TypeError, ValueError):
        limit = 0
    return settings, max(0, limit), bool(params.get("hard_mode", False))
