from __future__ import annotations

"""Minimal tracing helpers (Explain Mode).

Enable from config (`explain.enabled`) and get one JSON line per milestone:
exam built, session started, answer graded, session finished.
"""

import json
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)

_ENABLED = False


def enable(flag: bool = True) -> None:
    global _ENABLED
    _ENABLED = bool(flag)


def enabled() -> bool:
    return _ENABLED


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _ENABLED:
        return
    data = payload or {}
    try:
        line = json.dumps(data, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        line = "{}"
    logger.info("[EXPLAIN] %s :: %s", event, line)
