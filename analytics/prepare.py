from __future__ import annotations

"""Load the Parquet attempt log and shape it for analytics."""

from pathlib import Path
from typing import Optional

import pandas as pd

from storage.store import load_attempts


def prepare_attempts(df: pd.DataFrame) -> pd.DataFrame:
    """Add analysis columns to a raw attempt frame.

    - 'category' becomes categorical.
    - 'day' is the UTC calendar day of each attempt.
    - Attempts without a session id are grouped per day.
    - 'session_idx' is a stable session order index (by first attempt time).
    """
    out = df.sort_values("timestamp", kind="stable").copy()
    out["category"] = out["category"].astype("category")
    out["day"] = out["timestamp"].dt.floor("D")
    fallback = "day-" + out["day"].dt.strftime("%Y-%m-%d")
    out["session_id"] = out["session_id"].astype("string").fillna(fallback)
    out["is_correct"] = out["is_correct"].fillna(False).astype(bool)
    out["session_idx"] = pd.factorize(out["session_id"])[0]
    return out.reset_index(drop=True)


def load_and_prepare(data_dir: Path, user: Optional[str] = None) -> pd.DataFrame:
    """Read the attempt log under `data_dir` (optionally one user's) and prepare it."""
    return prepare_attempts(load_attempts(Path(data_dir), user=user))
