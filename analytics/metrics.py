from __future__ import annotations

"""Accuracy metrics per category and per session."""

from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .config import AnalyticsConfig


def _band(acc: float, cfg: AnalyticsConfig) -> str:
    if np.isnan(acc):
        return "none"
    if acc >= cfg.green_limit:
        return "green"
    if acc >= cfg.green_limit - cfg.orange_margin:
        return "orange"
    return "red"


def compute_category_metrics(
    df: pd.DataFrame,
    cfg: AnalyticsConfig,
    categories: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """Per-category attempts, correct, questions_seen, acc and band.

    Categories listed in `categories` but never attempted appear with
    attempts 0, acc NaN and band "none".
    """
    g = df.assign(category=df["category"].astype("string"))
    out = g.groupby("category").agg(
        attempts=("is_correct", "size"),
        correct=("is_correct", "sum"),
        questions_seen=("question_id", "nunique"),
    )
    if categories is not None:
        out = out.reindex(out.index.union(pd.Index(list(categories), dtype="string")))
    out = out.fillna(0).astype("int64")
    attempts = out["attempts"].astype("float32")
    out["acc"] = (out["correct"].astype("float32") / attempts.where(attempts > 0, np.nan)).astype("float32")
    out["band"] = [_band(float(a), cfg) for a in out["acc"]]
    out.index.name = "category"
    return out.sort_index()


def compute_session_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """One row per (session_idx, category) with attempts, correct and acc."""
    g = df.assign(category=df["category"].astype("string"))
    out = (
        g.groupby(["session_idx", "category"])
        .agg(attempts=("is_correct", "size"), correct=("is_correct", "sum"))
        .reset_index()
    )
    out["acc"] = (out["correct"].astype("float32") / out["attempts"].astype("float32")).astype("float32")
    return out
