from __future__ import annotations

"""Smoothing utilities (EWMA by session)."""

import pandas as pd


def ewma_by_session(
    df: pd.DataFrame,
    value_col: str,
    span: int,
    group_cols: list[str] | None = None,
) -> pd.DataFrame:
    """Apply EWMA smoothing per group over session order.

    Returns a copy of df with a new column f"{value_col}_smooth" and rows sorted by session_idx.
    """
    group_cols = group_cols or []
    g = df.sort_values("session_idx", kind="stable").copy()
    if group_cols:
        smooth = g.groupby(group_cols, observed=True)[value_col].transform(lambda s: s.ewm(span=span).mean())
    else:
        smooth = g[value_col].ewm(span=span).mean()
    g[f"{value_col}_smooth"] = smooth.astype("float32")
    return g
