from __future__ import annotations

"""Matplotlib plots for category accuracy and per-session trends."""

import os
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .config import AnalyticsConfig

BAND_COLORS = {"green": "#2e7d32", "orange": "#ef6c00", "red": "#c62828", "none": "#9e9e9e"}


def plot_category_accuracy(
    metrics: pd.DataFrame,
    cfg: AnalyticsConfig,
    *,
    save_path: Optional[str | os.PathLike[str]] = None,
) -> None:
    """Horizontal bars of accuracy per category, coloured by mastery band.

    Categories without attempts get an empty bar labelled "-".
    """
    if metrics.empty:
        return
    m = metrics.sort_index()
    acc = m["acc"].to_numpy(dtype="float64")
    ypos = np.arange(len(m))
    colors = [BAND_COLORS.get(b, BAND_COLORS["none"]) for b in m["band"]]
    fig, ax = plt.subplots()
    ax.barh(ypos, np.nan_to_num(acc * 100.0), color=colors)
    ax.axvline(cfg.green_limit * 100.0, color=BAND_COLORS["green"], linestyle="--", linewidth=1)
    ax.set_yticks(ypos)
    ax.set_yticklabels(m.index.astype(str))
    for y, a in zip(ypos, acc):
        ax.text(1 if np.isnan(a) else a * 100.0 + 1, y, "-" if np.isnan(a) else f"{a:.0%}", va="center")
    ax.set_xlim(0, 110)
    ax.set_xlabel("Accuracy (%)")
    ax.set_title("Accuracy by category")
    if save_path:
        fig.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close(fig)


def plot_trend(
    df: pd.DataFrame,
    *,
    category: Optional[str] = None,
    value_col: str = "acc",
    save_path: Optional[str | os.PathLike[str]] = None,
) -> None:
    g = df.copy()
    if category is not None:
        g = g[g["category"].astype("string") == category]
    if g.empty:
        return
    g = g.sort_values("session_idx")
    plt.figure()
    plt.plot(g["session_idx"], g[value_col], marker="o", linestyle="", label=value_col)
    smooth_col = f"{value_col}_smooth"
    if smooth_col in g.columns:
        plt.plot(g["session_idx"], g[smooth_col], linewidth=2, label=f"{value_col} (EWMA)")
    plt.xlabel("Session")
    plt.ylabel(value_col)
    plt.title(f"Trend: {category}" if category else "Trend")
    plt.legend()
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()
