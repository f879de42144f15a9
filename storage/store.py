from __future__ import annotations

"""Parquet-backed store for the question bank and the attempt log using pandas + pyarrow.

Units of data: one row per question, one row per graded attempt. The attempt
table is append-only.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .schema import ATTEMPT_DTYPES, QUESTION_DTYPES, AttemptRow, QuestionRow


QUESTIONS_FILE = "questions.parquet"
ATTEMPTS_FILE = "attempts.parquet"


def _empty_df(dtypes: Dict[str, Any]) -> pd.DataFrame:
    return pd.DataFrame({k: pd.Series(dtype=v) for k, v in dtypes.items()})


def _fix_dtypes(df: pd.DataFrame, dtypes: Dict[str, Any]) -> pd.DataFrame:
    for col, dt in dtypes.items():
        if col not in df.columns:
            df[col] = None
        df[col] = df[col].astype(dt)
    return df[list(dtypes.keys())]


def init_store(data_dir: Path) -> None:
    """Ensure data directory and empty Parquet files with correct schema exist."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    q_path = data_dir / QUESTIONS_FILE
    a_path = data_dir / ATTEMPTS_FILE
    if not q_path.exists():
        _empty_df(QUESTION_DTYPES).to_parquet(q_path, engine="pyarrow", compression="zstd", index=False)
    if not a_path.exists():
        _empty_df(ATTEMPT_DTYPES).to_parquet(a_path, engine="pyarrow", compression="zstd", index=False)


def validate_questions(records: List[Any]) -> pd.DataFrame:
    """Validate question rows (dicts or QuestionRow) and return a typed DataFrame.

    Raises pydantic.ValidationError on a malformed row.
    """
    if not isinstance(records, list):
        raise TypeError("records must be a list")
    rows = [r if isinstance(r, QuestionRow) else QuestionRow.model_validate(r) for r in records]
    if not rows:
        return _empty_df(QUESTION_DTYPES)
    df = pd.DataFrame([r.model_dump() for r in rows])
    return _fix_dtypes(df, QUESTION_DTYPES)


def validate_attempts(records: List[Any]) -> pd.DataFrame:
    """Validate attempt rows (dicts or AttemptRow) and return a typed DataFrame."""
    if not isinstance(records, list):
        raise TypeError("records must be a list")
    rows = [r if isinstance(r, AttemptRow) else AttemptRow.model_validate(r) for r in records]
    if not rows:
        return _empty_df(ATTEMPT_DTYPES)
    df = pd.DataFrame([r.model_dump() for r in rows])
    return _fix_dtypes(df, ATTEMPT_DTYPES)


def append_questions(df_new: pd.DataFrame, data_path: Path) -> None:
    """Insert or replace questions keyed by id."""
    f = Path(data_path) / QUESTIONS_FILE
    df_new = _fix_dtypes(df_new.copy(), QUESTION_DTYPES)
    if f.exists():
        df_old = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"), QUESTION_DTYPES)
        if not df_old.empty:
            df_old = df_old[~df_old["id"].isin(df_new["id"])]
        combined = pd.concat([df_old, df_new], ignore_index=True) if not df_old.empty else df_new
    else:
        combined = df_new
    combined = _fix_dtypes(combined, QUESTION_DTYPES).sort_values("id", kind="stable")
    combined.to_parquet(f, engine="pyarrow", compression="zstd", index=False)


def append_attempts(df_new: pd.DataFrame, data_path: Path) -> None:
    """Append rows to the attempt log. Existing rows are never rewritten."""
    f = Path(data_path) / ATTEMPTS_FILE
    df_new = _fix_dtypes(df_new.copy(), ATTEMPT_DTYPES)
    if f.exists():
        df_old = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"), ATTEMPT_DTYPES)
        combined = pd.concat([df_old, df_new], ignore_index=True) if not df_old.empty else df_new
    else:
        combined = df_new
    combined = _fix_dtypes(combined, ATTEMPT_DTYPES)
    combined.to_parquet(f, engine="pyarrow", compression="zstd", index=False)


def load_questions(data_path: Path, category: Optional[str] = None) -> pd.DataFrame:
    f = Path(data_path) / QUESTIONS_FILE
    if not f.exists():
        return _empty_df(QUESTION_DTYPES)
    df = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"), QUESTION_DTYPES)
    if category is not None:
        df = df[(df["category"] == category).fillna(False)]
    return df.reset_index(drop=True)


def load_attempts(data_path: Path, user: Optional[str] = None) -> pd.DataFrame:
    """Load the attempt log, optionally for one user, sorted by timestamp."""
    f = Path(data_path) / ATTEMPTS_FILE
    if not f.exists():
        return _empty_df(ATTEMPT_DTYPES)
    df = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"), ATTEMPT_DTYPES)
    if user is not None:
        df = df[(df["user"] == user).fillna(False)]
    return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


def export_ndjson(df: pd.DataFrame, out_path: Path) -> None:
    """Export a DataFrame to line-delimited JSON (NDJSON) for quick inspection."""
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    df.to_json(out_path, orient="records", lines=True, date_format="iso")
