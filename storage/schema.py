from __future__ import annotations

"""Schema constants and Pydantic models for the Parquet-backed question bank and attempt log."""

from datetime import datetime, timezone
from typing import List, Literal, Optional

import pandas as pd
from pydantic import BaseModel, Field, ValidationInfo, field_validator

# --- Constants ---

QUESTION_TYPES = {"multiple_choice", "short_answer"}


QUESTION_DTYPES = {
    "id": "Int64",
    "text": "string",
    "type": "string",
    # list[str] per row; pyarrow writes it as a list column
    "options": "object",
    "correct_answer": "string",
    "explanation": "string",
    "category": "string",
}

ATTEMPT_DTYPES = {
    "user": "string",
    "question_id": "Int64",
    "category": "string",
    "is_correct": "boolean",
    # timezone-aware UTC timestamps
    "timestamp": pd.DatetimeTZDtype(tz="UTC"),
    "session_id": "string",
}


# --- Pydantic models ---

class QuestionRow(BaseModel):
    id: int = Field(ge=0)
    text: str = Field(min_length=1)
    type: Literal["multiple_choice", "short_answer"]
    options: List[str] = Field(default_factory=list)
    correct_answer: str = Field(min_length=1)
    explanation: str = ""
    category: str = Field(min_length=1)

    @field_validator("options")
    @classmethod
    def _options_shape(cls, v: List[str], info: ValidationInfo) -> List[str]:
        if info.data.get("type") == "multiple_choice":
            if not (2 <= len(v) <= 6):
                raise ValueError("multiple choice needs 2-6 options")
            if len(set(v)) != len(v):
                raise ValueError("options must be unique")
        return v

    @field_validator("correct_answer")
    @classmethod
    def _answer_in_options(cls, v: str, info: ValidationInfo) -> str:
        if info.data.get("type") == "multiple_choice":
            opts = info.data.get("options") or []
            if v not in opts:
                raise ValueError("correct_answer must be one of the options")
        return v


class AttemptRow(BaseModel):
    user: Optional[str] = None
    question_id: int = Field(ge=0)
    category: str
    is_correct: bool
    timestamp: datetime
    session_id: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
