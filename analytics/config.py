from __future__ import annotations

"""Analytics configuration (hyperparameters) using Pydantic."""

from pydantic import BaseModel, Field


class AnalyticsConfig(BaseModel):
    """Hyperparameters for analytics computations and smoothing.

    - green_limit: accuracy at or above which a category counts as mastered
    - orange_margin: width of the "almost there" band below green_limit
    - smoothing_span: EWMA span in sessions (>1)
    """

    green_limit: float = Field(0.70, gt=0, le=1)
    orange_margin: float = Field(0.10, ge=0, lt=1)
    smoothing_span: int = Field(10, gt=1)
