from .config import AnalyticsConfig
from .metrics import compute_category_metrics, compute_session_metrics
from .prepare import load_and_prepare, prepare_attempts
from .smoothing import ewma_by_session
from .plots import plot_category_accuracy, plot_trend

__all__ = [
    "AnalyticsConfig",
    "compute_category_metrics",
    "compute_session_metrics",
    "load_and_prepare",
    "prepare_attempts",
    "ewma_by_session",
    "plot_category_accuracy",
    "plot_trend",
]
