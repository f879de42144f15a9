from .schema import QUESTION_TYPES, QUESTION_DTYPES, ATTEMPT_DTYPES, QuestionRow, AttemptRow
from .store import (
    init_store,
    validate_questions,
    validate_attempts,
    append_questions,
    append_attempts,
    load_questions,
    load_attempts,
    export_ndjson,
)

__all__ = [
    "QUESTION_TYPES",
    "QUESTION_DTYPES",
    "ATTEMPT_DTYPES",
    "QuestionRow",
    "AttemptRow",
    "init_store",
    "validate_questions",
    "validate_attempts",
    "append_questions",
    "append_attempts",
    "load_questions",
    "load_attempts",
    "export_ndjson",
]
