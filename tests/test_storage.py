import random
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from quiztrainer.errors import PersistenceError
from quiztrainer.models import MULTIPLE_CHOICE, SHORT_ANSWER, AttemptRecord, Question
from quiztrainer.results.repository import ParquetRepository
from storage.schema import ATTEMPT_DTYPES, QuestionRow
from storage.store import (
    append_attempts,
    export_ndjson,
    init_store,
    load_attempts,
    load_questions,
    validate_attempts,
    validate_questions,
)

T0 = datetime(2025, 4, 1, 8, 0, tzinfo=timezone.utc)


def questions() -> list:
    return [
        Question(id=1, text="Vanligaste frakturen?", type=MULTIPLE_CHOICE,
                 options=("Höft", "Handled"), correct_answer="Höft", explanation="Fall hos äldre.", category="Ortopedi"),
        Question(id=2, text="Nämn en opioid.", type=SHORT_ANSWER, correct_answer="Morfin, Morphine", category="Anestesi"),
    ]


class SchemaTests(unittest.TestCase):
    def test_multiple_choice_answer_must_be_option(self) -> None:
        with self.assertRaises(ValidationError):
            QuestionRow(id=1, text="?", type="multiple_choice", options=["a", "b"], correct_answer="c", category="X")

    def test_option_count_bounds(self) -> None:
        with self.assertRaises(ValidationError):
            QuestionRow(id=1, text="?", type="multiple_choice", options=["a"], correct_answer="a", category="X")
        with self.assertRaises(ValidationError):
            QuestionRow(id=1, text="?", type="multiple_choice", options=list("abcdefg"), correct_answer="a", category="X")

    def test_short_answer_needs_no_options(self) -> None:
        row = QuestionRow(id=1, text="?", type="short_answer", correct_answer="a, b", category="X")
        self.assertEqual(row.options, [])

    def test_attempt_timestamps_are_utc(self) -> None:
        df = validate_attempts([
            {"user": "anna", "question_id": 1, "category": "X", "is_correct": True, "timestamp": datetime(2025, 1, 1, 9)}
        ])
        self.assertEqual(str(df["timestamp"].dtype), "datetime64[ns, UTC]")
        self.assertEqual(list(df.columns), list(ATTEMPT_DTYPES))

    def test_validate_requires_list(self) -> None:
        with self.assertRaises(TypeError):
            validate_questions({"id": 1})


class StoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name) / "data"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_init_creates_empty_tables(self) -> None:
        init_store(self.data_dir)
        self.assertTrue((self.data_dir / "questions.parquet").exists())
        self.assertTrue(load_questions(self.data_dir).empty)
        self.assertTrue(load_attempts(self.data_dir).empty)

    def test_missing_files_load_empty(self) -> None:
        self.assertTrue(load_questions(self.data_dir).empty)

    def test_attempts_append_only(self) -> None:
        init_store(self.data_dir)
        rows = [
            {"user": "anna", "question_id": 1, "category": "X", "is_correct": True, "timestamp": T0},
            {"user": "bo", "question_id": 1, "category": "X", "is_correct": False, "timestamp": T0},
        ]
        append_attempts(validate_attempts(rows), self.data_dir)
        append_attempts(validate_attempts(rows[:1]), self.data_dir)
        self.assertEqual(len(load_attempts(self.data_dir)), 3)
        self.assertEqual(len(load_attempts(self.data_dir, user="anna")), 2)

    def test_export_ndjson(self) -> None:
        df = validate_attempts([{"user": "anna", "question_id": 3, "category": "X", "is_correct": True, "timestamp": T0}])
        out = Path(self._tmp.name) / "reports" / "attempts.ndjson"
        export_ndjson(df, out)
        lines = out.read_text(encoding="utf-8").strip().splitlines()
        self.assertEqual(len(lines), 1)
        self.assertIn('"question_id":3', lines[0])


class ParquetRepositoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.repo = ParquetRepository(Path(self._tmp.name), rng=random.Random(0))
        self.repo.add_questions(questions())

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_questions_round_trip(self) -> None:
        got = self.repo.list_questions()
        self.assertEqual(got, questions())

    def test_upsert_by_id(self) -> None:
        changed = Question(id=2, text="Nämn en opioid.", type=SHORT_ANSWER, correct_answer="Morfin, Morphine, Oxykodon",
                           category="Anestesi")
        self.repo.add_questions([changed])
        got = self.repo.list_questions("Anestesi")
        self.assertEqual(got, [changed])
        self.assertEqual(len(self.repo.list_questions()), 2)

    def test_category_sampling(self) -> None:
        self.assertEqual([q.id for q in self.repo.sample_questions_by_category("Ortopedi", 5)], [1])
        self.assertEqual(len(self.repo.sample_mixed_questions(1)), 1)
        self.assertEqual(self.repo.sample_questions_by_category("Okänd", 5), [])

    def test_attempts_round_trip(self) -> None:
        records = [
            AttemptRecord(user="anna", question_id=1, category="Ortopedi", is_correct=True, timestamp=T0, session_id="s1"),
            AttemptRecord(user="anna", question_id=2, category="Anestesi", is_correct=False,
                          timestamp=T0 + timedelta(minutes=1)),
            AttemptRecord(user=None, question_id=2, category="Anestesi", is_correct=True, timestamp=T0),
        ]
        self.repo.record_attempts(records)
        got = self.repo.list_attempts("anna")
        self.assertEqual(got, records[:2])
        self.assertEqual(len(self.repo.list_attempts(None)), 3)

    def test_invalid_question_becomes_persistence_error(self) -> None:
        bad = Question(id=5, text="?", type=MULTIPLE_CHOICE, options=("a", "b"), correct_answer="z", category="X")
        with self.assertRaises(PersistenceError) as ctx:
            self.repo.add_questions([bad])
        self.assertEqual(ctx.exception.operation, "add_questions")

    def test_unreadable_store_becomes_persistence_error(self) -> None:
        (Path(self._tmp.name) / "attempts.parquet").write_bytes(b"not parquet")
        with self.assertRaises(PersistenceError):
            self.repo.list_attempts("anna")


if __name__ == "__main__":
    unittest.main()
