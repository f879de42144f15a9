import unittest
from datetime import datetime, timedelta, timezone

from quiztrainer.errors import PersistenceError
from quiztrainer.models import MULTIPLE_CHOICE, SHORT_ANSWER, ExamSettings, Question
from quiztrainer.app.session_manager import ExamSession, time_limit_for
from quiztrainer.results.repository import InMemoryRepository
from quiztrainer.results.result_manager import AttemptRecorder

OPIOID = Question(id=1, text="Nämn en opioid.", type=SHORT_ANSWER, correct_answer="Morfin, Morphine", category="Anestesi")
FRACTURE = Question(
    id=2,
    text="Vanligaste frakturen hos äldre?",
    type=MULTIPLE_CHOICE,
    options=("Höftfraktur", "Klavikelfraktur", "Skafoideumfraktur"),
    correct_answer="Höftfraktur",
    category="Ortopedi",
)
STONE = Question(
    id=3,
    text="Vanligaste njurstenen?",
    type=MULTIPLE_CHOICE,
    options=("Kalciumoxalat", "Urat", "Cystin"),
    correct_answer="Kalciumoxalat",
    category="Urologi",
)


class FailingRepository(InMemoryRepository):
    def record_attempts(self, records) -> None:
        raise PersistenceError("disk full", "record_attempts")


class UnreachableRepository(InMemoryRepository):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def record_attempts(self, records) -> None:
        self.calls += 1
        raise ConnectionError("network down")


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def tick(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class InstantModeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.repo = InMemoryRepository()
        self.session = ExamSession([OPIOID, FRACTURE, STONE], ExamSettings(), user="anna", recorder=self.repo)

    def test_select_after_confirm_is_ignored(self) -> None:
        s = self.session
        s.jump_to(1)
        self.assertTrue(s.select("Klavikelfraktur"))
        self.assertTrue(s.confirm())
        self.assertFalse(s.select("Höftfraktur"))
        self.assertEqual(s.states[1].selected_option, "Klavikelfraktur")
        self.assertFalse(s.states[1].is_correct)
        self.assertFalse(s.confirm())

    def test_confirm_needs_a_selection(self) -> None:
        self.assertFalse(self.session.confirm())
        self.assertFalse(self.session.select(None))
        self.assertFalse(self.session.confirm())

    def test_unknown_option_is_rejected(self) -> None:
        self.session.jump_to(1)
        self.assertFalse(self.session.select("Tibiafraktur"))
        self.assertIsNone(self.session.states[1].selected_option)

    def test_confirm_scores_and_records_one_attempt(self) -> None:
        s = self.session
        s.select("morphine")
        s.confirm()
        self.assertEqual(s.score, 1)
        attempts = self.repo.list_attempts("anna")
        self.assertEqual(len(attempts), 1)
        self.assertEqual(attempts[0].question_id, 1)
        self.assertTrue(attempts[0].is_correct)
        self.assertEqual(attempts[0].session_id, s.session_id)

    def test_overrule_scenario(self) -> None:
        s = self.session
        self.assertTrue(s.select("Tramadol"))
        self.assertTrue(s.confirm())
        self.assertFalse(s.states[0].is_correct)
        self.assertEqual(s.score, 0)
        self.assertTrue(s.can_overrule())
        self.assertTrue(s.overrule())
        self.assertTrue(s.states[0].is_correct)
        self.assertTrue(s.states[0].overruled)
        self.assertEqual(s.states[0].selected_option, "Tramadol")
        self.assertEqual(s.score, 1)
        self.assertFalse(s.overrule())
        self.assertEqual(s.score, 1)

    def test_overrule_not_for_multiple_choice(self) -> None:
        s = self.session
        s.jump_to(1)
        s.select("Klavikelfraktur")
        s.confirm()
        self.assertFalse(s.overrule())
        self.assertEqual(s.score, 0)

    def test_no_attempts_when_stats_disabled(self) -> None:
        repo = InMemoryRepository()
        s = ExamSession([OPIOID], ExamSettings(record_stats=False), recorder=repo)
        s.select("morfin")
        s.confirm()
        s.finish()
        self.assertEqual(s.score, 1)
        self.assertEqual(repo.list_attempts(None), [])

    def test_finish_in_instant_mode_writes_nothing_new(self) -> None:
        s = self.session
        s.select("morfin")
        s.confirm()
        self.assertTrue(s.finish())
        self.assertEqual(len(self.repo.list_attempts(None)), 1)
        self.assertTrue(s.finished)
        self.assertIsNotNone(s.ended_at)


class DeferredModeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.repo = InMemoryRepository()
        self.settings = ExamSettings(instant_feedback=False)
        self.session = ExamSession([OPIOID, FRACTURE, STONE], self.settings, user="bo", recorder=self.repo)

    def test_select_overwrites(self) -> None:
        s = self.session
        s.jump_to(1)
        self.assertTrue(s.select("Klavikelfraktur"))
        self.assertTrue(s.select("Höftfraktur"))
        self.assertEqual(s.states[1].selected_option, "Höftfraktur")
        self.assertFalse(s.states[1].is_answered)

    def test_confirm_and_overrule_unavailable(self) -> None:
        s = self.session
        s.select("Tramadol")
        self.assertFalse(s.confirm())
        self.assertFalse(s.overrule())

    def test_finish_grades_batch_and_records_once(self) -> None:
        s = self.session
        s.select("Morphine")
        s.advance()
        s.select("Klavikelfraktur")
        self.assertEqual(self.repo.list_attempts("bo"), [])
        self.assertTrue(s.finish())
        self.assertEqual(s.score, 1)
        self.assertTrue(s.states[0].is_correct)
        self.assertFalse(s.states[1].is_correct)
        self.assertFalse(s.states[2].is_answered)
        attempts = self.repo.list_attempts("bo")
        self.assertEqual(sorted(a.question_id for a in attempts), [1, 2])
        self.assertFalse(s.finish())
        self.assertEqual(len(self.repo.list_attempts("bo")), 2)

    def test_abandoned_session_records_nothing(self) -> None:
        s = self.session
        s.select("Morphine")
        s.advance()
        del s
        self.assertEqual(self.repo.list_attempts(None), [])


class NavigationTests(unittest.TestCase):
    def test_advance_past_end_finishes(self) -> None:
        s = ExamSession([OPIOID, FRACTURE], ExamSettings())
        self.assertTrue(s.advance())
        self.assertEqual(s.current_index, 1)
        self.assertTrue(s.advance())
        self.assertTrue(s.finished)
        self.assertFalse(s.advance())
        self.assertFalse(s.select("Höftfraktur"))
        self.assertFalse(s.jump_to(0))

    def test_retreat_requires_backtracking(self) -> None:
        s = ExamSession([OPIOID, FRACTURE, STONE], ExamSettings(allow_backtracking=False))
        s.advance()
        self.assertFalse(s.retreat())
        self.assertEqual(s.current_index, 1)
        s2 = ExamSession([OPIOID, FRACTURE, STONE], ExamSettings())
        self.assertFalse(s2.retreat())
        s2.advance()
        self.assertTrue(s2.retreat())
        self.assertEqual(s2.current_index, 0)

    def test_jump_to_visited_only_without_backtracking(self) -> None:
        s = ExamSession([OPIOID, FRACTURE, STONE], ExamSettings(allow_backtracking=False))
        self.assertFalse(s.jump_to(2))
        s.advance()
        self.assertTrue(s.jump_to(0))
        self.assertTrue(s.jump_to(1))
        self.assertFalse(s.jump_to(2))

    def test_out_of_range_jump_ignored(self) -> None:
        s = ExamSession([OPIOID, FRACTURE], ExamSettings())
        self.assertFalse(s.jump_to(5))
        self.assertFalse(s.jump_to(-1))
        self.assertEqual(s.current_index, 0)
        self.assertTrue(s.jump_to(1))
        self.assertEqual(s.visited, {0, 1})

    def test_empty_session_starts_finished(self) -> None:
        s = ExamSession([], ExamSettings())
        self.assertTrue(s.finished)
        self.assertIsNone(s.current_question)
        self.assertFalse(s.advance())


class PersistenceFailureTests(unittest.TestCase):
    def test_failed_write_becomes_warning(self) -> None:
        s = ExamSession([OPIOID, FRACTURE], ExamSettings(), user="anna", recorder=FailingRepository())
        s.select("Morfin")
        with self.assertLogs("quiztrainer.results.result_manager", level="WARNING"):
            self.assertTrue(s.confirm())
        self.assertEqual(s.score, 1)
        self.assertTrue(s.states[0].is_answered)
        self.assertEqual(len(s.warnings), 1)
        self.assertIn("disk full", s.warnings[0])
        self.assertEqual(s.summary()["warnings"], s.warnings)

    def test_recorder_keeps_emitted_records(self) -> None:
        recorder = AttemptRecorder(FailingRepository())
        s = ExamSession([OPIOID], ExamSettings(instant_feedback=False), recorder=recorder)
        s.select("morfin")
        with self.assertLogs("quiztrainer.results.result_manager", level="WARNING"):
            s.finish()
        self.assertEqual(len(recorder.emitted), 1)
        self.assertEqual(recorder.summarize(s.session_id), {"session_id": s.session_id, "total": 1, "correct": 1})

    def test_connection_error_on_finish_still_finishes_once(self) -> None:
        repo = UnreachableRepository()
        s = ExamSession([OPIOID, FRACTURE], ExamSettings(instant_feedback=False), user="anna", recorder=repo)
        s.select("morfin")
        with self.assertLogs("quiztrainer.results.result_manager", level="WARNING"):
            self.assertTrue(s.finish())
        self.assertTrue(s.finished)
        self.assertIsNotNone(s.ended_at)
        self.assertEqual(s.score, 1)
        self.assertEqual(len(s.warnings), 1)
        self.assertIn("network down", s.warnings[0])
        self.assertFalse(s.finish())
        self.assertEqual(repo.calls, 1)

    def test_connection_error_on_confirm_becomes_warning(self) -> None:
        recorder = AttemptRecorder(UnreachableRepository())
        s = ExamSession([OPIOID, FRACTURE], ExamSettings(), user="anna", recorder=recorder)
        s.select("Morfin")
        with self.assertLogs("quiztrainer.results.result_manager", level="WARNING"):
            self.assertTrue(s.confirm())
        self.assertTrue(s.states[0].is_answered)
        self.assertEqual(s.score, 1)
        self.assertIn("network down", s.warnings[0])
        self.assertIsInstance(recorder.last_error, PersistenceError)
        self.assertIsInstance(recorder.last_error.cause, ConnectionError)


class TimedSessionTests(unittest.TestCase):
    def test_time_limit_for(self) -> None:
        self.assertEqual(time_limit_for(10, 60), 600)
        self.assertIsNone(time_limit_for(0, 60))
        self.assertIsNone(time_limit_for(10, "soon"))

    def test_expiry_finishes_session(self) -> None:
        clock = FakeClock()
        s = ExamSession([OPIOID, FRACTURE], ExamSettings(timed=True), time_limit_s=120, clock=clock)
        clock.tick(60)
        self.assertFalse(s.check_time())
        self.assertEqual(s.remaining_seconds(), 60)
        clock.tick(61)
        self.assertTrue(s.check_time())
        self.assertTrue(s.finished)
        self.assertEqual(s.remaining_seconds(), 0)

    def test_transitions_after_expiry_are_ignored(self) -> None:
        clock = FakeClock()
        s = ExamSession([OPIOID], ExamSettings(timed=True, instant_feedback=False), time_limit_s=30, clock=clock)
        s.select("morfin")
        clock.tick(31)
        self.assertFalse(s.select("Tramadol"))
        self.assertTrue(s.finished)
        self.assertEqual(s.score, 1)

    def test_untimed_ignores_limit(self) -> None:
        clock = FakeClock()
        s = ExamSession([OPIOID], ExamSettings(), time_limit_s=10, clock=clock)
        clock.tick(100)
        self.assertFalse(s.check_time())
        self.assertIsNone(s.remaining_seconds())


class SummaryTests(unittest.TestCase):
    def test_summary_per_category(self) -> None:
        s = ExamSession([OPIOID, FRACTURE, STONE], ExamSettings())
        s.select("Tramadol")
        s.confirm()
        s.advance()
        s.select("Höftfraktur")
        s.confirm()
        s.finish()
        summary = s.summary()
        self.assertEqual(summary["questions"], 3)
        self.assertEqual(summary["total"], 2)
        self.assertEqual(summary["correct"], 1)
        self.assertEqual(summary["score"], 1)
        self.assertEqual(summary["per_category"]["Anestesi"], {"asked": 1, "correct": 0})
        self.assertNotIn("Urologi", summary["per_category"])
        self.assertTrue(summary["finished"])
        self.assertIsNotNone(summary["ended_at"])


if __name__ == "__main__":
    unittest.main()
