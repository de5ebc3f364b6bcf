import unittest

from tonic_drill.core.errors import MicrophoneUnavailable
from tonic_drill.core.events import SessionEventType
from tonic_drill.degree_generator import ScaleDegreeGenerator
from tonic_drill.mock_note_detector import MockChordPlayer, MockNoteDetectionService
from tonic_drill.note_types import Direction, NoteStatus, ScaleDegree
from tonic_drill.session import accuracy_percent
from tonic_drill.session_controller import SessionController


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class ScriptedGenerator(ScaleDegreeGenerator):
    """Returns a fixed sequence of targets."""

    def __init__(self, degrees):
        super().__init__()
        self._degrees = list(degrees)

    def next(self, previous=None):
        return self._degrees.pop(0)


FIFTH = ScaleDegree(5, Direction.ABOVE)
THIRD = ScaleDegree(3, Direction.BELOW)
TONIC = ScaleDegree(1)

G4 = 392.0
E4 = 329.63
A4 = 440.0


class TestSessionController(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.detector = MockNoteDetectionService()
        self.synth = MockChordPlayer()
        self.controller = SessionController(
            detection_service=self.detector,
            synthesizer=self.synth,
            generator=ScriptedGenerator([FIFTH, THIRD, TONIC, FIFTH]),
            key="C",
            mode="major",
            interval=2.0,
            clock=self.clock,
        )

    def play(self, frequency, start, duration=0.2, step=1 / 60):
        t = start
        while t <= start + duration + 1e-9:
            self.detector.emit(frequency, t)
            t += step
        self.controller.poll(now=start + duration)

    def test_start_installs_target_and_plays_chord(self):
        self.controller.start()
        self.assertTrue(self.controller.is_running)
        self.assertEqual(self.controller.current_degree, FIFTH)
        self.assertEqual(self.controller.expected_pitch_class, "G")
        self.assertEqual(self.controller.note_status, NoteStatus.PENDING)
        self.assertEqual(len(self.synth.rendered), 1)
        self.assertEqual(self.detector.start_count, 1)

    def test_held_g_is_correct_for_fifth_of_c(self):
        self.controller.start()
        self.play(G4, 0.0)
        self.assertEqual(self.controller.note_status, NoteStatus.CORRECT)
        self.assertEqual(self.controller.detected_label, "5")

    def test_no_outcome_before_first_confirmed_note(self):
        self.controller.start()
        self.controller.poll(now=2.0)
        self.assertEqual(self.controller.current_degree, THIRD)
        self.assertEqual(self.controller.outcomes, [])
        self.assertEqual(len(self.synth.rendered), 2)

    def test_outcomes_follow_first_confirmation(self):
        self.controller.start()
        self.controller.poll(now=2.0)  # FIFTH passes unanswered
        self.play(E4, 2.5)  # THIRD answered correctly
        self.controller.poll(now=4.0)
        self.assertEqual(self.controller.outcomes, [True])
        self.controller.poll(now=6.0)  # TONIC passes unanswered
        self.assertEqual(self.controller.outcomes, [True, False])
        self.controller.stop()
        self.assertEqual(self.controller.outcomes, [True, False, False])
        self.assertEqual(self.controller.accuracy_percent, 33)

    def test_wrong_note_then_timeout_records_false(self):
        self.controller.start()
        self.play(A4, 0.0)
        self.assertEqual(self.controller.note_status, NoteStatus.INCORRECT)
        self.controller.poll(now=2.0)
        self.assertEqual(self.controller.outcomes, [False])
        self.assertEqual(self.controller.note_status, NoteStatus.PENDING)

    def test_correct_is_not_overwritten_within_degree(self):
        self.controller.start()
        self.play(G4, 0.0)
        self.detector.emit(None, 0.5)
        self.play(A4, 0.6)
        self.assertEqual(self.controller.note_status, NoteStatus.CORRECT)
        self.controller.stop()
        self.assertEqual(self.controller.outcomes, [True])

    def test_stop_records_final_degree_once(self):
        self.controller.start()
        self.play(G4, 0.0)
        self.controller.stop()
        self.controller.stop()
        self.assertEqual(self.controller.outcomes, [True])
        self.assertFalse(self.controller.is_running)
        self.assertEqual(self.detector.stop_count, 1)
        self.assertEqual(self.synth.stop_count, 1)

    def test_stop_without_confirmation_records_nothing(self):
        self.controller.start()
        self.controller.poll(now=2.0)
        self.controller.stop()
        self.assertEqual(self.controller.outcomes, [])

    def test_outcome_count_matches_completed_degrees(self):
        self.controller.start()
        self.play(G4, 0.0)
        for n in range(1, 4):
            self.controller.poll(now=2.0 * n)
            self.assertEqual(len(self.controller.outcomes), n)

    def test_restart_clears_outcomes(self):
        self.controller.start()
        self.play(G4, 0.0)
        self.controller.stop()
        self.assertEqual(self.controller.outcomes, [True])
        self.controller.generator = ScriptedGenerator([THIRD])
        self.controller.start()
        self.assertEqual(self.controller.outcomes, [])
        self.assertEqual(self.controller.current_degree, THIRD)

    def test_microphone_failure_keeps_session_stopped(self):
        detector = MockNoteDetectionService(start_error=MicrophoneUnavailable("denied"))
        errors = []
        controller = SessionController(
            detection_service=detector, synthesizer=self.synth, clock=self.clock
        )
        controller.events.on(SessionEventType.ERROR, errors.append)
        with self.assertRaises(MicrophoneUnavailable):
            controller.start()
        self.assertFalse(controller.is_running)
        self.assertIsNone(controller.current_degree)
        self.assertEqual(self.synth.rendered, [])
        self.assertEqual(len(errors), 1)

    def test_estimates_ignored_while_stopped(self):
        self.controller.submit_estimate(None)
        self.assertTrue(self.controller.estimate_queue.empty())

    def test_timer_does_not_fire_early(self):
        self.controller.start()
        self.controller.poll(now=1.99)
        self.assertEqual(self.controller.current_degree, FIFTH)
        self.controller.poll(now=2.0)
        self.assertEqual(self.controller.current_degree, THIRD)

    def test_set_interval_moves_to_fresh_target_and_rearms_timer(self):
        self.controller.start()
        self.clock.now = 1.0
        self.controller.set_interval(3.0)
        self.assertEqual(self.controller.current_degree, THIRD)
        self.assertEqual(len(self.synth.rendered), 2)
        self.controller.poll(now=3.5)
        self.assertEqual(self.controller.current_degree, THIRD)
        self.controller.poll(now=4.0)
        self.assertEqual(self.controller.current_degree, TONIC)

    def test_setting_validation(self):
        with self.assertRaises(ValueError):
            self.controller.set_interval(0.5)
        with self.assertRaises(ValueError):
            self.controller.set_interval(5.5)
        with self.assertRaises(ValueError):
            self.controller.set_volume(1.5)
        with self.assertRaises(ValueError):
            self.controller.set_mode("dorian")

    def test_key_change_replays_chord_for_new_key(self):
        self.controller.start()
        self.controller.set_key("D")
        self.assertEqual(self.controller.current_degree, THIRD)
        # Third of D major
        self.assertEqual(self.controller.expected_pitch_class, "F#")
        self.assertEqual(self.synth.rendered[-1][0], 2)
        self.controller.set_mode("minor")
        self.assertEqual(self.controller.current_degree, TONIC)
        self.assertEqual(self.controller.expected_pitch_class, "D")
        self.assertEqual(len(self.synth.rendered), 3)

    def test_unchanged_setting_keeps_target(self):
        self.controller.start()
        self.controller.set_key("C")
        self.controller.set_volume(0.3)
        self.controller.set_interval(2.0)
        self.assertEqual(self.controller.current_degree, FIFTH)
        self.assertEqual(len(self.synth.rendered), 1)

    def test_volume_and_mute_changes_restart_target(self):
        self.controller.start()
        self.controller.set_volume(0.6)
        self.assertEqual(self.synth.rendered[-1][2], 0.6)
        self.assertEqual(self.controller.current_degree, THIRD)
        self.controller.set_muted(True)
        self.assertEqual(self.controller.current_degree, TONIC)
        self.assertEqual(len(self.synth.rendered), 2)

    def test_setting_change_timer_restarts_from_change(self):
        self.controller.start()
        self.clock.now = 1.5
        self.controller.set_key("E")
        self.controller.poll(now=2.0)
        self.assertEqual(self.controller.current_degree, THIRD)
        self.controller.poll(now=3.5)
        self.assertEqual(self.controller.current_degree, TONIC)

    def test_setting_change_records_superseded_degree(self):
        self.controller.start()
        self.play(G4, 0.0)
        self.controller.set_key("F")
        self.assertEqual(self.controller.outcomes, [True])
        self.assertEqual(self.controller.note_status, NoteStatus.PENDING)

    def test_settings_while_stopped_do_not_render(self):
        self.controller.set_key("D")
        self.controller.set_volume(0.9)
        self.assertEqual(self.synth.rendered, [])
        self.assertIsNone(self.controller.current_degree)
        self.controller.start()
        self.assertEqual(self.controller.expected_pitch_class, "A")

    def test_stop_scores_estimates_still_queued(self):
        self.controller.start()
        t = 0.0
        while t <= 0.2:
            self.detector.emit(G4, t)
            t += 1 / 60
        self.controller.stop()
        self.assertEqual(self.controller.outcomes, [True])

    def test_muted_session_still_scores(self):
        self.controller.set_muted(True)
        self.controller.start()
        self.assertEqual(self.synth.rendered, [])
        self.play(G4, 0.0)
        self.assertEqual(self.controller.note_status, NoteStatus.CORRECT)

    def test_reset_results(self):
        self.controller.start()
        self.play(G4, 0.0)
        self.controller.poll(now=2.0)
        self.controller.reset_results()
        self.assertEqual(self.controller.outcomes, [])
        self.assertEqual(self.controller.accuracy_percent, 0)

    def test_events(self):
        seen = []
        for event in SessionEventType:
            self.controller.events.on(event, lambda *a, e=event: seen.append(e))
        self.controller.start()
        self.play(G4, 0.0)
        self.controller.poll(now=2.0)
        self.controller.stop()
        self.assertEqual(
            seen,
            [
                SessionEventType.TARGET_CHANGED,
                SessionEventType.STARTED,
                SessionEventType.NOTE_CONFIRMED,
                SessionEventType.STATUS_CHANGED,
                SessionEventType.OUTCOME_RECORDED,
                SessionEventType.TARGET_CHANGED,
                SessionEventType.OUTCOME_RECORDED,
                SessionEventType.STOPPED,
            ],
        )


class TestAccuracy(unittest.TestCase):
    def test_accuracy_percent(self):
        self.assertEqual(accuracy_percent([]), 0)
        self.assertEqual(accuracy_percent([True, True, True]), 100)
        self.assertEqual(accuracy_percent([True, False, False]), 33)
        self.assertEqual(accuracy_percent([True, True, False]), 67)
        self.assertEqual(accuracy_percent([False, False]), 0)

    def test_accuracy_rounds_halves_up(self):
        self.assertEqual(accuracy_percent([True] + [False] * 7), 13)
        self.assertEqual(accuracy_percent([True] * 5 + [False] * 3), 63)
        self.assertEqual(accuracy_percent([True] + [False] * 39), 3)
        self.assertEqual(accuracy_percent([True, False]), 50)


if __name__ == "__main__":
    unittest.main()
