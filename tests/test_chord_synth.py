import unittest
from unittest import mock

import numpy as np

from tonic_drill.audio import chord_synth
from tonic_drill.audio.chord_synth import (
    ChordSynthesizer,
    SR,
    envelope,
    synthesize_triad,
    triad_frequencies,
)
from tonic_drill.core.errors import NoAudioBackend


class FakeBackend:
    def __init__(self, fail_on_play=False):
        self.calls = []
        self.fail_on_play = fail_on_play

    def stop(self):
        self.calls.append("stop")

    def play(self, data, samplerate=None, blocking=False):
        if self.fail_on_play:
            raise OSError("device vanished")
        self.calls.append(("play", len(data), samplerate, blocking))


class TestTriadFrequencies(unittest.TestCase):
    def test_c_major(self):
        root, third, fifth = triad_frequencies("C", "major")
        self.assertAlmostEqual(root, 261.63, places=2)
        self.assertAlmostEqual(third, 329.63, places=1)
        self.assertAlmostEqual(fifth, 392.00, places=1)

    def test_minor_third(self):
        root, third, _ = triad_frequencies("D", "minor")
        self.assertAlmostEqual(third / root, 2 ** (3 / 12), places=6)

    def test_high_keys_drop_an_octave(self):
        self.assertAlmostEqual(triad_frequencies("G", "major")[0], 392.0, places=1)
        self.assertAlmostEqual(triad_frequencies("A", "minor")[0], 220.0, places=1)
        self.assertAlmostEqual(triad_frequencies("G#/Ab", "major")[0], 207.65, places=1)


class TestSynthesis(unittest.TestCase):
    def test_length_and_dtype(self):
        x = synthesize_triad(triad_frequencies("C", "major"), 0.5, 0.8)
        self.assertEqual(len(x), int(SR * 0.8))
        self.assertEqual(x.dtype, np.float32)

    def test_headroom(self):
        x = synthesize_triad(triad_frequencies("E", "major"), 1.0, 0.5)
        # Three tones of three partials at 0.3 + 0.08 + 0.02, master gain 0.45
        self.assertLessEqual(float(np.max(np.abs(x))), 3 * 0.4 * 0.45 + 1e-6)

    def test_envelope_shape(self):
        env = envelope(int(SR * 0.5))
        self.assertEqual(env[0], 0.0)
        attack = int(0.02 * SR)
        self.assertAlmostEqual(env[attack], 1.0)
        self.assertAlmostEqual(env[-1], 0.001, places=6)
        tail = env[-int(0.1 * SR):]
        self.assertTrue(np.all(np.diff(tail) < 0))

    def test_volume_scales_signal(self):
        freqs = triad_frequencies("C", "major")
        loud = synthesize_triad(freqs, 1.0, 0.3)
        quiet = synthesize_triad(freqs, 0.5, 0.3)
        np.testing.assert_allclose(quiet, loud * 0.5, atol=1e-6)


class TestChordSynthesizer(unittest.TestCase):
    def test_stops_previous_chord_before_playing(self):
        backend = FakeBackend()
        synth = ChordSynthesizer(backend=backend)
        signal = synth.render("C", "major", 0.3, 0.8)
        self.assertIsNotNone(signal)
        synth.render("F", "major", 0.3, 0.8)
        self.assertEqual(
            backend.calls,
            ["stop", ("play", len(signal), SR, False), "stop", ("play", len(signal), SR, False)],
        )

    def test_muted_renders_nothing(self):
        backend = FakeBackend()
        synth = ChordSynthesizer(backend=backend)
        self.assertIsNone(synth.render("C", "major", 0.3, 0.8, muted=True))
        self.assertEqual(backend.calls, [])

    def test_no_backend_is_noop(self):
        with mock.patch.object(
            chord_synth, "load_sounddevice", side_effect=NoAudioBackend("no PortAudio")
        ):
            synth = ChordSynthesizer()
            self.assertFalse(synth.available)
            self.assertIsNone(synth.render("C", "major", 0.3, 0.8))
            synth.stop()

    def test_output_failure_disables_playback(self):
        backend = FakeBackend(fail_on_play=True)
        synth = ChordSynthesizer(backend=backend)
        self.assertIsNone(synth.render("C", "major", 0.3, 0.8))
        with mock.patch.object(chord_synth, "load_sounddevice") as loader:
            self.assertIsNone(synth.render("C", "major", 0.3, 0.8))
            loader.assert_not_called()

    def test_write_wav(self):
        import os
        import tempfile
        import soundfile as sf

        x = synthesize_triad(triad_frequencies("C", "major"), 0.3, 0.2)
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "chord.wav")
            chord_synth.write_wav(path, x)
            data, sr = sf.read(path)
        self.assertEqual(sr, SR)
        self.assertEqual(len(data), len(x))


if __name__ == "__main__":
    unittest.main()
