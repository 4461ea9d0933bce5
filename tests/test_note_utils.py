import math
import unittest

import numpy as np

from fret_tuner.note_types import NoteInfo, TrayColor, TuningStatus
from fret_tuner.note_utils import (
    format_cent,
    judge_tuning,
    map_frequency,
    midi_to_note_name,
    nearest_semitone,
    tray_color,
)


class TestMapFrequency(unittest.TestCase):
    def test_a4(self):
        info = map_frequency(440.0, 440.0)
        self.assertEqual(info.name, "A4")
        self.assertAlmostEqual(info.cent, 0.0)
        self.assertAlmostEqual(info.target_freq, 440.0)

    def test_open_low_e(self):
        info = map_frequency(82.41, 440.0)
        self.assertEqual(info.name, "E2")
        self.assertAlmostEqual(info.target_freq, 82.4069, places=3)
        self.assertLess(abs(info.cent), 1.0)

    def test_sharp_reading(self):
        info = map_frequency(445.0, 440.0)
        self.assertEqual(info.name, "A4")
        self.assertAlmostEqual(info.cent, 19.56, places=1)

    def test_octave_transition(self):
        self.assertEqual(map_frequency(246.94, 440.0).name, "B3")
        self.assertEqual(map_frequency(261.63, 440.0).name, "C4")

    def test_custom_reference_moves_target_not_name(self):
        info = map_frequency(442.0, 442.0)
        self.assertEqual(info.name, "A4")
        self.assertAlmostEqual(info.cent, 0.0)
        self.assertAlmostEqual(info.target_freq, 442.0)

    def test_shifted_reference_renames_notes(self):
        # A string tuned to Eb2 reads as E2 a half step down
        info = map_frequency(77.78, 440.0 * 2 ** (-1 / 12))
        self.assertEqual(info.name, "E2")

    def test_negative_midi_numbers(self):
        info = map_frequency(5.0, 440.0)
        self.assertEqual(info.name, "D#-2")

    def test_no_signal_sentinel(self):
        expected = NoteInfo(name="-", cent=0.0, target_freq=0.0)
        self.assertEqual(map_frequency(None, 440.0), expected)
        self.assertEqual(map_frequency(0, 440.0), expected)
        self.assertEqual(map_frequency(-12.0, 440.0), expected)
        self.assertEqual(map_frequency(float("nan"), 440.0), expected)
        self.assertFalse(expected.has_signal)

    def test_extreme_finite_inputs_do_not_raise(self):
        self.assertFalse(map_frequency(1.79e308, 1.0).has_signal)
        self.assertLessEqual(abs(map_frequency(5e-324, 1e308).cent), 50.0)

        # Ratio overflows a double but the target note itself is representable
        info = map_frequency(1e300, 1e-10)
        self.assertTrue(info.has_signal)
        self.assertLessEqual(abs(info.cent), 50.0)
        self.assertTrue(math.isclose(info.target_freq, 1e300, rel_tol=0.05))

    def test_cent_range_and_target_over_grid(self):
        for a4 in (415.3, 438.0, 440.0, 445.0):
            for freq in np.geomspace(20.0, 4000.0, 400):
                freq = float(freq)
                info = map_frequency(freq, a4)
                self.assertGreater(info.cent, -50.0)
                self.assertLessEqual(info.cent, 50.0)
                expected = a4 * 2 ** (round(12 * math.log2(freq / a4)) / 12)
                self.assertTrue(math.isclose(info.target_freq, expected, rel_tol=1e-9))

    def test_half_semitone_rounds_toward_lower_note(self):
        self.assertEqual(nearest_semitone(0.5), 0)
        self.assertEqual(nearest_semitone(-0.5), -1)
        self.assertEqual(nearest_semitone(0.51), 1)


class TestMidiToNoteName(unittest.TestCase):
    def test_names(self):
        self.assertEqual(midi_to_note_name(69), "A4")
        self.assertEqual(midi_to_note_name(60), "C4")
        self.assertEqual(midi_to_note_name(40), "E2")
        self.assertEqual(midi_to_note_name(0), "C-1")
        self.assertEqual(midi_to_note_name(-1), "B-2")


class TestJudgeTuning(unittest.TestCase):
    def test_boundaries(self):
        self.assertEqual(judge_tuning(0), TuningStatus.PERFECT)
        self.assertEqual(judge_tuning(3), TuningStatus.PERFECT)
        self.assertEqual(judge_tuning(3.0001), TuningStatus.GOOD)
        self.assertEqual(judge_tuning(10), TuningStatus.GOOD)
        self.assertEqual(judge_tuning(10.0001), TuningStatus.OFF)

    def test_symmetric(self):
        self.assertEqual(judge_tuning(-3), TuningStatus.PERFECT)
        self.assertEqual(judge_tuning(-3.0001), TuningStatus.GOOD)
        self.assertEqual(judge_tuning(-10), TuningStatus.GOOD)
        self.assertEqual(judge_tuning(-10.0001), TuningStatus.OFF)


class TestFormatCent(unittest.TestCase):
    def test_signs(self):
        self.assertEqual(format_cent(4.6), "+5")
        self.assertEqual(format_cent(0.0), "0")
        self.assertEqual(format_cent(-0.4), "0")
        self.assertEqual(format_cent(-3.6), "-4")
        self.assertEqual(format_cent(0.5), "+1")


class TestTrayColor(unittest.TestCase):
    def test_initial(self):
        self.assertEqual(tray_color(2.0), TrayColor.GREEN)
        self.assertEqual(tray_color(-5.0), TrayColor.YELLOW)
        self.assertEqual(tray_color(10.0), TrayColor.RED)

    def test_hysteresis_holds_colour(self):
        self.assertEqual(tray_color(3.8, TrayColor.GREEN), TrayColor.GREEN)
        self.assertEqual(tray_color(2.5, TrayColor.YELLOW), TrayColor.YELLOW)
        self.assertEqual(tray_color(10.5, TrayColor.YELLOW), TrayColor.YELLOW)
        self.assertEqual(tray_color(9.5, TrayColor.RED), TrayColor.RED)

    def test_hysteresis_releases_colour(self):
        self.assertEqual(tray_color(4.5, TrayColor.GREEN), TrayColor.YELLOW)
        self.assertEqual(tray_color(1.9, TrayColor.YELLOW), TrayColor.GREEN)
        self.assertEqual(tray_color(11.0, TrayColor.YELLOW), TrayColor.RED)
        self.assertEqual(tray_color(8.5, TrayColor.RED), TrayColor.YELLOW)
        self.assertEqual(tray_color(1.0, TrayColor.RED), TrayColor.GREEN)


if __name__ == "__main__":
    unittest.main()
