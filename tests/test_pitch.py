import math
import unittest

from fret_tuner.note_types import DropTuningNote, PitchMode
from fret_tuner.pitch import (
    DROP_TUNINGS,
    GUITAR_NOTES,
    TUNING_SHIFTS,
    guitar_strings,
    is_valid_custom_pitch,
    resolve_a4,
)

STANDARD_NAMES = ["E2", "A2", "D3", "G3", "B3", "E4"]


class TestResolveA4(unittest.TestCase):
    def test_standard_ignores_other_arguments(self):
        self.assertEqual(resolve_a4(PitchMode.STANDARD, 445.0, -3), 440.0)
        self.assertEqual(resolve_a4("standard", 438.0, 7), 440.0)

    def test_custom_uses_raw_pitch(self):
        self.assertEqual(resolve_a4(PitchMode.CUSTOM, 442.0, -1), 442.0)

    def test_shift(self):
        self.assertAlmostEqual(resolve_a4(PitchMode.SHIFT, 440.0, -1), 415.305, places=3)
        self.assertAlmostEqual(resolve_a4("shift", 445.0, -2), 440.0 * 2 ** (-2 / 12))

    def test_unknown_mode_falls_back(self):
        self.assertEqual(resolve_a4("bogus", 442.0, -1), 440.0)
        self.assertEqual(resolve_a4(None), 440.0)


class TestCustomPitchRange(unittest.TestCase):
    def test_bounds_inclusive(self):
        self.assertTrue(is_valid_custom_pitch(438.0))
        self.assertTrue(is_valid_custom_pitch(445))
        self.assertFalse(is_valid_custom_pitch(437.9))
        self.assertFalse(is_valid_custom_pitch(445.1))
        self.assertFalse(is_valid_custom_pitch(None))
        self.assertFalse(is_valid_custom_pitch(float("nan")))


class TestGuitarStrings(unittest.TestCase):
    def test_standard_tuning_matches_reference_table(self):
        notes = guitar_strings(PitchMode.STANDARD, 440.0, 0, False, DropTuningNote.D)
        self.assertEqual([n.name for n in notes], STANDARD_NAMES)
        for note, reference in zip(notes, GUITAR_NOTES):
            self.assertLess(abs(note.freq - reference.freq), 0.01)

    def test_custom_mode_scales_frequency_only(self):
        notes = guitar_strings(PitchMode.CUSTOM, 442.0, -3)
        self.assertEqual([n.name for n in notes], STANDARD_NAMES)
        self.assertAlmostEqual(notes[5].freq, 329.6276 * 442 / 440, places=3)

    def test_shift_mode_renames_strings(self):
        notes = guitar_strings(PitchMode.SHIFT, 442.0, -2)
        self.assertEqual([n.name for n in notes], ["D2", "G2", "C3", "F3", "A3", "D4"])
        self.assertAlmostEqual(notes[0].freq, 440.0 * 2 ** ((38 - 69) / 12))

    def test_shift_ignored_outside_shift_mode(self):
        self.assertEqual(
            guitar_strings(PitchMode.STANDARD, 440.0, -2),
            guitar_strings(PitchMode.STANDARD, 440.0, 0),
        )

    def test_drop_d_overrides_only_sixth_string(self):
        plain = guitar_strings(PitchMode.STANDARD, 440.0, 0, False, DropTuningNote.D)
        dropped = guitar_strings(PitchMode.STANDARD, 440.0, 0, True, DropTuningNote.D)
        self.assertEqual(dropped[0].name, "D2")
        self.assertAlmostEqual(dropped[0].freq, 73.42, places=2)
        self.assertEqual(dropped[1:], plain[1:])

    def test_drop_keeps_exact_pitch_but_names_nearest_semitone(self):
        notes = guitar_strings(PitchMode.STANDARD, 440.0, 0, True, DropTuningNote.C_SHARP)
        equal_tempered = 440.0 * 2 ** ((37 - 69) / 12)
        self.assertEqual(notes[0].name, "C#2")
        self.assertTrue(math.isclose(notes[0].freq, 69.3, rel_tol=1e-12))
        self.assertGreater(abs(notes[0].freq - equal_tempered), 1e-3)

    def test_drop_d_sharp(self):
        notes = guitar_strings(PitchMode.STANDARD, 440.0, 0, True, DropTuningNote.D_SHARP)
        self.assertEqual(notes[0].name, "D#2")
        self.assertAlmostEqual(notes[0].freq, 77.78)

    def test_drop_with_shift(self):
        notes = guitar_strings(PitchMode.SHIFT, 440.0, -2, True, DropTuningNote.D)
        self.assertEqual(notes[0].name, "C2")
        self.assertTrue(math.isclose(notes[0].freq, 73.42 * 2 ** (-2 / 12), rel_tol=1e-12))

    def test_drop_with_custom_pitch(self):
        notes = guitar_strings(PitchMode.CUSTOM, 442.0, 0, True, "B")
        self.assertEqual(notes[0].name, "B1")
        self.assertAlmostEqual(notes[0].freq, 61.74 * 442 / 440)

    def test_every_drop_note_is_named_after_itself(self):
        for note, drop in DROP_TUNINGS.items():
            notes = guitar_strings(PitchMode.STANDARD, 440.0, 0, True, note)
            self.assertEqual(notes[0].name[:-1], note.value)
            self.assertAlmostEqual(notes[0].freq, drop.freq)


class TestTables(unittest.TestCase):
    def test_tuning_shifts_are_downward(self):
        self.assertEqual([s.value for s in TUNING_SHIFTS], [-1, -2, -3, -4, -5])


if __name__ == "__main__":
    unittest.main()
