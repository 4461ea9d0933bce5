"""Reference pitch resolution and guitar string targets."""

from typing import Dict, List, NamedTuple, Optional, Tuple

import numpy as np

from .logging_config import get_logger
from .note_types import DropTuningNote, GuitarNote, PitchMode, parse_enum
from .note_utils import A4_MIDI, midi_to_note_name

logger = get_logger(__name__)

STANDARD_A4 = 440.0

# Accepted range for a user supplied reference pitch, inclusive
CUSTOM_PITCH_RANGE: Tuple[float, float] = (438.0, 445.0)

# Standard tuning, 6th string (lowest) first
GUITAR_NOTES: List[GuitarNote] = [
    GuitarNote("E2", 82.41),
    GuitarNote("A2", 110.0),
    GuitarNote("D3", 146.83),
    GuitarNote("G3", 196.0),
    GuitarNote("B3", 246.94),
    GuitarNote("E4", 329.63),
]

# MIDI numbers of the open strings in standard tuning
STANDARD_STRING_MIDI: Tuple[int, ...] = (40, 45, 50, 55, 59, 64)


class TuningShift(NamedTuple):
    value: int
    label: str


class DropTuning(NamedTuple):
    note: DropTuningNote
    label: str
    freq: float


TUNING_SHIFTS: List[TuningShift] = [
    TuningShift(-1, "Half step down (Eb)"),
    TuningShift(-2, "Whole step down (D)"),
    TuningShift(-3, "1.5 steps down (Db)"),
    TuningShift(-4, "2 steps down (C)"),
    TuningShift(-5, "2.5 steps down (B)"),
]

DROP_TUNINGS: Dict[DropTuningNote, DropTuning] = {
    drop.note: drop
    for drop in [
        DropTuning(DropTuningNote.D_SHARP, "Drop D#", 77.78),
        DropTuning(DropTuningNote.D, "Drop D", 73.42),
        DropTuning(DropTuningNote.C_SHARP, "Drop C#", 69.3),
        DropTuning(DropTuningNote.C, "Drop C", 65.41),
        DropTuning(DropTuningNote.B, "Drop B", 61.74),
    ]
}


def is_valid_custom_pitch(pitch: Optional[float]) -> bool:
    if pitch is None or isinstance(pitch, bool):
        return False
    low, high = CUSTOM_PITCH_RANGE
    return bool(np.isfinite(pitch)) and low <= pitch <= high


def resolve_a4(mode, custom_pitch: float = STANDARD_A4, tuning_shift: int = 0) -> float:
    """Get the A4 frequency detection and judging should use.

    Args:
        mode: Active PitchMode (or its string value)
        custom_pitch: User reference pitch, used in custom mode only. Range
            checking is up to the caller.
        tuning_shift: Semitone offset, used in shift mode only

    Returns:
        A4 in Hz; unrecognized modes fall back to 440 Hz
    """
    if mode == PitchMode.CUSTOM:
        return float(custom_pitch)
    if mode == PitchMode.SHIFT:
        return STANDARD_A4 * 2 ** (tuning_shift / 12)
    if mode != PitchMode.STANDARD:
        logger.debug(f"Unknown pitch mode {mode!r}, using {STANDARD_A4} Hz")
    return STANDARD_A4


def _semitone_to_freq(semitone: float, mode, custom_pitch: float) -> float:
    freq = STANDARD_A4 * 2 ** ((semitone - A4_MIDI) / 12)
    if mode == PitchMode.CUSTOM:
        # A custom reference pitch rescales frequencies, note names stay put
        freq *= custom_pitch / STANDARD_A4
    return freq


def guitar_strings(
    mode,
    custom_pitch: float = STANDARD_A4,
    tuning_shift: int = 0,
    drop_enabled: bool = False,
    drop_note: DropTuningNote = DropTuningNote.D,
) -> List[GuitarNote]:
    """Compute the target note of each string, 6th string (lowest) first.

    Only shift mode moves the semitones (and so the names). Custom mode scales
    the resulting frequencies. With drop tuning enabled the 6th string targets
    the drop note's exact frequency but is named after the nearest semitone.
    """
    shift = tuning_shift if mode == PitchMode.SHIFT else 0

    notes = []
    for midi in STANDARD_STRING_MIDI:
        semitone = midi + shift
        notes.append(
            GuitarNote(
                name=midi_to_note_name(semitone),
                freq=_semitone_to_freq(semitone, mode, custom_pitch),
            )
        )

    if drop_enabled:
        drop = DROP_TUNINGS.get(parse_enum(DropTuningNote, drop_note))
        if drop is None:
            logger.warning(f"Unknown drop tuning note: {drop_note!r}")
            return notes
        semitone = 12 * float(np.log2(drop.freq / STANDARD_A4)) + A4_MIDI + shift
        notes[0] = GuitarNote(
            name=midi_to_note_name(int(round(semitone))),
            freq=_semitone_to_freq(semitone, mode, custom_pitch),
        )

    return notes
