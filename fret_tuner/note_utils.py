"""Utility functions for turning frequencies into notes and tuning judgements."""

import math
from typing import List, Optional

import numpy as np

from .logging_config import get_logger
from .note_types import NoteInfo, TrayColor, TuningStatus

logger = get_logger(__name__)

# A4 is MIDI note 69 regardless of the frequency assigned to it
A4_MIDI = 69

NOTE_NAMES: List[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]

# Tuning judge thresholds in cents
PERFECT_CENTS = 3.0
GOOD_CENTS = 10.0

# Tray indicator thresholds in cents
TRAY_GREEN_CENTS = 3.0
TRAY_RED_CENTS = 10.0
TRAY_HYSTERESIS_CENTS = 1.0


def midi_to_note_name(midi_number: int) -> str:
    """Convert a MIDI note number to a note name in Scientific Pitch Notation.

    Args:
        midi_number: MIDI note number, may be negative

    Returns:
        Note name with octave (e.g., 'A4', 'C#-1')

    Note:
        - Middle C (MIDI 60) is C4
        - Octave numbers change between B and C (e.g., B3 -> C4)
    """
    octave = math.floor(midi_number / 12) - 1
    # Guard against negative MIDI numbers
    note_idx = ((midi_number % 12) + 12) % 12
    return f"{NOTE_NAMES[note_idx]}{octave}"


def nearest_semitone(semitones: float) -> int:
    """Round a semitone offset, sending exact halves down so cents land in (-50, 50]."""
    return math.ceil(semitones - 0.5)


def map_frequency(frequency: Optional[float], reference_a4: float) -> NoteInfo:
    """Interpret a detected frequency against a reference pitch.

    Args:
        frequency: Detected frequency in Hz, or None when there is no signal
        reference_a4: Frequency assigned to A4 in Hz

    Returns:
        NoteInfo with the nearest note name, the deviation in cents and the
        frequency of that nearest note. Missing, non-positive or non-finite
        input yields the silent sentinel.
    """
    if frequency is None or not np.isfinite(frequency) or frequency <= 0:
        return NoteInfo.silent()
    if not np.isfinite(reference_a4) or reference_a4 <= 0:
        logger.warning(f"Invalid reference pitch: {reference_a4}")
        return NoteInfo.silent()

    semitones = 12 * float(np.log2(frequency) - np.log2(reference_a4))
    nearest = nearest_semitone(semitones)
    cent = (semitones - nearest) * 100

    with np.errstate(over="ignore", under="ignore"):
        target_freq = float(np.exp2(np.log2(reference_a4) + nearest / 12))
    if not math.isfinite(target_freq) or target_freq <= 0:
        logger.debug(f"Frequency {frequency} out of range for A4={reference_a4}")
        return NoteInfo.silent()

    name = midi_to_note_name(A4_MIDI + nearest)
    return NoteInfo(name=name, cent=cent, target_freq=target_freq)


def judge_tuning(cent: float) -> TuningStatus:
    abs_cent = abs(cent)
    if abs_cent <= PERFECT_CENTS:
        return TuningStatus.PERFECT
    if abs_cent <= GOOD_CENTS:
        return TuningStatus.GOOD
    return TuningStatus.OFF


def format_cent(cent: float) -> str:
    """Round to a whole cent and render with an explicit '+' for positive values."""
    # Halves round up, so -0.5 renders as "0" rather than "-1"
    rounded = math.floor(cent + 0.5)
    if rounded > 0:
        return f"+{rounded}"
    return str(rounded)


def tray_color(cent: float, current: Optional[TrayColor] = None) -> TrayColor:
    """Pick the tray indicator colour, sticking to the current one near boundaries.

    Green is within 3 cents and red from 10 cents. Once a colour is shown it only
    changes after the deviation crosses its boundary by the hysteresis margin, so
    the indicator does not flicker for a note hovering on a threshold.
    """
    abs_cent = abs(cent)

    if current is TrayColor.GREEN:
        if abs_cent <= TRAY_GREEN_CENTS + TRAY_HYSTERESIS_CENTS:
            return TrayColor.GREEN
        if abs_cent >= TRAY_RED_CENTS:
            return TrayColor.RED
        return TrayColor.YELLOW

    if current is TrayColor.YELLOW:
        if abs_cent <= TRAY_GREEN_CENTS - TRAY_HYSTERESIS_CENTS:
            return TrayColor.GREEN
        if abs_cent >= TRAY_RED_CENTS + TRAY_HYSTERESIS_CENTS:
            return TrayColor.RED
        return TrayColor.YELLOW

    if current is TrayColor.RED:
        if abs_cent >= TRAY_RED_CENTS - TRAY_HYSTERESIS_CENTS:
            return TrayColor.RED
        if abs_cent <= TRAY_GREEN_CENTS - TRAY_HYSTERESIS_CENTS:
            return TrayColor.GREEN
        return TrayColor.YELLOW

    if abs_cent <= TRAY_GREEN_CENTS:
        return TrayColor.GREEN
    if abs_cent < TRAY_RED_CENTS:
        return TrayColor.YELLOW
    return TrayColor.RED
