"""Utility functions for working with musical notes and frequencies."""

import math

import numpy as np

from .tuner_types import FLAT_NOTES, SHARP_NOTES, NoteReading

A4_FREQUENCY = 440.0
A4_MIDI = 69


def midi_number(freq: float, reference: float = A4_FREQUENCY) -> float:
    """Fractional MIDI note number for a frequency (A4 = 69)."""
    return 12 * np.log2(freq / reference) + A4_MIDI


def map_frequency(freq: float, reference: float = A4_FREQUENCY) -> NoteReading:
    """Map a frequency to its pitch class and cents deviation.

    Args:
        freq: Frequency in Hz
        reference: Tuning reference for A4 in Hz

    Returns:
        NoteReading with note_index in [0, 11] and cents in (-50, +50]

    Raises:
        ValueError: If the frequency is not a positive, finite number
    """
    if not math.isfinite(freq) or freq <= 0:
        raise ValueError(f"Invalid frequency value: {freq}")

    n = float(midi_number(freq, reference))
    # An exact half goes to the lower note, so cents stays within (-50, +50]
    nearest = math.ceil(n - 0.5)
    cents = (n - nearest) * 100.0

    return NoteReading(note_index=nearest % 12, cents=cents, midi_note=nearest)


def note_name(note_index: int, use_flats: bool = False) -> str:
    """Name of a pitch class, e.g. 9 -> 'A', 10 -> 'A#' (or 'Bb')."""
    names = FLAT_NOTES if use_flats else SHARP_NOTES
    return names[note_index % 12]


def get_note_name(freq: float, use_flats: bool = False) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        freq: Frequency in Hz
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')

    Returns:
        Note name with octave in SPN (e.g., 'A4', 'C#4', 'Bb3'), or '---' for
        a non-positive frequency

    Note:
        - Middle C is C4 (261.63 Hz)
        - Octave numbers change between B and C (e.g., B3 -> C4)
    """
    if freq <= 0:
        return "---"

    reading = map_frequency(freq)
    octave = (reading.midi_note // 12) - 1
    return f"{note_name(reading.note_index, use_flats)}{octave}"
