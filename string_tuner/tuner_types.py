"""Type definitions for the String Tuner project."""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, List, Optional, Tuple

import numpy as np

# A fixed-length window of mono float32 samples in [-1.0, 1.0]
SampleWindow = np.ndarray

SHARP_NOTES: Tuple[str, ...] = (
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B",
)
FLAT_NOTES: Tuple[str, ...] = (
    "C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B",
)

# Standard guitar tuning, low string first
STANDARD_TUNING: Tuple[str, ...] = ("E", "A", "D", "G", "B", "E")

DEFAULT_NOISE_GATE = 0.005


class TuningStatus(Enum):
    """Status shown by the tuner indicator."""

    IDLE = "idle"
    LISTENING = "listening"
    TUNE_OK = "tune_ok"
    TUNE_LOW = "tune_low"
    TUNE_HIGH = "tune_high"

    @property
    def is_tuning(self) -> bool:
        """True when a pitch was detected on the last tick."""
        return self in (TuningStatus.TUNE_OK, TuningStatus.TUNE_LOW, TuningStatus.TUNE_HIGH)


@dataclass(frozen=True)
class PitchEstimate:
    """Result of running the pitch estimator over one window."""

    frequency: Optional[float]  # Hz, or None when no pitch was found
    rms: float  # Root-mean-square amplitude of the window

    @property
    def has_pitch(self) -> bool:
        return self.frequency is not None


@dataclass(frozen=True)
class NoteReading:
    """Pitch class and tuning error for a detected frequency."""

    note_index: int  # 0 (C) .. 11 (B), octave independent
    cents: float  # Signed distance to the nearest tempered semitone, (-50, +50]
    midi_note: Optional[int] = None  # Nearest MIDI note number, if known

    def note_name(self, use_flats: bool = False) -> str:
        names = FLAT_NOTES if use_flats else SHARP_NOTES
        return names[self.note_index]


@dataclass(frozen=True)
class StringIndicator:
    """Per-string highlight state for a standard-tuning string row."""

    label: str
    active: bool  # The current note matches this string's note
    in_tune: bool  # ...and the status is TUNE_OK


@dataclass(frozen=True)
class Snapshot:
    """Externally published tuner state, rebuilt on every tick."""

    status: TuningStatus = TuningStatus.IDLE
    frequency: Optional[float] = None
    note_index: Optional[int] = None
    cents: float = 0.0
    rms: float = 0.0

    EMPTY_NOTE: ClassVar[str] = "-"

    @classmethod
    def empty(cls, status: TuningStatus = TuningStatus.IDLE, rms: float = 0.0) -> "Snapshot":
        """A snapshot with no frequency, note or cents."""
        return cls(status=status, rms=rms)

    def note_name(self, use_flats: bool = False) -> str:
        if self.note_index is None:
            return self.EMPTY_NOTE
        names = FLAT_NOTES if use_flats else SHARP_NOTES
        return names[self.note_index]

    def has_signal(self, noise_gate: float = DEFAULT_NOISE_GATE) -> bool:
        """Whether the input is loud enough to count as signal."""
        return self.status is not TuningStatus.IDLE and self.rms >= noise_gate

    @property
    def needle_position(self) -> float:
        """Needle position across the gauge in percent, 50 being in tune."""
        return min(100.0, max(0.0, 50.0 + self.cents / 2.0))

    def string_indicators(
        self, noise_gate: float = DEFAULT_NOISE_GATE
    ) -> List[StringIndicator]:
        """Highlight state for each string of a standard-tuned guitar."""
        current = self.note_name()
        signal = self.has_signal(noise_gate)
        indicators = []
        for label in STANDARD_TUNING:
            active = signal and current == label
            indicators.append(
                StringIndicator(
                    label=label,
                    active=active,
                    in_tune=active and self.status is TuningStatus.TUNE_OK,
                )
            )
        return indicators
