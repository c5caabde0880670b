"""String Tuner - real-time pitch detection for tuning plucked strings."""

from .tuner_types import (
    NoteReading,
    PitchEstimate,
    Snapshot,
    StringIndicator,
    TuningStatus,
)
from .core.errors import CaptureError, DeviceUnavailable, PermissionDenied

__version__ = "0.1.0"

__all__ = [
    "CaptureError",
    "DeviceUnavailable",
    "NoteReading",
    "PermissionDenied",
    "PitchEstimate",
    "Snapshot",
    "StringIndicator",
    "TuningStatus",
]
