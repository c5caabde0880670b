"""Audio capture and pitch estimation.

The microphone source lives in ``string_tuner.audio.microphone`` and is not
imported here, so the PortAudio library is only loaded when it is used.
"""

from .pitch_estimator import AutocorrelationPitchEstimator
from .sample_source import ArraySampleSource, WavFileSource

__all__ = [
    "AutocorrelationPitchEstimator",
    "ArraySampleSource",
    "WavFileSource",
]
