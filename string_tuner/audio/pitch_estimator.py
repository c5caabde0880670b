"""Autocorrelation pitch estimation for plucked strings."""

from __future__ import annotations
from typing import ClassVar, Optional

import numpy as np

from ..logger import get_logger
from ..tuner_types import PitchEstimate, SampleWindow
from ..core.interfaces import IPitchEstimator

logger = get_logger(__name__)


class AutocorrelationPitchEstimator(IPitchEstimator):
    """Estimates the fundamental frequency of a window by autocorrelation.

    The window is gated on RMS, trimmed to its first and last quiet samples,
    autocorrelated, and the strongest correlation peak past the first local
    minimum is refined with parabolic interpolation.
    """

    DEFAULT_NOISE_GATE: ClassVar[float] = 0.005  # RMS below this is silence
    DEFAULT_TRIM_THRESHOLD: ClassVar[float] = 0.2  # Edge samples quieter than this start the working buffer
    MIN_FREQUENCY: ClassVar[float] = 70.0  # Hz - lowest guitar fundamental we report
    MAX_FREQUENCY: ClassVar[float] = 1200.0  # Hz

    def __init__(
        self,
        noise_gate: float = DEFAULT_NOISE_GATE,
        trim_threshold: float = DEFAULT_TRIM_THRESHOLD,
        min_frequency: float = MIN_FREQUENCY,
        max_frequency: float = MAX_FREQUENCY,
    ) -> None:
        """Initialize the estimator.

        Args:
            noise_gate: Minimum RMS amplitude to attempt detection
            trim_threshold: Magnitude used to find the edges of the working buffer
            min_frequency: Lowest frequency accepted, in Hz
            max_frequency: Highest frequency accepted, in Hz
        """
        if min_frequency <= 0 or max_frequency <= min_frequency:
            raise ValueError(
                f"Invalid frequency range: {min_frequency}-{max_frequency} Hz"
            )
        self.noise_gate = noise_gate
        self.trim_threshold = trim_threshold
        self.min_frequency = min_frequency
        self.max_frequency = max_frequency

    def estimate(self, window: SampleWindow, sample_rate: int) -> PitchEstimate:
        """Estimate the fundamental frequency of a sample window.

        Args:
            window: 1-D array of samples in [-1, 1]
            sample_rate: Sampling rate of the window in Hz

        Returns:
            PitchEstimate whose frequency is None when no pitch was found
        """
        samples = np.asarray(window, dtype=np.float64).ravel()
        if samples.size == 0:
            return PitchEstimate(frequency=None, rms=0.0)

        rms = float(np.sqrt(np.mean(samples * samples)))
        if rms < self.noise_gate:
            return PitchEstimate(frequency=None, rms=rms)

        frequency = self._detect(samples, sample_rate)
        if frequency is None:
            return PitchEstimate(frequency=None, rms=rms)

        if not self.min_frequency <= frequency <= self.max_frequency:
            logger.debug(f"Rejected out-of-range frequency: {frequency:.1f}Hz")
            return PitchEstimate(frequency=None, rms=rms)

        return PitchEstimate(frequency=frequency, rms=rms)

    def trim(self, samples: np.ndarray) -> np.ndarray:
        """Cut partial cycles off both ends of the window.

        The working buffer runs from the first quiet sample in the first half
        to the last quiet sample in the second half, inclusive.
        """
        size = len(samples)
        half = size // 2
        quiet = np.abs(samples) < self.trim_threshold

        start = 0
        head = np.flatnonzero(quiet[:half])
        if head.size:
            start = int(head[0])

        end = size - 1
        # Scan back from the last sample over the second half
        tail = np.flatnonzero(quiet[size - half:][::-1])
        if tail.size:
            end = size - 1 - int(tail[0])

        return samples[start:end + 1]

    @staticmethod
    def autocorrelate(samples: np.ndarray) -> np.ndarray:
        """C[lag] = sum(x[i] * x[i + lag]) for lag in 0 .. len - 1."""
        return np.correlate(samples, samples, mode="full")[len(samples) - 1:]

    def _detect(self, samples: np.ndarray, sample_rate: int) -> Optional[float]:
        trimmed = self.trim(samples)
        size = len(trimmed)
        if size <= 2:
            return None

        corr = self.autocorrelate(trimmed)

        # Walk down from the zero-lag peak to the first local minimum
        dip = 0
        while dip < size - 1 and corr[dip] > corr[dip + 1]:
            dip += 1
        if dip >= size - 2:
            return None

        best_lag = dip + 1 + int(np.argmax(corr[dip + 1:]))
        if best_lag >= size - 1:
            return None

        left, center, right = corr[best_lag - 1], corr[best_lag], corr[best_lag + 1]
        denominator = 2.0 * (left + right - 2.0 * center)
        if denominator == 0:
            return None

        lag = best_lag + (left - right) / denominator
        if lag <= 0:
            return None

        return float(sample_rate / lag)
