"""Defines the core interfaces for the String Tuner application."""

from __future__ import annotations
from abc import ABC, abstractmethod

from ..tuner_types import PitchEstimate, SampleWindow


class ISampleSource(ABC):
    """Interface for audio capture sources."""

    @abstractmethod
    def open(self) -> None:
        """Acquire the capture device.

        Raises:
            PermissionDenied: If access to the device is refused
            DeviceUnavailable: If no capture device exists
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the capture device. Safe to call when already closed."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if the device is currently held."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sampling rate of the device in Hz."""
        pass

    @abstractmethod
    def latest_window(self) -> SampleWindow:
        """Return the most recent fixed-size window of samples."""
        pass


class IPitchEstimator(ABC):
    """Interface for fundamental frequency estimators."""

    @abstractmethod
    def estimate(self, window: SampleWindow, sample_rate: int) -> PitchEstimate:
        """Estimate the fundamental frequency of a sample window."""
        pass
