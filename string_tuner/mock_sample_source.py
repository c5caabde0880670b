"""A scriptable sample source for unit tests."""

import threading
from typing import List, Optional

import numpy as np

from .core.interfaces import ISampleSource


def sine_wave(frequency, sample_rate, size=2048, amplitude=0.5, phase=0.0):
    """A pure sine window."""
    t = np.arange(size) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t + phase)).astype(np.float32)


class MockSampleSource(ISampleSource):
    """Serves queued windows, repeating the last one once the queue is empty."""

    def __init__(
        self,
        sample_rate: int = 16000,
        window_size: int = 2048,
        open_error: Optional[Exception] = None,
        open_gate: Optional[threading.Event] = None,
    ):
        self._sample_rate = sample_rate
        self._window_size = window_size
        self._windows: List[np.ndarray] = []
        self._current = np.zeros(window_size, dtype=np.float32)
        self.open_error = open_error
        self.open_gate = open_gate
        self.open_count = 0
        self.close_count = 0
        self.reads = 0
        self._open = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def feed(self, *windows: np.ndarray) -> None:
        self._windows.extend(windows)

    def open(self):
        if self.open_gate is not None:
            self.open_gate.wait(timeout=5)
        if self.open_error is not None:
            raise self.open_error
        self.open_count += 1
        self._open = True

    def close(self):
        self.close_count += 1
        self._open = False

    def is_open(self) -> bool:
        return self._open

    def latest_window(self) -> np.ndarray:
        if not self._open:
            raise RuntimeError("Read from a closed sample source")
        self.reads += 1
        if self._windows:
            self._current = self._windows.pop(0)
        return self._current
