"""Sample sources backed by in-memory signals and recorded files."""

from __future__ import annotations
from typing import Optional

import numpy as np
import soundfile as sf

from ..logger import get_logger
from ..tuner_types import SampleWindow
from ..core.errors import DeviceUnavailable
from ..core.interfaces import ISampleSource

logger = get_logger(__name__)


class ArraySampleSource(ISampleSource):
    """Serves windows from an in-memory signal.

    Each call to latest_window() advances the read position by hop_size
    samples, so successive ticks walk through the signal.
    """

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int,
        window_size: int = 2048,
        hop_size: Optional[int] = None,
        loop: bool = False,
    ) -> None:
        """Initialize the source.

        Args:
            samples: Mono signal in [-1, 1]
            sample_rate: Sampling rate of the signal in Hz
            window_size: Number of samples per window
            hop_size: Samples to advance per window, or None for a full window
            loop: Wrap around at the end instead of padding with silence
        """
        self._samples = np.asarray(samples, dtype=np.float32).ravel()
        self._sample_rate = int(sample_rate)
        self._window_size = window_size
        self._hop_size = hop_size or window_size
        self._loop = loop
        self._position = 0
        self._open = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def exhausted(self) -> bool:
        """True once a non-looping source has served its last sample."""
        return not self._loop and self._position >= len(self._samples)

    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if len(self._samples) == 0:
            raise DeviceUnavailable("The audio source contains no samples.")
        self._position = 0
        self._open = True

    def close(self) -> None:
        self._open = False

    def latest_window(self) -> SampleWindow:
        size = self._window_size
        total = len(self._samples)
        if self._loop:
            indices = (self._position + np.arange(size)) % total
            window = self._samples[indices]
            self._position = (self._position + self._hop_size) % total
            return window

        window = np.zeros(size, dtype=np.float32)
        chunk = self._samples[self._position:self._position + size]
        window[:len(chunk)] = chunk
        self._position = min(total, self._position + self._hop_size)
        return window


class WavFileSource(ArraySampleSource):
    """Serves windows from a recorded audio file."""

    def __init__(
        self,
        file_path: str,
        window_size: int = 2048,
        hop_size: Optional[int] = None,
        loop: bool = False,
        gain: float = 1.0,
    ) -> None:
        self._file_path = file_path
        try:
            data, sample_rate = sf.read(file_path, dtype="float32", always_2d=True)
        except (OSError, RuntimeError) as e:
            logger.error(f"Could not read audio file {file_path}: {e}")
            raise DeviceUnavailable(
                f"Could not read audio file '{file_path}'. Check the path and format."
            ) from e

        samples = data[:, 0]
        if gain != 1.0:
            samples = np.clip(samples * gain, -1.0, 1.0)

        logger.info(
            f"Loaded {file_path}: {len(samples)} samples at {sample_rate}Hz"
        )
        super().__init__(
            samples,
            sample_rate,
            window_size=window_size,
            hop_size=hop_size,
            loop=loop,
        )
