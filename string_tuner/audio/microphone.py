"""Live microphone capture through PortAudio."""

from __future__ import annotations
import threading
from typing import Optional, List, ClassVar

import numpy as np
import sounddevice as sd

from ..logger import get_logger
from ..tuner_types import SampleWindow
from ..core.errors import DeviceUnavailable, PermissionDenied
from ..core.interfaces import ISampleSource

logger = get_logger(__name__)

# PortAudio error codes that mean the device itself is missing or unusable
_DEVICE_ERROR_CODES = frozenset(
    (
        -9996,  # paInvalidDevice
        -9985,  # paDeviceUnavailable
        -9998,  # paInvalidChannelCount
    )
)


class SoundDeviceSource(ISampleSource):
    """Live microphone capture using the sounddevice library."""

    # Audio configuration
    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    WINDOW_SIZE: ClassVar[int] = 2048  # Samples handed to the estimator
    BLOCKSIZE: ClassVar[int] = 512  # Frames per stream callback
    CHANNELS: ClassVar[int] = 1  # Mono audio
    COMMON_RATES: ClassVar[List[int]] = [44100, 48000, 22050, 16000, 8000]

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        window_size: Optional[int] = None,
        channels: Optional[int] = None,
        blocksize: Optional[int] = None,
    ) -> None:
        """Initialize the capture source. The device is not touched until open().

        Args:
            device_id: Audio input device ID, or None for the default input
            sample_rate: Preferred sample rate in Hz, or None for default (44100)
            window_size: Number of samples returned by latest_window()
            channels: Number of channels to capture; only the first is analysed
            blocksize: Frames per stream callback
        """
        self._device_id = device_id
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._window_size = window_size or self.WINDOW_SIZE
        self._channels = channels or self.CHANNELS
        self._blocksize = blocksize or self.BLOCKSIZE

        self._stream: Optional[sd.InputStream] = None
        self._lock = threading.Lock()
        self._buffer = np.zeros(self._window_size, dtype=np.float32)

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def window_size(self) -> int:
        return self._window_size

    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        """Open the input stream.

        Raises:
            DeviceUnavailable: If there is no usable input device
            PermissionDenied: If the system refuses access to the device
        """
        if self._stream is not None:
            logger.warning("Audio capture already open")
            return

        self._check_device()
        rate = self._select_sample_rate()

        with self._lock:
            self._buffer = np.zeros(self._window_size, dtype=np.float32)

        stream = None
        try:
            stream = sd.InputStream(
                device=self._device_id,
                samplerate=rate,
                blocksize=self._blocksize,
                channels=self._channels,
                dtype="float32",
                callback=self._audio_callback,
            )
            stream.start()
        except sd.PortAudioError as e:
            if stream is not None:
                stream.close()
            raise self._classify_error(e) from e

        self._sample_rate = rate
        self._stream = stream
        logger.info(
            f"Audio capture started: device={self._device_id}, rate={rate}Hz, "
            f"window={self._window_size}"
        )

    def close(self) -> None:
        """Stop and close the input stream."""
        stream, self._stream = self._stream, None
        if stream is None:
            return

        try:
            stream.stop()
        finally:
            stream.close()
        logger.info("Audio capture stopped")

    def latest_window(self) -> SampleWindow:
        """Return a copy of the most recent window_size samples."""
        with self._lock:
            return self._buffer.copy()

    def _check_device(self) -> None:
        try:
            device = sd.query_devices(self._device_id, kind="input")
        except (ValueError, sd.PortAudioError) as e:
            logger.error(f"No audio input device: {e}")
            raise DeviceUnavailable() from e

        if device["max_input_channels"] < 1:
            raise DeviceUnavailable(
                f"Device '{device['name']}' has no input channels. Select an "
                "input device and try again."
            )

    def _select_sample_rate(self) -> int:
        """Pick the first supported rate, preferring the requested one."""
        rates = [self._sample_rate] + [
            r for r in self.COMMON_RATES if r != self._sample_rate
        ]

        last_error: Optional[Exception] = None
        for rate in rates:
            try:
                sd.check_input_settings(
                    device=self._device_id,
                    samplerate=rate,
                    channels=self._channels,
                    dtype="float32",
                )
                if rate != self._sample_rate:
                    logger.warning(
                        f"Sample rate {self._sample_rate} Hz not supported, using {rate} Hz"
                    )
                return rate
            except (ValueError, sd.PortAudioError) as e:
                logger.warning(f"Sample rate {rate} Hz not supported: {e}")
                last_error = e

        raise DeviceUnavailable(
            "The audio input device does not support any usable sample rate."
        ) from last_error

    @staticmethod
    def _classify_error(error: sd.PortAudioError) -> Exception:
        code = error.args[1] if len(error.args) > 1 else None
        logger.error(f"Could not open audio input: {error}")
        if code in _DEVICE_ERROR_CODES:
            return DeviceUnavailable()
        return PermissionDenied()

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info,
        status: sd.CallbackFlags,
    ) -> None:
        """Append the new block to the rolling window.

        Runs on the audio thread.
        """
        if status:
            logger.warning(f"Audio callback status: {status}")

        data = indata[:, 0] if indata.ndim > 1 else indata
        size = self._window_size
        with self._lock:
            if len(data) >= size:
                self._buffer = np.array(data[-size:], dtype=np.float32)
            else:
                self._buffer = np.concatenate((self._buffer[len(data):], data)).astype(
                    np.float32, copy=False
                )
