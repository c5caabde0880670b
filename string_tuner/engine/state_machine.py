"""Status derivation for the tuner indicator."""

from typing import Optional

from ..logger import get_logger
from ..tuner_types import NoteReading, PitchEstimate, TuningStatus

logger = get_logger(__name__)


class TuningStateMachine:
    """Derives the tuner status from the latest estimate and reading.

    Only whether capture is active carries over between ticks. The tuning
    sub-state is recomputed from scratch on every update.
    """

    DEFAULT_IN_TUNE_CENTS = 4.0

    def __init__(self, in_tune_cents: float = DEFAULT_IN_TUNE_CENTS) -> None:
        self.in_tune_cents = in_tune_cents
        self._active = False
        self._status = TuningStatus.IDLE

    @property
    def status(self) -> TuningStatus:
        return self._status

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> TuningStatus:
        """IDLE -> LISTENING."""
        if not self._active:
            logger.debug("Tuner state: IDLE -> LISTENING")
        self._active = True
        self._status = TuningStatus.LISTENING
        return self._status

    def stop(self) -> TuningStatus:
        """Any state -> IDLE."""
        if self._active:
            logger.debug(f"Tuner state: {self._status.name} -> IDLE")
        self._active = False
        self._status = TuningStatus.IDLE
        return self._status

    def classify(self, cents: float) -> TuningStatus:
        if abs(cents) < self.in_tune_cents:
            return TuningStatus.TUNE_OK
        if cents < 0:
            return TuningStatus.TUNE_LOW
        return TuningStatus.TUNE_HIGH

    def update(
        self, estimate: PitchEstimate, reading: Optional[NoteReading]
    ) -> TuningStatus:
        """Recompute the status for one tick. Has no effect while idle."""
        if not self._active:
            return self._status

        if not estimate.has_pitch or reading is None:
            self._status = TuningStatus.LISTENING
        else:
            self._status = self.classify(reading.cents)
        return self._status
