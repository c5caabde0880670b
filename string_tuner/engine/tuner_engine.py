"""Tuner engine that ties capture, estimation, note mapping and status together."""

from __future__ import annotations
import asyncio
from typing import Optional

from ..logger import get_logger
from ..note_utils import A4_FREQUENCY, map_frequency
from ..tuner_types import Snapshot, TuningStatus
from ..core.errors import CaptureError
from ..core.events import TunerEvents
from ..core.interfaces import IPitchEstimator, ISampleSource
from .scheduler import RepeatingTask
from .state_machine import TuningStateMachine

logger = get_logger(__name__)


class TunerEngine:
    """Polls a sample source once per tick and publishes a Snapshot.

    Each tick reads the latest window, estimates its pitch, maps it to a note
    and cents, derives the status and publishes a fresh Snapshot. Ticks run
    on the asyncio event loop and never overlap.

    The engine exclusively owns its sample source between start() and stop().
    """

    DEFAULT_TICK_INTERVAL = 1.0 / 60.0  # One tick per display refresh

    def __init__(
        self,
        source: ISampleSource,
        estimator: IPitchEstimator,
        state_machine: Optional[TuningStateMachine] = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        reference_frequency: float = A4_FREQUENCY,
        events: Optional[TunerEvents] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            source: Capture source to read windows from
            estimator: Pitch estimator run on every window
            state_machine: Status derivation, or None for the default thresholds
            tick_interval: Seconds between ticks
            reference_frequency: Frequency of A4 in Hz
            events: Event hub for snapshot subscribers, or None to create one
        """
        self._source = source
        self._estimator = estimator
        self._state = state_machine or TuningStateMachine()
        self._tick_interval = tick_interval
        self._reference_frequency = reference_frequency
        self._events = events or TunerEvents()

        self._snapshot = Snapshot.empty()
        self._task: Optional[RepeatingTask] = None
        # Bumped on every start/stop; ticks from an older session are dropped
        self._generation = 0
        self._starting = False

    @property
    def snapshot(self) -> Snapshot:
        """The most recently published snapshot."""
        return self._snapshot

    @property
    def status(self) -> TuningStatus:
        return self._snapshot.status

    @property
    def events(self) -> TunerEvents:
        return self._events

    @property
    def source(self) -> ISampleSource:
        return self._source

    def is_running(self) -> bool:
        return self._state.active

    async def start(self) -> None:
        """Open the capture device and begin ticking.

        Raises:
            PermissionDenied: If microphone access is refused
            DeviceUnavailable: If there is no capture device
        """
        if self._state.active or self._starting:
            logger.warning("Tuner already running")
            return

        self._generation += 1
        generation = self._generation
        self._starting = True
        loop = asyncio.get_running_loop()

        try:
            # Opening may block on a permission prompt
            await loop.run_in_executor(None, self._source.open)
        except CaptureError as e:
            if generation != self._generation:
                logger.info(f"Tuner stopped while starting, ignoring: {e.message}")
                return
            logger.error(f"Could not start tuner: {e.message}")
            self._state.stop()
            self._publish(Snapshot.empty())
            self._events.emit_capture_error(e)
            raise
        finally:
            self._starting = False

        if generation != self._generation:
            logger.info("Tuner stopped while starting, releasing capture device")
            self._source.close()
            return

        self._state.start()
        self._publish(Snapshot.empty(TuningStatus.LISTENING))

        self._task = RepeatingTask(
            lambda: self._run_tick(generation), self._tick_interval, loop
        )
        self._task.start()
        logger.info(
            f"Tuner started: sample_rate={self._source.sample_rate}Hz, "
            f"tick_interval={self._tick_interval:.4f}s"
        )

    def stop(self) -> None:
        """Stop ticking, release the capture device and reset to IDLE.

        Safe to call at any time, including when already stopped.
        """
        self._generation += 1
        if self._task is not None:
            self._task.cancel()
            self._task = None

        was_active = self._state.active
        self._source.close()
        self._state.stop()

        if was_active or self._snapshot != Snapshot.empty():
            self._publish(Snapshot.empty())
        if was_active:
            logger.info("Tuner stopped")

    def tick(self) -> Snapshot:
        """Run one capture-read, estimate, map, transition and publish cycle."""
        if not self._state.active:
            return self._snapshot

        window = self._source.latest_window()
        estimate = self._estimator.estimate(window, self._source.sample_rate)

        reading = None
        if estimate.has_pitch:
            reading = map_frequency(estimate.frequency, self._reference_frequency)

        status = self._state.update(estimate, reading)

        if reading is None:
            snapshot = Snapshot.empty(status, rms=estimate.rms)
        else:
            snapshot = Snapshot(
                status=status,
                frequency=estimate.frequency,
                note_index=reading.note_index,
                cents=reading.cents,
                rms=estimate.rms,
            )
            logger.debug(
                f"{snapshot.note_name()} {estimate.frequency:.1f}Hz "
                f"{reading.cents:+.1f}c rms={estimate.rms:.4f} {status.name}"
            )

        self._publish(snapshot)
        return snapshot

    async def run_for(self, duration: float) -> None:
        """Start, listen for ``duration`` seconds, then stop."""
        await self.start()
        try:
            await asyncio.sleep(duration)
        finally:
            self.stop()

    def _run_tick(self, generation: int) -> None:
        if generation != self._generation:
            return
        self.tick()

    def _publish(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        self._events.emit_snapshot(snapshot)
