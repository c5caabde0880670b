import asyncio
import threading
import unittest

import numpy as np

from string_tuner.audio.pitch_estimator import AutocorrelationPitchEstimator
from string_tuner.core.errors import DeviceUnavailable, PermissionDenied
from string_tuner.engine.tuner_engine import TunerEngine
from string_tuner.mock_sample_source import MockSampleSource, sine_wave
from string_tuner.tuner_types import Snapshot, TuningStatus

SAMPLE_RATE = 16000
SILENCE = np.zeros(2048, dtype=np.float32)
A = 9


def tone(frequency):
    return sine_wave(frequency, SAMPLE_RATE)


async def spin(times=20):
    """Let the event loop run scheduled ticks."""
    for _ in range(times):
        await asyncio.sleep(0)


class TestTunerEngine(unittest.TestCase):
    def setUp(self):
        self.source = MockSampleSource(sample_rate=SAMPLE_RATE)
        self.engine = TunerEngine(
            self.source, AutocorrelationPitchEstimator(), tick_interval=0.0
        )
        self.published = []
        self.engine.events.on_snapshot(self.published.append)

    def run_async(self, coro):
        return asyncio.run(coro)

    def test_starts_idle(self):
        self.assertEqual(self.engine.status, TuningStatus.IDLE)
        self.assertEqual(self.engine.snapshot, Snapshot.empty())
        self.assertFalse(self.engine.is_running())

    def test_start_listens_before_first_tick(self):
        async def scenario():
            await self.engine.start()
            snapshot = self.engine.snapshot
            self.engine.stop()
            return snapshot

        snapshot = self.run_async(scenario())
        self.assertEqual(snapshot.status, TuningStatus.LISTENING)
        self.assertIsNone(snapshot.frequency)
        self.assertEqual(self.published[0].status, TuningStatus.LISTENING)

    def test_in_tune_a440(self):
        self.source.feed(tone(440.0))

        async def scenario():
            await self.engine.start()
            snapshot = self.engine.tick()
            self.engine.stop()
            return snapshot

        snapshot = self.run_async(scenario())
        self.assertEqual(snapshot.status, TuningStatus.TUNE_OK)
        self.assertEqual(snapshot.note_index, A)
        self.assertEqual(snapshot.note_name(), "A")
        self.assertAlmostEqual(snapshot.frequency, 440.0, delta=4.4)
        self.assertLess(abs(snapshot.cents), 4.0)
        self.assertGreater(snapshot.rms, 0.3)

    def test_sharp_and_flat(self):
        self.source.feed(tone(450.0), tone(430.0))

        async def scenario():
            await self.engine.start()
            sharp = self.engine.tick()
            flat = self.engine.tick()
            self.engine.stop()
            return sharp, flat

        sharp, flat = self.run_async(scenario())
        self.assertEqual(sharp.status, TuningStatus.TUNE_HIGH)
        self.assertEqual(sharp.note_index, A)
        self.assertGreater(sharp.cents, 0)
        self.assertEqual(flat.status, TuningStatus.TUNE_LOW)
        self.assertEqual(flat.note_index, A)
        self.assertLess(flat.cents, 0)

    def test_silence_never_tunes(self):
        quiet = sine_wave(440.0, SAMPLE_RATE, amplitude=0.004)
        self.source.feed(SILENCE, quiet, SILENCE)

        async def scenario():
            await self.engine.start()
            snapshots = [self.engine.tick() for _ in range(3)]
            self.engine.stop()
            return snapshots

        for snapshot in self.run_async(scenario()):
            self.assertEqual(snapshot.status, TuningStatus.LISTENING)
            self.assertIsNone(snapshot.frequency)
            self.assertIsNone(snapshot.note_index)
            self.assertEqual(snapshot.cents, 0.0)

    def test_signal_loss_returns_to_listening_next_tick(self):
        self.source.feed(tone(440.0), SILENCE)

        async def scenario():
            await self.engine.start()
            first = self.engine.tick()
            second = self.engine.tick()
            self.engine.stop()
            return first, second

        first, second = self.run_async(scenario())
        self.assertEqual(first.status, TuningStatus.TUNE_OK)
        self.assertEqual(second.status, TuningStatus.LISTENING)
        self.assertIsNone(second.frequency)

    def test_tick_while_idle_does_not_read(self):
        snapshot = self.engine.tick()
        self.assertEqual(snapshot, Snapshot.empty())
        self.assertEqual(self.source.reads, 0)

    def test_scheduled_ticks(self):
        self.source.feed(tone(440.0))

        async def scenario():
            await self.engine.start()
            await spin()
            status = self.engine.status
            self.engine.stop()
            return status

        self.assertEqual(self.run_async(scenario()), TuningStatus.TUNE_OK)
        self.assertGreater(self.source.reads, 1)

    def test_no_ticks_after_stop(self):
        self.source.feed(tone(440.0))

        async def scenario():
            await self.engine.start()
            await spin()
            self.engine.stop()
            reads = self.source.reads
            await spin()
            return reads

        reads = self.run_async(scenario())
        self.assertEqual(self.source.reads, reads)
        self.assertEqual(self.engine.snapshot, Snapshot.empty())

    def test_stop_is_idempotent(self):
        async def scenario():
            await self.engine.start()
            self.engine.tick()
            self.engine.stop()
            first = self.engine.status
            self.engine.stop()
            return first, self.engine.status

        self.assertEqual(
            self.run_async(scenario()), (TuningStatus.IDLE, TuningStatus.IDLE)
        )
        self.assertEqual(self.engine.snapshot, Snapshot.empty())
        self.assertFalse(self.source.is_open())

    def test_stop_before_start(self):
        self.engine.stop()
        self.assertEqual(self.engine.status, TuningStatus.IDLE)
        self.assertEqual(self.published, [])

    def test_restart_has_no_stale_reading(self):
        self.source.feed(tone(440.0))

        async def scenario():
            await self.engine.start()
            self.engine.tick()
            self.engine.stop()
            await self.engine.start()
            after_start = self.engine.snapshot
            self.source.feed(SILENCE)
            after_tick = self.engine.tick()
            self.engine.stop()
            return after_start, after_tick

        after_start, after_tick = self.run_async(scenario())
        self.assertEqual(after_start, Snapshot.empty(TuningStatus.LISTENING))
        self.assertEqual(after_tick.status, TuningStatus.LISTENING)
        self.assertIsNone(after_tick.frequency)
        self.assertEqual(self.source.open_count, 2)

    def test_restart_detects_again(self):
        self.source.feed(tone(440.0))

        async def scenario():
            await self.engine.start()
            self.engine.stop()
            await self.engine.start()
            await spin()
            status = self.engine.status
            self.engine.stop()
            return status

        self.assertEqual(self.run_async(scenario()), TuningStatus.TUNE_OK)

    def test_start_twice_opens_once(self):
        async def scenario():
            await self.engine.start()
            await self.engine.start()
            self.engine.stop()

        self.run_async(scenario())
        self.assertEqual(self.source.open_count, 1)

    def test_permission_denied(self):
        self.source.open_error = PermissionDenied()
        errors = []
        self.engine.events.on_capture_error(errors.append)

        with self.assertRaises(PermissionDenied) as ctx:
            self.run_async(self.engine.start())

        self.assertIn("Microphone access was denied", ctx.exception.message)
        self.assertEqual(self.engine.status, TuningStatus.IDLE)
        self.assertFalse(self.engine.is_running())
        self.assertEqual(len(errors), 1)

    def test_device_unavailable(self):
        self.source.open_error = DeviceUnavailable()

        with self.assertRaises(DeviceUnavailable):
            self.run_async(self.engine.start())
        self.assertEqual(self.engine.status, TuningStatus.IDLE)

        # The user can try again once a device is present
        self.source.open_error = None

        async def scenario():
            await self.engine.start()
            status = self.engine.status
            self.engine.stop()
            return status

        self.assertEqual(self.run_async(scenario()), TuningStatus.LISTENING)

    def test_stop_while_starting(self):
        gate = threading.Event()
        self.source.open_gate = gate

        async def scenario():
            task = asyncio.ensure_future(self.engine.start())
            await asyncio.sleep(0)
            self.engine.stop()
            gate.set()
            await task
            await spin()

        self.run_async(scenario())
        self.assertEqual(self.engine.status, TuningStatus.IDLE)
        self.assertFalse(self.engine.is_running())
        self.assertFalse(self.source.is_open())
        self.assertEqual(self.source.reads, 0)

    def test_open_failure_after_stop_is_silent(self):
        gate = threading.Event()
        self.source.open_gate = gate
        self.source.open_error = PermissionDenied()
        errors = []
        self.engine.events.on_capture_error(errors.append)

        async def scenario():
            task = asyncio.ensure_future(self.engine.start())
            await asyncio.sleep(0)
            self.engine.stop()
            gate.set()
            await task

        self.run_async(scenario())
        self.assertEqual(errors, [])
        self.assertEqual(self.engine.status, TuningStatus.IDLE)
        self.assertFalse(self.engine.is_running())

        # A later start reports the failure as usual
        self.source.open_gate = None
        with self.assertRaises(PermissionDenied):
            self.run_async(self.engine.start())
        self.assertEqual(len(errors), 1)

    def test_every_tick_publishes(self):
        self.source.feed(tone(440.0), SILENCE)

        async def scenario():
            await self.engine.start()
            self.engine.tick()
            self.engine.tick()
            self.engine.stop()

        self.run_async(scenario())
        statuses = [s.status for s in self.published]
        self.assertEqual(
            statuses,
            [
                TuningStatus.LISTENING,
                TuningStatus.TUNE_OK,
                TuningStatus.LISTENING,
                TuningStatus.IDLE,
            ],
        )

    def test_listener_errors_do_not_stop_ticks(self):
        def broken(snapshot):
            raise RuntimeError("listener failure")

        self.engine.events.on_snapshot(broken)
        self.source.feed(tone(440.0))

        async def scenario():
            await self.engine.start()
            await spin()
            status = self.engine.status
            self.engine.stop()
            return status

        self.assertEqual(self.run_async(scenario()), TuningStatus.TUNE_OK)

    def test_run_for(self):
        engine = TunerEngine(
            self.source, AutocorrelationPitchEstimator(), tick_interval=0.001
        )
        self.source.feed(tone(440.0))

        self.run_async(engine.run_for(0.05))

        self.assertEqual(engine.status, TuningStatus.IDLE)
        self.assertFalse(self.source.is_open())
        self.assertGreater(self.source.reads, 0)


if __name__ == "__main__":
    unittest.main()
