"""Main entry point for the String Tuner CLI."""

import sys
import asyncio
import argparse
from typing import List, Optional

from ..logger import get_logger
from ..logging_config import setup_logging
from ..tuner_types import Snapshot, TuningStatus
from ..core.config import ConfigManager
from ..core.errors import CaptureError
from ..core.factory import ComponentFactory

logger = get_logger(__name__)

STATUS_LABELS = {
    TuningStatus.IDLE: "idle",
    TuningStatus.LISTENING: "awaiting signal...",
    TuningStatus.TUNE_OK: "in tune",
    TuningStatus.TUNE_LOW: "flat",
    TuningStatus.TUNE_HIGH: "sharp",
}


def format_snapshot(snapshot: Snapshot, use_flats: bool = False) -> str:
    """One-line rendering of a snapshot for the terminal."""
    label = STATUS_LABELS[snapshot.status]
    if snapshot.frequency is None:
        return f"{'...':>3}  {'-- Hz':>10}  {'':>7}  {label}"

    strings = " ".join(
        f"[{s.label}]" if s.in_tune else s.label
        for s in snapshot.string_indicators()
    )
    return (
        f"{snapshot.note_name(use_flats):>3}  "
        f"{snapshot.frequency:>7.1f} Hz  "
        f"{snapshot.cents:>+6.1f}c  {label:<8}  {strings}"
    )


class SnapshotPrinter:
    """Prints a snapshot whenever the displayed reading changes."""

    def __init__(self, use_flats: bool = False, out=None):
        self._use_flats = use_flats
        self._out = out or sys.stdout
        self._last_line: Optional[str] = None
        self.count = 0

    def __call__(self, snapshot: Snapshot) -> None:
        line = format_snapshot(snapshot, self._use_flats)
        if line != self._last_line:
            print(line, file=self._out, flush=True)
            self._last_line = line
            self.count += 1


async def run_listen(args: argparse.Namespace, factory: ComponentFactory) -> int:
    source = factory.create_microphone_source(
        device_id=args.device,
        sample_rate=args.sample_rate,
        window_size=args.window,
    )
    engine = factory.create_engine(source=source)
    engine.events.on_snapshot(SnapshotPrinter(use_flats=args.flats))

    print("Listening... pluck a string (Ctrl+C to stop)\n")
    try:
        await engine.run_for(args.duration)
    except CaptureError as e:
        print(f"\n{e.message}", file=sys.stderr)
        return 2
    return 0


async def run_analyze(args: argparse.Namespace, factory: ComponentFactory) -> int:
    try:
        source = factory.create_file_source(args.file, hop_size=args.hop)
    except CaptureError as e:
        print(e.message, file=sys.stderr)
        return 2

    # Replay as fast as the loop allows
    engine = factory.create_engine(source=source, tick_interval=0.0)
    printer = SnapshotPrinter(use_flats=args.flats)
    engine.events.on_snapshot(printer)

    try:
        await engine.start()
    except CaptureError as e:
        print(e.message, file=sys.stderr)
        return 2

    try:
        while not source.exhausted:
            await asyncio.sleep(0)
    finally:
        engine.stop()

    print(f"\n{printer.count} readings")
    return 0


def list_devices() -> int:
    """Print input devices and the sample rates they accept."""
    import sounddevice as sd

    print("Available audio input devices:")
    print("-" * 70)

    for i, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] < 1:
            continue
        print(f"Device {i}: {device['name']}")
        print(f"  Max input channels: {device['max_input_channels']}")
        print(f"  Default sample rate: {device['default_samplerate']} Hz")
        for rate in [8000, 16000, 22050, 44100, 48000, 96000]:
            try:
                sd.check_input_settings(device=i, samplerate=rate, channels=1)
                print(f"    {rate} Hz: Supported")
            except (ValueError, sd.PortAudioError) as e:
                print(f"    {rate} Hz: Not supported ({e})")
        print()

    print(f"Default input device: {sd.default.device[0]}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="String Tuner - real-time guitar tuner")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--config-dir", default=None, help="Configuration directory (default: ~/.config/string_tuner)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    listen_parser = subparsers.add_parser("listen", help="Tune from the microphone")
    listen_parser.add_argument("--device", type=int, default=None, help="Audio input device ID")
    listen_parser.add_argument("--sample-rate", type=int, default=None, help="Audio sample rate in Hz")
    listen_parser.add_argument("--window", type=int, default=None, help="Analysis window in samples")
    listen_parser.add_argument(
        "--duration", type=float, default=60.0, help="How long to listen in seconds"
    )
    listen_parser.add_argument("--flats", action="store_true", help="Use flat notes instead of sharps")

    analyze_parser = subparsers.add_parser("analyze", help="Run the tuner over a recording")
    analyze_parser.add_argument("file", help="Audio file to analyze")
    analyze_parser.add_argument(
        "--hop", type=int, default=None, help="Samples to advance per tick (default: one window)"
    )
    analyze_parser.add_argument("--flats", action="store_true", help="Use flat notes instead of sharps")

    subparsers.add_parser("devices", help="List audio input devices")
    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Command line arguments, or None to use sys.argv

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    parsed_args = parser.parse_args(args)

    setup_logging(level="DEBUG" if parsed_args.debug else "WARNING")

    if parsed_args.command == "devices":
        return list_devices()

    if parsed_args.command not in ("listen", "analyze"):
        parser.print_help()
        return 1

    factory = ComponentFactory(ConfigManager(parsed_args.config_dir))
    runner = run_listen if parsed_args.command == "listen" else run_analyze
    try:
        return asyncio.run(runner(parsed_args, factory))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        print("\nStopped by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
