"""Cancellable repeating callbacks on an asyncio event loop."""

import asyncio
from typing import Callable, Optional


class RepeatingTask:
    """Runs a callback every ``interval`` seconds on the event loop.

    The next run is scheduled only after the current one returns, so runs
    never overlap. ``cancel()`` drops the pending run synchronously.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval: float,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if interval < 0:
            raise ValueError(f"Invalid interval: {interval}")
        self._callback = callback
        self._interval = interval
        self._loop = loop
        self._handle: Optional[asyncio.Handle] = None
        self._cancelled = False

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._cancelled

    def start(self) -> None:
        """Schedule the first run for the next loop iteration."""
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._cancelled = False
        self._handle = self._loop.call_soon(self._run)

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _run(self) -> None:
        self._handle = None
        if self._cancelled:
            return
        try:
            self._callback()
        finally:
            # The callback may have cancelled us
            if not self._cancelled:
                self._handle = self._loop.call_later(self._interval, self._run)
