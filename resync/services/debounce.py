"""
DebounceGate - Coalesces bursts of triggers into one call after a quiet period.
"""

import asyncio
from typing import Any, Awaitable, Callable

from loguru import logger

from resync.services.errors import GateClosedError


class DebounceGate:
    """
    Single cancellable delayed task.

    Every schedule() call cancels the waiting timer and starts a new one, so
    only the last callback of a burst runs, delay seconds after the burst
    ends. A callback that has already started is never cancelled by a later
    schedule().

    Usage:
        gate = DebounceGate(delay=0.3)
        gate.schedule(controller.fetch)
        gate.schedule(controller.fetch)  # replaces the first
    """

    def __init__(self, delay: float = 0.3, name: str = "debounce", debug: bool = False):
        if delay < 0:
            raise ValueError("delay must not be negative")
        self.delay = delay
        self._name = name
        self._debug = debug
        self._timer: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False
        self.fired = 0
        self.superseded = 0

    @property
    def pending(self) -> bool:
        """True while a timer is waiting to fire."""
        return self._timer is not None and not self._timer.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule(self, callback: Callable[[], Awaitable[Any]]) -> asyncio.Task[None]:
        """Replace any waiting timer with one that runs callback after the delay."""
        if self._closed:
            raise GateClosedError(f"{self._name} gate is closed")

        if self.pending:
            self._timer.cancel()  # type: ignore[union-attr]
            self.superseded += 1
            self._log("RESCHEDULE")

        timer = asyncio.ensure_future(self._run(callback))
        self._timer = timer
        self._tasks.add(timer)
        timer.add_done_callback(self._tasks.discard)
        return timer

    async def _run(self, callback: Callable[[], Awaitable[Any]]) -> None:
        await asyncio.sleep(self.delay)
        if self._timer is asyncio.current_task():
            self._timer = None
        self.fired += 1
        self._log("FIRE")
        try:
            await callback()
        except Exception as e:
            logger.error(f"[DebounceGate] {self._name} callback failed: {e}")

    def cancel(self) -> bool:
        """Cancel the waiting timer, if any."""
        if self.pending:
            self._timer.cancel()  # type: ignore[union-attr]
            self._timer = None
            self._log("CANCEL")
            return True
        return False

    def close(self) -> None:
        """Cancel every timer, running callbacks included, and refuse further scheduling."""
        self._closed = True
        self._timer = None
        for task in list(self._tasks):
            task.cancel()

    async def wait(self) -> None:
        """Wait until no timer is waiting and no callback is running."""
        while True:
            live = [task for task in self._tasks if not task.done()]
            if not live:
                return
            await asyncio.wait(live)

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[DebounceGate] {self._name}: {message}")
