"""
AbortRegistry - Cancels superseded in-flight requests.

When a new request is issued for a key, the previous one registered under
that key is cancelled before the new call starts, so its eventual response
cannot race with the newer one. The request_id carried by each
PendingRequest lets the state store discard anything that still gets
through after cancellation.
"""

import asyncio
import itertools
from dataclasses import dataclass
from typing import Any, Coroutine, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class PendingRequest(Generic[T]):
    """One in-flight request."""

    request_id: int
    key: str
    task: asyncio.Task[T]

    @property
    def cancelled(self) -> bool:
        return self.task.cancelled()

    def cancel(self) -> bool:
        return self.task.cancel()

    def __await__(self):
        return self.task.__await__()


class AbortRegistry:
    """
    Tracks the latest in-flight request per key.

    Usage:
        registry = AbortRegistry()

        pending = registry.issue("news", client.fetch(query))
        result = await pending
        if registry.is_current("news", pending.request_id):
            ...
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, PendingRequest[Any]] = {}
        self._ids = itertools.count(1)
        self._last_issued: dict[str, int] = {}
        self._debug = debug
        self._stats = AbortStats()

    def issue(self, key: str, coro: Coroutine[Any, Any, T]) -> PendingRequest[T]:
        """
        Cancel the previous request for key and start a new one.

        Must be called from inside a running event loop.
        """
        previous = self._in_flight.pop(key, None)
        if previous is not None and not previous.task.done():
            previous.task.cancel()
            self._stats.cancelled += 1
            self._log(f"CANCEL: superseded request {previous.request_id} for {key}")

        request_id = next(self._ids)
        task = asyncio.ensure_future(coro)
        pending: PendingRequest[T] = PendingRequest(
            request_id=request_id, key=key, task=task
        )
        self._in_flight[key] = pending
        self._last_issued[key] = request_id
        self._stats.issued += 1
        task.add_done_callback(lambda _t: self._cleanup(pending))
        self._log(f"ISSUE: request {request_id} for {key}")
        return pending

    def _cleanup(self, pending: PendingRequest[Any]) -> None:
        current = self._in_flight.get(pending.key)
        if current is pending:
            del self._in_flight[pending.key]
            self._log(f"DONE: request {pending.request_id} for {pending.key}")

    def is_current(self, key: str, request_id: int) -> bool:
        """True if request_id is the most recently issued for key."""
        return self._last_issued.get(key) == request_id

    def cancel(self, key: str) -> bool:
        """Cancel the in-flight request for key."""
        pending = self._in_flight.pop(key, None)
        if pending is None:
            return False
        pending.task.cancel()
        self._stats.cancelled += 1
        self._log(f"CANCEL: request {pending.request_id} for {key}")
        return True

    def cancel_all(self) -> int:
        """Cancel all in-flight requests."""
        count = 0
        for pending in self._in_flight.values():
            if not pending.task.done():
                pending.task.cancel()
                count += 1
        self._in_flight.clear()
        self._stats.cancelled += count
        if count:
            self._log(f"CANCEL_ALL: {count} requests cancelled")
        return count

    def get_in_flight_count(self) -> int:
        """Get number of in-flight requests."""
        return len(self._in_flight)

    def get_in_flight_keys(self) -> list[str]:
        """Get keys of all in-flight requests."""
        return list(self._in_flight.keys())

    def get_stats(self) -> "AbortStats":
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[AbortRegistry] {message}")


class AbortStats:
    """Statistics for issued and cancelled requests."""

    def __init__(self):
        self.issued: int = 0
        self.cancelled: int = 0
        self.in_flight: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "issued": self.issued,
            "cancelled": self.cancelled,
            "in_flight": self.in_flight,
        }
