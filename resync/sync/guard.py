"""
ConcurrencyGuard - At most one fetch per controller.

A plain fetch that arrives while another one is running is dropped, not
queued. A fetch triggered by a state change takes over instead: it holds
the guard alongside the fetch it supersedes, which is cancelled and
releases its hold on the way out.
"""

from contextlib import contextmanager
from typing import Iterator


class ConcurrencyGuard:
    def __init__(self) -> None:
        self._holders = 0

    @property
    def active(self) -> bool:
        return self._holders > 0

    def try_acquire(self) -> bool:
        if self._holders:
            return False
        self._holders = 1
        return True

    def take_over(self) -> None:
        """Hold the guard even if another fetch already does."""
        self._holders += 1

    def release(self) -> None:
        if self._holders:
            self._holders -= 1

    @contextmanager
    def hold(self, take_over: bool = False) -> Iterator[bool]:
        """
        Yield True when the guard was acquired, False when it was busy.

        With take_over the guard is always acquired. Only an acquiring
        block releases it.
        """
        if take_over:
            self.take_over()
            acquired = True
        else:
            acquired = self.try_acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()
