"""
RetryExecutor - Bounded retry with capped exponential backoff.

Each attempt runs under its own timeout. A hung attempt is aborted and
counted as a failure. After the last attempt the last error is raised.

Delay before attempt n+1: min(base_delay * 2 ** (n - 1), max_delay)
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from loguru import logger

from resync.services.errors import (
    AuthenticationError,
    RequestTimeoutError,
    ServiceError,
)

T = TypeVar("T")


def retry_any_error(error: BaseException) -> bool:
    """Retry every failure. Matches the dashboard's observed behavior."""
    return True


def retry_server_errors_only(error: BaseException) -> bool:
    """Retry timeouts, transport failures and 5xx; give up on 4xx."""
    if isinstance(error, (RequestTimeoutError, asyncio.TimeoutError, httpx.TransportError)):
        return True
    if isinstance(error, ServiceError):
        return not error.is_client_error
    return True


@dataclass
class RetryOptions:
    """Configuration for the retry executor."""

    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 5.0  # seconds
    timeout: float | None = 10.0  # per attempt
    jitter: float = 0.0  # seconds subtracted at random, at most
    retry_on: Callable[[BaseException], bool] = field(default=retry_any_error)

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("delays must not be negative")

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryOptions":
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.base_delay,
            max_delay=settings.max_delay,
            timeout=settings.request_timeout,
        )


class RetryExecutor:
    """
    Runs a single logical call with retries.

    Usage:
        executor = RetryExecutor(RetryOptions(max_retries=3))
        payload = await executor.execute(lambda: client.fetch(query))
    """

    def __init__(
        self,
        options: RetryOptions | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        name: str = "request",
    ):
        self.options = options or RetryOptions()
        self._sleep = sleep
        self._name = name
        self._stats = RetryStats()

    def delay_for(self, attempt: int, options: RetryOptions | None = None) -> float:
        """Backoff delay after the given (1-based) failed attempt."""
        opts = options or self.options
        delay = min(opts.base_delay * 2 ** (attempt - 1), opts.max_delay)
        if opts.jitter:
            delay -= random.uniform(0, opts.jitter)
        return max(0.0, delay)

    async def execute(
        self,
        call: Callable[[], Awaitable[T]],
        options: RetryOptions | None = None,
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        """
        Attempt call up to max_retries times.

        Args:
            call: Zero-argument coroutine factory, invoked once per attempt
            options: Override the executor's default options
            on_retry: Called with (attempt, error) before each backoff sleep

        Returns:
            The first successful result

        Raises:
            The last error once attempts are exhausted, or at once for
            authentication failures and errors rejected by retry_on.
        """
        opts = options or self.options

        for attempt in range(1, opts.max_retries + 1):
            self._stats.attempts += 1
            try:
                if opts.timeout is not None:
                    try:
                        result = await asyncio.wait_for(call(), timeout=opts.timeout)
                    except asyncio.TimeoutError as e:
                        raise RequestTimeoutError(self._name, opts.timeout) from e
                else:
                    result = await call()
                self._stats.successes += 1
                return result

            except asyncio.CancelledError:
                raise

            except AuthenticationError:
                self._stats.failures += 1
                raise

            except Exception as e:
                self._stats.failures += 1

                if not opts.retry_on(e):
                    logger.warning(f"{self._name} failed with non-retryable error: {e}")
                    raise

                if attempt >= opts.max_retries:
                    logger.error(f"{self._name} failed after {opts.max_retries} attempts")
                    raise

                delay = self.delay_for(attempt, opts)
                self._stats.retries += 1
                logger.warning(
                    f"{self._name} failed (attempt {attempt}/{opts.max_retries}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                if on_retry is not None:
                    on_retry(attempt, e)
                await self._sleep(delay)

        raise ValueError(f"{self._name}: max_retries must be at least 1")

    def get_stats(self) -> "RetryStats":
        return self._stats


@dataclass
class RetryStats:
    """Retry statistics."""

    attempts: int = 0
    successes: int = 0
    failures: int = 0
    retries: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "failures": self.failures,
            "retries": self.retries,
        }
