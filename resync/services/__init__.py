"""
Service layer infrastructure - resilience patterns for admin API calls.

Provides:
- TTLCache: Reference data cache with expiration
- RetryExecutor: Bounded retry with capped exponential backoff
- AbortRegistry: Cancels superseded in-flight requests
- DebounceGate: Coalesces bursts of triggers
- ResourceClient: HTTP client for the paginated admin API
"""

from resync.services.errors import (
    ServiceError,
    AuthenticationError,
    ServerReportedError,
    RequestTimeoutError,
    GateClosedError,
)
from resync.services.cache import TTLCache, CacheEntry, CacheStats
from resync.services.retry import (
    RetryExecutor,
    RetryOptions,
    retry_any_error,
    retry_server_errors_only,
)
from resync.services.abort import AbortRegistry, PendingRequest
from resync.services.debounce import DebounceGate
from resync.services.session import (
    Session,
    SessionProvider,
    StaticSessionProvider,
    CallableSessionProvider,
)
from resync.services.client import ResourceClient

__all__ = [
    # Errors
    "ServiceError",
    "AuthenticationError",
    "ServerReportedError",
    "RequestTimeoutError",
    "GateClosedError",
    # Cache
    "TTLCache",
    "CacheEntry",
    "CacheStats",
    # Retry
    "RetryExecutor",
    "RetryOptions",
    "retry_any_error",
    "retry_server_errors_only",
    # Abort
    "AbortRegistry",
    "PendingRequest",
    # Debounce
    "DebounceGate",
    # Session
    "Session",
    "SessionProvider",
    "StaticSessionProvider",
    "CallableSessionProvider",
    # Client
    "ResourceClient",
]
