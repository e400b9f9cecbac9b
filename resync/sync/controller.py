"""
SyncController - Keeps one resource's client-side state in step with the API.

Wires together:
- ResourceStateStore for the state itself
- DebounceGate for free-text filter edits
- ConcurrencyGuard so plain fetches never overlap
- AbortRegistry to cancel superseded requests
- RetryExecutor for transient failures

Lifecycle of a fetch:
    Idle -> Fetching -> Applying -> Idle
    Fetching -> Cancelled (outcome discarded silently)

Errors never escape the public operations; they land in state.error.
"""

import asyncio
from typing import Any, Callable, Iterable

from loguru import logger

from resync.models import Pagination, ResourceQuery, ResourceState
from resync.services.abort import AbortRegistry
from resync.services.client import ResourceClient
from resync.services.debounce import DebounceGate
from resync.services.errors import ServiceError
from resync.services.retry import RetryExecutor, RetryOptions
from resync.settings import global_settings
from resync.sync.diagnostics import SyncDiagnostics
from resync.sync.guard import ConcurrencyGuard
from resync.sync.store import ResourceStateStore

DEFAULT_DEBOUNCED_FILTERS = frozenset({"search"})


class SyncController:
    """
    Controller for one paginated, filterable endpoint.

    Usage:
        async with SyncController("news", client) as news:
            await news.reload()
            news.update_filters({"search": "budget"})  # debounced
            news.update_filters({"category": "events"})  # immediate
            news.update_pagination({"current_page": 2})  # immediate
            await news.wait_idle()
            print(news.data, news.pagination)
    """

    def __init__(
        self,
        endpoint: str,
        client: ResourceClient,
        initial_filters: dict[str, Any] | None = None,
        initial_pagination: dict[str, int] | None = None,
        debounce: float | None = None,
        debounced_filters: Iterable[str] = DEFAULT_DEBOUNCED_FILTERS,
        order_by: str = "created_at",
        order_direction: str = "desc",
        retry_options: RetryOptions | None = None,
        executor: RetryExecutor | None = None,
        registry: AbortRegistry | None = None,
        diagnostics: SyncDiagnostics | None = None,
        on_error: Callable[[str], None] | None = None,
        debug: bool = False,
    ):
        pagination = initial_pagination or {}
        self.endpoint = endpoint
        self._client = client
        self._order_by = order_by
        self._order_direction = order_direction
        self._debounced_filters = frozenset(debounced_filters)
        self._on_error = on_error
        self._debug = debug

        self._store = ResourceStateStore(
            initial_filters=initial_filters,
            initial_page=pagination.get("current_page", 1),
            limit=pagination.get("limit", global_settings.page_limit),
        )
        if debounce is None:
            debounce = global_settings.debounce_ms / 1000
        self._gate = DebounceGate(delay=debounce, name=endpoint, debug=debug)
        self._guard = ConcurrencyGuard()
        self._owns_registry = registry is None
        self._registry = registry or AbortRegistry(debug=debug)
        self._executor = executor or RetryExecutor(
            retry_options or RetryOptions.from_settings(global_settings),
            name=endpoint,
        )
        self.diagnostics = diagnostics or SyncDiagnostics()

        self._background: set[asyncio.Task[None]] = set()
        self._closed = False

    # Consumer-facing view

    @property
    def state(self) -> ResourceState:
        return self._store.snapshot()

    @property
    def data(self) -> list[Any]:
        return list(self._store.state.data)

    @property
    def stats(self) -> Any:
        return self._store.state.stats

    @property
    def pagination(self) -> Pagination:
        return self._store.state.pagination

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self._store.state.filters)

    @property
    def loading(self) -> bool:
        return self._store.state.loading

    @property
    def error(self) -> str | None:
        return self._store.state.error

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def store(self) -> ResourceStateStore:
        return self._store

    @property
    def fetching(self) -> bool:
        return self._guard.active

    def as_dict(self) -> dict[str, Any]:
        return self._store.state.to_dict()

    def subscribe(self, listener: Callable[[ResourceState], None]) -> Callable[[], None]:
        return self._store.subscribe(listener)

    # Operations

    def build_query(self) -> ResourceQuery:
        """Query for the current state."""
        state = self._store.state
        return ResourceQuery(
            endpoint=self.endpoint,
            page=state.pagination.current_page,
            limit=state.pagination.limit,
            order_by=self._order_by,
            order_direction=self._order_direction,
            filters=dict(state.filters),
        )

    async def fetch(self, force_loading: bool = False, supersede: bool = False) -> None:
        """
        Load the current page.

        Dropped when another fetch of this controller is running, unless
        supersede is set: then the running request is cancelled and this
        one takes its place. Filter and page changes fetch that way.
        """
        if self._closed:
            return

        if supersede and self._guard.active:
            self._log("SUPERSEDE: replacing in-flight fetch")

        with self._guard.hold(take_over=supersede) as acquired:
            if not acquired:
                self.diagnostics.fetches_dropped += 1
                self._log("DROP: fetch already in flight")
                return

            query = self.build_query()
            self.diagnostics.fetches_started += 1
            pending = self._registry.issue(
                self.endpoint,
                self._executor.execute(
                    lambda: self._client.fetch(query),
                    on_retry=self._count_retry,
                ),
            )
            self._store.begin(pending.request_id, force_loading=force_loading)
            self._log(f"FETCH: request {pending.request_id} page={query.page}")

            try:
                await asyncio.wait({pending.task})
            except asyncio.CancelledError:
                pending.cancel()
                raise

            if self._closed:
                return

            if pending.task.cancelled():
                self.diagnostics.cancellations += 1
                self._store.finish(pending.request_id)
                self._log(f"CANCELLED: request {pending.request_id}")
                return

            error = pending.task.exception()
            if error is not None:
                self._record_error(pending.request_id, error)
                return

            try:
                applied = self._store.apply_result(pending.request_id, pending.task.result())
            except ValueError as e:
                self._record_error(pending.request_id, e)
                return

            if applied:
                self.diagnostics.responses_applied += 1
            else:
                self.diagnostics.responses_discarded += 1
                self._log(f"DISCARD: stale response {pending.request_id}")

    async def reload(self) -> None:
        await self.fetch(force_loading=True)

    def update_filters(self, partial: dict[str, Any]) -> None:
        """
        Merge filters, go back to page 1 and trigger a fetch.

        Free-text filters are debounced; every other filter fetches at once.
        """
        if self._closed:
            return
        self._store.update_filters(partial)

        if self._debounced_filters.intersection(partial):
            self._gate.schedule(self._refetch)
        else:
            self._spawn_fetch()

    def update_pagination(self, partial: dict[str, int]) -> None:
        """Merge current_page/limit and fetch at once, replacing any fetch in flight."""
        if self._closed:
            return
        self._store.update_pagination(partial)
        self._spawn_fetch()

    async def wait_idle(self) -> None:
        """Wait for the debounce timer and background fetches to settle."""
        while True:
            await self._gate.wait()
            live = [task for task in self._background if not task.done()]
            if not live:
                if not self._gate.pending:
                    return
                continue
            await asyncio.wait(live)

    async def close(self) -> None:
        """Cancel the debounce timer and every pending request."""
        if self._closed:
            return
        self._closed = True
        self._gate.close()
        if self._owns_registry:
            self._registry.cancel_all()
        else:
            self._registry.cancel(self.endpoint)

        tasks = [task for task in self._background if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)
        logger.debug(f"SyncController '{self.endpoint}' closed")

    async def __aenter__(self) -> "SyncController":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Internals

    async def _refetch(self) -> None:
        await self.fetch(supersede=True)

    def _spawn_fetch(self) -> None:
        task = asyncio.ensure_future(self._refetch())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _count_retry(self, attempt: int, error: BaseException) -> None:
        self.diagnostics.retries += 1

    def _record_error(self, request_id: int, error: BaseException) -> None:
        if isinstance(error, ServiceError) and str(error):
            message = str(error)
        else:
            message = f"Failed to load {self.endpoint}: {error}"

        if not self._store.apply_error(message, request_id):
            self.diagnostics.responses_discarded += 1
            return

        self.diagnostics.errors += 1
        logger.error(f"Fetching '{self.endpoint}' failed: {message}")
        if self._on_error is not None:
            try:
                self._on_error(message)
            except Exception as e:
                logger.error(f"Error callback for '{self.endpoint}' failed: {e}")

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[SyncController] {self.endpoint}: {message}")
