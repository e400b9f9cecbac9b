"""
ResourceStateStore - The only writer of a controller's ResourceState.

Responses are applied only when they belong to the most recently issued
request; anything older is dropped. This is what keeps out-of-order
responses from overwriting newer data.
"""

from typing import Any, Callable

from loguru import logger

from resync.models import Pagination, ResourceResult, ResourceState

Listener = Callable[[ResourceState], None]

PAGINATION_INPUT_FIELDS = ("current_page", "limit")
_CAMEL_TO_SNAKE = {"currentPage": "current_page"}


class ResourceStateStore:
    def __init__(
        self,
        initial_filters: dict[str, Any] | None = None,
        initial_page: int = 1,
        limit: int = 20,
    ):
        self._state = ResourceState(
            pagination=Pagination(current_page=initial_page, limit=limit),
            filters=dict(initial_filters or {}),
        )
        self._latest_request_id: int | None = None
        self._listeners: list[Listener] = []

    @property
    def state(self) -> ResourceState:
        """Live state. Read it, do not write it."""
        return self._state

    @property
    def latest_request_id(self) -> int | None:
        return self._latest_request_id

    def snapshot(self) -> ResourceState:
        return self._state.copy()

    def is_latest(self, request_id: int) -> bool:
        return request_id == self._latest_request_id

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with a snapshot after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"State listener {listener!r} failed: {e}")

    def update_filters(self, partial: dict[str, Any]) -> None:
        """Merge filters and go back to the first page."""
        self._state.filters = {**self._state.filters, **partial}
        self._state.pagination = self._state.pagination.model_copy(
            update={"current_page": 1}
        )
        self._notify()

    def update_pagination(self, partial: dict[str, Any]) -> None:
        """Merge current_page and/or limit. Filters are left alone."""
        update = {}
        for key, value in partial.items():
            key = _CAMEL_TO_SNAKE.get(key, key)
            if key not in PAGINATION_INPUT_FIELDS:
                raise ValueError(f"Unknown pagination field: {key}")
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{key} must be a positive integer")
            update[key] = value
        self._state.pagination = self._state.pagination.model_copy(update=update)
        self._notify()

    def begin(self, request_id: int, force_loading: bool = False) -> None:
        """Record request_id as the newest request and enter the loading state."""
        self._latest_request_id = request_id
        self._state.error = None
        # no spinner on refreshes of views that already show data
        if not self._state.loaded or force_loading:
            self._state.loading = True
        self._notify()

    def apply_result(self, request_id: int, result: ResourceResult) -> bool:
        """Apply a response if it is still the latest. Raises ValueError, untouched, on unusable pagination."""
        if not self.is_latest(request_id):
            return False

        server = result.pagination
        pagination = Pagination(
            current_page=(server.current_page if server else None) or 1,
            total_pages=(server.total_pages if server else None) or 1,
            total_count=(server.total_count if server else None) or 0,
            limit=self._state.pagination.limit,
        )
        self._state.data = list(result.data)
        self._state.stats = result.stats
        self._state.pagination = pagination
        self._state.loading = False
        self._state.loaded = True
        self._notify()
        return True

    def apply_error(self, message: str, request_id: int | None = None) -> bool:
        """Record a failure. Data from the last success stays visible."""
        if request_id is not None and not self.is_latest(request_id):
            return False
        self._state.error = message
        self._state.loading = False
        self._notify()
        return True

    def finish(self, request_id: int) -> bool:
        """Clear loading for a request that ended without a result."""
        if not self.is_latest(request_id):
            return False
        if self._state.loading:
            self._state.loading = False
            self._notify()
        return True
