"""
ReferenceDataLoader - Cached lookup collections (users, work locations, positions).

Lookups change rarely, so they are fetched once and served from a TTLCache
shared by the whole data provider until they expire or a caller forces a
refresh.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger

from resync.services.cache import TTLCache
from resync.services.client import ResourceClient
from resync.services.retry import RetryExecutor, RetryOptions
from resync.settings import global_settings


def default_extract(body: dict[str, Any]) -> list[Any]:
    """Pull the list out of {success, data} or accept a bare list."""
    if isinstance(body, list):
        return body
    data = body.get("data")
    if isinstance(data, list):
        return data
    return []


@dataclass
class ReferenceSource:
    name: str
    path: str
    params: dict[str, Any] | None = None
    extract: Callable[[Any], list[Any]] = default_extract


class ReferenceDataLoader:
    """
    Usage:
        loader = ReferenceDataLoader(client, cache)
        loader.register("positions", "positions")
        loader.register("work_locations", "work-locations")

        positions = await loader.load("positions")
        fresh = await loader.load("positions", force=True)
    """

    def __init__(
        self,
        client: ResourceClient,
        cache: TTLCache | None = None,
        executor: RetryExecutor | None = None,
    ):
        self._client = client
        if cache is None:
            cache = TTLCache(ttl=global_settings.cache_ttl_seconds)
        self.cache = cache
        self._executor = executor or RetryExecutor(
            RetryOptions.from_settings(global_settings), name="reference"
        )
        self._sources: dict[str, ReferenceSource] = {}

    def register(
        self,
        name: str,
        path: str,
        params: dict[str, Any] | None = None,
        extract: Callable[[Any], list[Any]] = default_extract,
    ) -> None:
        self._sources[name] = ReferenceSource(
            name=name, path=path, params=params, extract=extract
        )

    @property
    def names(self) -> list[str]:
        return list(self._sources)

    async def load(self, name: str, force: bool = False) -> list[Any]:
        """
        Return the lookup, from cache when valid.

        Raises:
            KeyError: If name was never registered
            ServiceError: If the fetch fails after retries
        """
        source = self._sources[name]

        if not force:
            cached = self.cache.get(name)
            if cached is not None:
                return cached

        body = await self._executor.execute(
            lambda: self._client.get_json(source.path, params=source.params)
        )
        values = source.extract(body)
        self.cache.set(name, values)
        logger.debug(f"Loaded {len(values)} {name}")
        return values

    async def load_many(
        self, names: list[str] | None = None, force: bool = False
    ) -> dict[str, list[Any]]:
        """Load several lookups concurrently. A failed lookup comes back empty."""
        names = names if names is not None else self.names
        unknown = [name for name in names if name not in self._sources]
        if unknown:
            raise KeyError(f"Unregistered lookups: {', '.join(unknown)}")

        results = await asyncio.gather(
            *(self.load(name, force=force) for name in names),
            return_exceptions=True,
        )

        loaded: dict[str, list[Any]] = {}
        for name, result in zip(names, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(f"Failed to load {name}: {result}")
                loaded[name] = []
            else:
                loaded[name] = result
        return loaded
