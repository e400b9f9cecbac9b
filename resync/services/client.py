"""
ResourceClient - Async HTTP client for the paginated admin API.

Responsibilities:
- Serialize a ResourceQuery into the query string
- Attach the bearer token of the current session
- Decode the {success, data, error} envelope into a ResourceResult
- Map transport and HTTP failures onto the service error taxonomy
"""

from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from resync.models import ResourceQuery, ResourceResult, ServerPagination
from resync.services.errors import (
    RequestTimeoutError,
    ServerReportedError,
    ServiceError,
)
from resync.services.session import (
    SessionProvider,
    StaticSessionProvider,
    require_access_token,
)
from resync.settings import global_settings

# Keys tried, in order, when the payload does not use the endpoint name
FALLBACK_RECORD_KEYS = ("news", "events", "messages", "documents")


def extract_records(payload: dict[str, Any], endpoint: str) -> list[Any]:
    """Pick the record list out of an envelope's data block."""
    for key in (endpoint, *FALLBACK_RECORD_KEYS):
        records = payload.get(key)
        if records is not None:
            return list(records)
    return []


class ResourceClient:
    """
    HTTP client bound to one admin API base URL.

    Usage:
        async with ResourceClient(base_url, StaticSessionProvider(token)) as client:
            result = await client.fetch(ResourceQuery(endpoint="news", page=2))
    """

    def __init__(
        self,
        base_url: str,
        session_provider: SessionProvider,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        debug: bool = False,
    ):
        self.base_url = base_url.rstrip("/")
        self._session_provider = session_provider
        self._timeout = timeout
        self._transport = transport
        self._debug = debug

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http_client

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def fetch(self, query: ResourceQuery) -> ResourceResult:
        """
        Fetch one page of a resource.

        Raises:
            AuthenticationError: If there is no session
            ServerReportedError: If the server answered success: false
            RequestTimeoutError: If the transport timed out
            ServiceError: For HTTP and transport errors
        """
        body = await self.get_json(query.endpoint, params=query.to_params())

        if not body.get("success"):
            raise ServerReportedError(
                body.get("error") or "Unknown error",
                service_id=query.endpoint,
            )

        payload = body.get("data") or {}
        if not isinstance(payload, dict):
            raise ServiceError(
                f"Malformed response for {query.endpoint}: data is not an object",
                service_id=query.endpoint,
            )

        pagination = payload.get("pagination")
        try:
            return ResourceResult(
                data=extract_records(payload, query.endpoint),
                stats=payload.get("stats"),
                pagination=ServerPagination.model_validate(pagination) if pagination else None,
            )
        except ValidationError as e:
            raise ServiceError(
                f"Malformed response for {query.endpoint}: {e.error_count()} invalid field(s)",
                service_id=query.endpoint,
            ) from e

    async def get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Authenticated GET returning the decoded JSON body."""
        token = await require_access_token(self._session_provider)
        url = self.url_for(path)
        headers = {"Authorization": f"Bearer {token}"}
        client = await self._get_http_client()

        if self._debug:
            logger.debug(f"[ResourceClient] GET {url} params={params}")

        try:
            response = await client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(path, self._timeout) from e
        except httpx.RequestError as e:
            raise ServiceError(str(e), service_id=path) from e

        if response.is_error:
            raise ServiceError(
                self._error_message(response, path),
                service_id=path,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(f"Invalid JSON from {path}", service_id=path) from e

    @staticmethod
    def _error_message(response: httpx.Response, path: str) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"HTTP {response.status_code}: failed to load {path}"

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("ResourceClient closed")

    async def __aenter__(self) -> "ResourceClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


# Global client instance
_global_client: ResourceClient | None = None


def get_resource_client() -> ResourceClient:
    """Get the global client, configured from settings."""
    global _global_client
    if _global_client is None:
        _global_client = ResourceClient(
            base_url=global_settings.base_url,
            session_provider=StaticSessionProvider(global_settings.access_token),
            timeout=global_settings.request_timeout,
            debug=global_settings.debug,
        )
    return _global_client


async def close_resource_client() -> None:
    """Close the global client."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
