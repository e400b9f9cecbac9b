import asyncio
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio

from resync.services.client import ResourceClient
from resync.services.retry import RetryExecutor, RetryOptions
from resync.services.session import StaticSessionProvider

BASE_URL = "https://admin.example.com/api/admin"
ACCESS_TOKEN = "test-token"


def envelope(endpoint: str, records: list[Any], page: int = 1, total_pages: int = 1, stats=None) -> dict:
    return {
        "success": True,
        "data": {
            endpoint: records,
            "stats": stats,
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalCount": len(records),
            },
        },
    }


class FakeAdminAPI:
    """
    Stand-in for the admin API behind an httpx.MockTransport.

    Every request is recorded. Responses come from `responder`, which may
    be a coroutine function so tests can hold a response back.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], Any] = self.default_responder
        self.delay: float = 0.0

    def default_responder(self, request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.rsplit("/", 1)[-1]
        page = int(request.url.params.get("page", "1"))
        records = [{"id": f"{endpoint}-{page}-{i}", "params": dict(request.url.params)} for i in range(2)]
        return httpx.Response(200, json=envelope(endpoint, records, page=page, total_pages=3))

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responder(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def params(self, index: int = -1) -> dict[str, str]:
        return dict(self.requests[index].url.params)


@pytest.fixture
def api():
    return FakeAdminAPI()


@pytest_asyncio.fixture
async def client(api):
    client = ResourceClient(
        BASE_URL,
        StaticSessionProvider(ACCESS_TOKEN),
        transport=httpx.MockTransport(api.handler),
    )
    yield client
    await client.close()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fast_executor(sleeps):
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return RetryExecutor(
        RetryOptions(max_retries=3, base_delay=1.0, max_delay=5.0, timeout=2.0),
        sleep=fake_sleep,
    )


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
