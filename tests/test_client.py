import httpx
import pytest

from resync.models import ResourceQuery
from resync.services.client import ResourceClient, extract_records
from resync.services.errors import (
    AuthenticationError,
    RequestTimeoutError,
    ServerReportedError,
    ServiceError,
)
from resync.services.session import CallableSessionProvider, StaticSessionProvider

from .conftest import ACCESS_TOKEN, BASE_URL, envelope


async def test_fetch_builds_request(client, api):
    query = ResourceQuery(endpoint="news", page=2, limit=10, filters={"search": "budget", "category": "all"})
    await client.fetch(query)

    request = api.requests[0]
    assert request.method == "GET"
    assert str(request.url).startswith(f"{BASE_URL}/news?")
    assert request.headers["Authorization"] == f"Bearer {ACCESS_TOKEN}"
    assert api.params() == {
        "page": "2",
        "limit": "10",
        "order_by": "created_at",
        "order_direction": "desc",
        "search": "budget",
    }


async def test_fetch_decodes_envelope(client, api):
    api.responder = lambda request: httpx.Response(
        200,
        json={
            "success": True,
            "data": {
                "events": [{"id": "e1"}, {"id": "e2"}],
                "stats": {"published": 2},
                "pagination": {"currentPage": 1, "totalPages": 4, "totalCount": 80},
            },
        },
    )
    result = await client.fetch(ResourceQuery(endpoint="events"))

    assert result.data == [{"id": "e1"}, {"id": "e2"}]
    assert result.stats == {"published": 2}
    assert result.pagination.total_pages == 4
    assert result.pagination.total_count == 80


async def test_fetch_without_pagination_block(client, api):
    api.responder = lambda request: httpx.Response(200, json={"success": True, "data": {"groups": []}})
    result = await client.fetch(ResourceQuery(endpoint="groups"))
    assert result.data == []
    assert result.pagination is None


async def test_success_false_is_a_failure(client, api):
    api.responder = lambda request: httpx.Response(200, json={"success": False, "error": "Sector not found"})
    with pytest.raises(ServerReportedError, match="Sector not found"):
        await client.fetch(ResourceQuery(endpoint="news"))


async def test_http_error_carries_server_message(client, api):
    api.responder = lambda request: httpx.Response(500, json={"error": "database unavailable"})
    with pytest.raises(ServiceError) as exc_info:
        await client.fetch(ResourceQuery(endpoint="news"))
    assert str(exc_info.value) == "database unavailable"
    assert exc_info.value.status_code == 500
    assert not exc_info.value.is_client_error


async def test_http_error_without_json_body(client, api):
    api.responder = lambda request: httpx.Response(403, text="forbidden")
    with pytest.raises(ServiceError) as exc_info:
        await client.fetch(ResourceQuery(endpoint="news"))
    assert str(exc_info.value) == "HTTP 403: failed to load news"
    assert exc_info.value.is_client_error


async def test_transport_timeout(client, api):
    def timeout(request):
        raise httpx.ReadTimeout("slow", request=request)

    api.responder = timeout
    with pytest.raises(RequestTimeoutError):
        await client.fetch(ResourceQuery(endpoint="news"))


async def test_transport_error(client, api):
    def refused(request):
        raise httpx.ConnectError("refused", request=request)

    api.responder = refused
    with pytest.raises(ServiceError, match="refused"):
        await client.fetch(ResourceQuery(endpoint="news"))


async def test_missing_session_is_fatal(api):
    client = ResourceClient(BASE_URL, StaticSessionProvider(None), transport=httpx.MockTransport(api.handler))
    async with client:
        with pytest.raises(AuthenticationError):
            await client.fetch(ResourceQuery(endpoint="news"))
    assert api.call_count == 0


async def test_callable_session_provider(api):
    async def token():
        return "rotated"

    client = ResourceClient(BASE_URL, CallableSessionProvider(token), transport=httpx.MockTransport(api.handler))
    async with client:
        await client.fetch(ResourceQuery(endpoint="news"))
    assert api.requests[0].headers["Authorization"] == "Bearer rotated"


async def test_get_json(client, api):
    api.responder = lambda request: httpx.Response(200, json={"success": True, "data": [{"id": "p1"}]})
    body = await client.get_json("positions", params={"active": "true"})
    assert body["data"] == [{"id": "p1"}]
    assert str(api.requests[0].url) == f"{BASE_URL}/positions?active=true"


def test_extract_records_fallbacks():
    assert extract_records({"widgets": [1]}, "widgets") == [1]
    assert extract_records({"news": [2]}, "general-news") == [2]
    assert extract_records({"widgets": [], "news": [2]}, "widgets") == []
    assert extract_records({"other": [3]}, "widgets") == []


async def test_negative_pagination_is_a_service_error(client, api):
    body = envelope("news", [{"id": "n1"}])
    body["data"]["pagination"]["totalPages"] = -1
    api.responder = lambda request: httpx.Response(200, json=body)

    with pytest.raises(ServiceError, match="Malformed response for news"):
        await client.fetch(ResourceQuery(endpoint="news"))


async def test_non_object_data_is_a_service_error(client, api):
    api.responder = lambda request: httpx.Response(200, json={"success": True, "data": [1, 2]})

    with pytest.raises(ServiceError, match="data is not an object"):
        await client.fetch(ResourceQuery(endpoint="news"))


async def test_zero_current_page_is_accepted(client, api):
    body = envelope("news", [{"id": "n1"}], page=0)
    api.responder = lambda request: httpx.Response(200, json=body)

    result = await client.fetch(ResourceQuery(endpoint="news"))
    assert result.pagination.current_page == 0
