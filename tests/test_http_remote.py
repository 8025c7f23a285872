"""Tests for projectflow.adapters.http_remote — httpx REST client."""

import json

import httpx
import pytest

from projectflow.adapters.http_remote import HttpRemoteClient
from projectflow.ports.remote_port import RemoteError


def _client(handler, **kwargs):
    return HttpRemoteClient(
        base_url="http://api.test", timeout=5, transport=httpx.MockTransport(handler), **kwargs,
    )


@pytest.mark.asyncio
async def test_get_all_passes_camel_case_filters():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        return httpx.Response(200, json=[{"id": "1"}])

    async with _client(handler) as client:
        rows = await client.collection("time-entries").get_all(user_id="u1", customer_id=None)

    assert rows == [{"id": "1"}]
    assert seen["url"] == "http://api.test/api/time-entries?userId=u1"


@pytest.mark.asyncio
async def test_create_update_delete_routes():
    calls = []

    def handler(request):
        body = json.loads(request.content) if request.content else None
        calls.append((request.method, request.url.path, body))
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json=body)

    async with _client(handler) as client:
        projects = client.collection("projects")
        assert await projects.create({"id": "p1"}) == {"id": "p1"}
        assert await projects.update("p1", {"progress": 50}) == {"progress": 50}
        assert await projects.delete("p1") is None

    assert calls == [
        ("POST", "/api/projects", {"id": "p1"}),
        ("PUT", "/api/projects/p1", {"progress": 50}),
        ("DELETE", "/api/projects/p1", None),
    ]


@pytest.mark.asyncio
async def test_bearer_token_sent_after_set():
    headers = []

    def handler(request):
        headers.append(request.headers.get("Authorization"))
        return httpx.Response(200, json={})

    async with _client(handler) as client:
        await client.collection("users").get_by_id("u1")
        client.set_access_token("tok")
        await client.collection("users").get_by_id("u1")

    assert headers == [None, "Bearer tok"]


@pytest.mark.asyncio
async def test_http_error_carries_status_and_message():
    def handler(request):
        return httpx.Response(404, json={"error": "User not found"})

    async with _client(handler) as client:
        with pytest.raises(RemoteError) as exc_info:
            await client.collection("users").get_by_id("nope")

    assert exc_info.value.status == 404
    assert exc_info.value.message == "User not found"


@pytest.mark.asyncio
async def test_transport_error_is_status_zero():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(RemoteError) as exc_info:
            await client.get_initial_data()

    assert exc_info.value.status == 0


@pytest.mark.asyncio
async def test_initial_data_must_be_an_object():
    def handler(request):
        return httpx.Response(200, json=[1, 2])

    async with _client(handler) as client:
        with pytest.raises(RemoteError):
            await client.get_initial_data("u1")


@pytest.mark.asyncio
async def test_initial_data_query():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"projects": []})

    async with _client(handler) as client:
        assert await client.get_initial_data("u1") == {"projects": []}
        assert seen["params"] == {"userId": "u1"}
        await client.get_initial_data()
        assert seen["params"] == {}


@pytest.mark.asyncio
async def test_subscription_calls_send_user_header():
    seen = []

    def handler(request):
        seen.append((request.url.path, request.headers.get("x-user-id")))
        if request.url.path.endswith("billing-history"):
            return httpx.Response(200, json={"unexpected": True})
        return httpx.Response(200, json={"ok": True})

    async with _client(handler) as client:
        await client.get_subscription_status("u1")
        await client.redeem_coupon("FREE30", "u1")
        assert await client.get_billing_history("u1") == []

    assert seen[0] == ("/api/subscriptions/status", "u1")
    assert seen[1] == ("/api/subscriptions/redeem-coupon", "u1")


def test_unknown_collection_rejected():
    client = _client(lambda request: httpx.Response(200))
    with pytest.raises(ValueError):
        client.collection("widgets")


@pytest.mark.asyncio
async def test_invalid_json_body():
    def handler(request):
        return httpx.Response(200, content=b"<html>", headers={"Content-Type": "text/html"})

    async with _client(handler) as client:
        with pytest.raises(RemoteError):
            await client.collection("tasks").get_by_id("1")
