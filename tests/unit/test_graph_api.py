"""Testes do GraphApiClient sobre transporte httpx simulado."""

from __future__ import annotations

import json

import httpx
import pytest

from messenger_router.adapters.messenger.responses import Text, use_dictionary
from messenger_router.domain.errors import GraphApiError, SendError
from messenger_router.infra.graph_api import PROFILE_FIELDS, GraphApiClient
from messenger_router.infra.http import HttpClient, HttpClientConfig

ENDPOINT = "https://graph.example/v2.8"


def _graph(handler) -> GraphApiClient:
    http = HttpClient(
        HttpClientConfig(max_retries=0, backoff_base_seconds=0.0),
        transport=httpx.MockTransport(handler),
    )
    return GraphApiClient(http, ENDPOINT)


@pytest.fixture(autouse=True)
def empty_dictionary():
    use_dictionary({})
    yield
    use_dictionary(None)


class TestLookup:
    @pytest.mark.asyncio
    async def test_profile_request(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"first_name": "Ann", "last_name": "Lee"})

        graph = _graph(handler)
        profile = await graph.lookup("u1", "tok")
        await graph.close()

        assert profile == {"first_name": "Ann", "last_name": "Lee"}
        request = requests[0]
        assert request.method == "GET"
        assert request.url.path == "/v2.8/u1"
        assert request.url.params["fields"] == PROFILE_FIELDS
        assert request.url.params["access_token"] == "tok"

    @pytest.mark.asyncio
    async def test_platform_error_mapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400, json={"error": {"type": "OAuthException", "message": "Invalid token"}}
            )

        with pytest.raises(GraphApiError) as exc_info:
            await _graph(handler).lookup("u1", "tok")

        assert exc_info.value.status_code == 400
        assert exc_info.value.error_type == "OAuthException"
        assert str(exc_info.value) == "Invalid token"

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        with pytest.raises(GraphApiError):
            await _graph(handler).lookup("u1", "tok")


class TestSend:
    @pytest.mark.asyncio
    async def test_send_serializes_payload(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"recipient_id": "u1", "message_id": "mid.1"})

        result = await _graph(handler).send("tok", "u1", Text("hi").quick_replies(["A"]))

        assert result.message_id == "mid.1"
        request = requests[0]
        assert request.url.path == "/v2.8/me/messages"
        assert request.url.params["access_token"] == "tok"
        body = json.loads(request.content)
        assert body["recipient"] == {"id": "u1"}
        assert body["message"]["text"] == "hi"
        assert body["message"]["quick_replies"][0]["payload"] == "A"

    @pytest.mark.asyncio
    async def test_send_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": {"message": "blocked"}})

        with pytest.raises(SendError) as exc_info:
            await _graph(handler).send("tok", "u1", {"text": "x"})

        assert exc_info.value.status_code == 403
        assert not exc_info.value.is_retryable
        assert str(exc_info.value) == "blocked"

    @pytest.mark.asyncio
    async def test_send_server_error_is_retryable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        with pytest.raises(SendError) as exc_info:
            await _graph(handler).send("tok", "u1", {"text": "x"})

        assert exc_info.value.is_retryable


class TestThreadSettings:
    @pytest.mark.asyncio
    async def test_set_and_remove_greeting(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"result": "success"})

        graph = _graph(handler)
        await graph.set_greeting_text("tok", "Welcome!")
        await graph.remove_greeting_text("tok")

        assert [r.method for r in requests] == ["POST", "DELETE"]
        assert all(r.url.path == "/v2.8/me/thread_settings" for r in requests)
        assert json.loads(requests[0].content) == {
            "setting_type": "greeting",
            "greeting": {"text": "Welcome!"},
        }
        assert json.loads(requests[1].content) == {"setting_type": "greeting"}
