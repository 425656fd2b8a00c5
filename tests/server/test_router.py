"""Tests for SessionRouter."""

import functools
import json
from typing import Any
from unittest.mock import patch

import anyio
import httpx
import pytest
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from mcp_helpers import (
    MCP_HEADERS,
    N8N_URL,
    call_tool,
    decode_message,
    initialize_message,
    open_session,
    session_headers,
)
from starlette.types import Message

from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.operations import build_registry
from n8n_workflow_builder.server import SessionRouter, SessionState, SessionTransport, create_app, create_engine
from n8n_workflow_builder.server.router import ResponseTracker, is_initialize_request
from n8n_workflow_builder.settings import Settings


@pytest.mark.anyio
async def test_run_can_only_be_called_once():
    router = SessionRouter(lambda: Server("test-server"))

    async with router.run():
        pass

    with pytest.raises(RuntimeError) as excinfo:
        async with router.run():
            pass

    assert "SessionRouter .run() can only be called once per instance" in str(excinfo.value)


@pytest.mark.anyio
async def test_handle_request_without_run_raises_error():
    router = SessionRouter(lambda: Server("test-server"))
    scope = {"type": "http", "method": "POST", "path": "/mcp", "headers": []}

    async def receive() -> Message:
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message: Message) -> None:
        pass

    with pytest.raises(RuntimeError) as excinfo:
        await router.handle_request(scope, receive, send)

    assert "Task group is not initialized. Make sure to use run()." in str(excinfo.value)


def test_is_initialize_request():
    assert is_initialize_request(json.dumps(initialize_message()).encode())
    assert not is_initialize_request(b'{"jsonrpc": "2.0", "id": 1, "method": "tools/list"}')
    assert not is_initialize_request(b"[]")
    assert not is_initialize_request(b"not json")


@pytest.mark.anyio
async def test_handshake_registers_active_session(mcp_client: httpx.AsyncClient, router: SessionRouter):
    response = await mcp_client.post("/mcp", json=initialize_message(), headers=MCP_HEADERS)

    assert response.status_code == 200
    session_id = response.headers[MCP_SESSION_ID_HEADER]
    assert decode_message(response)["result"]["serverInfo"]["name"] == "n8n-workflow-builder"

    transport = router.store.get(session_id)
    assert transport is not None
    assert transport.state is SessionState.ACTIVE


@pytest.mark.anyio
async def test_concurrent_handshakes_get_distinct_sessions(mcp_client: httpx.AsyncClient, router: SessionRouter):
    session_ids: list[str] = []

    async def handshake() -> None:
        response = await mcp_client.post("/mcp", json=initialize_message(), headers=MCP_HEADERS)
        assert response.status_code == 200
        session_ids.append(response.headers[MCP_SESSION_ID_HEADER])

    async with anyio.create_task_group() as tg:
        for _ in range(10):
            tg.start_soon(handshake)

    assert len(set(session_ids)) == 10
    assert len(router.store) == 10
    assert all(session_id in router.store for session_id in session_ids)


@pytest.mark.anyio
async def test_continuation_lists_tools(mcp_client: httpx.AsyncClient):
    session_id = await open_session(mcp_client)

    response = await mcp_client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
        headers=session_headers(session_id),
    )

    assert response.status_code == 200
    names = {tool["name"] for tool in decode_message(response)["result"]["tools"]}
    assert len(names) == 23
    assert {"list_workflows", "create_tag", "generate_audit"} <= names


@pytest.mark.anyio
async def test_tool_call_returns_upstream_payload(mcp_client: httpx.AsyncClient):
    session_id = await open_session(mcp_client)

    response = await call_tool(mcp_client, session_id, "list_workflows", {})

    assert response.status_code == 200
    result = decode_message(response)["result"]
    assert result["isError"] is False
    assert json.loads(result["content"][0]["text"]) == {"data": [{"id": "1", "name": "Hello"}]}


@pytest.mark.anyio
async def test_upstream_failure_is_reported_as_tool_error(mcp_client: httpx.AsyncClient):
    session_id = await open_session(mcp_client)

    response = await call_tool(mcp_client, session_id, "get_workflow", {"id": "broken"})

    assert response.status_code == 200
    result = decode_message(response)["result"]
    assert result["isError"] is True
    assert result["content"][0]["text"] == "Error: Request failed with status code 500: Internal error"


@pytest.mark.anyio
async def test_sessions_are_isolated(mcp_client: httpx.AsyncClient, router: SessionRouter):
    first = await open_session(mcp_client)
    second = await open_session(mcp_client)

    response = await mcp_client.delete("/mcp", headers=session_headers(first))
    assert response.status_code == 200

    assert first not in router.store
    assert second in router.store
    response = await call_tool(mcp_client, second, "list_workflows", {})
    assert decode_message(response)["result"]["isError"] is False


@pytest.mark.anyio
async def test_post_without_session_is_rejected(mcp_client: httpx.AsyncClient):
    response = await mcp_client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
        headers=MCP_HEADERS,
    )

    assert response.status_code == 400
    assert response.json() == {
        "jsonrpc": "2.0",
        "error": {"code": -32000, "message": "Bad Request: No valid session ID provided"},
        "id": None,
    }


@pytest.mark.anyio
async def test_post_with_unknown_session_is_rejected(mcp_client: httpx.AsyncClient):
    response = await mcp_client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
        headers=session_headers("does-not-exist"),
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32000


@pytest.mark.anyio
async def test_initialize_with_session_header_is_not_a_handshake(mcp_client: httpx.AsyncClient, router: SessionRouter):
    response = await mcp_client.post("/mcp", json=initialize_message(), headers=session_headers("stale"))

    assert response.status_code == 400
    assert len(router.store) == 0


@pytest.mark.anyio
@pytest.mark.parametrize("method", ["GET", "DELETE"])
async def test_get_and_delete_without_session_are_rejected(mcp_client: httpx.AsyncClient, method: str):
    response = await mcp_client.request(method, "/mcp", headers=MCP_HEADERS)

    assert response.status_code == 400
    assert response.text == "Invalid or missing session ID"


@pytest.mark.anyio
async def test_delete_removes_session(mcp_client: httpx.AsyncClient, router: SessionRouter):
    session_id = await open_session(mcp_client)
    transport = router.store.get(session_id)
    assert transport is not None

    response = await mcp_client.delete("/mcp", headers=session_headers(session_id))

    assert response.status_code == 200
    assert session_id not in router.store
    assert transport.state is SessionState.CLOSED

    response = await call_tool(mcp_client, session_id, "list_workflows", {})
    assert response.status_code == 400


@pytest.mark.anyio
async def test_default_settings_serve_event_streams(n8n_client: N8nClient):
    settings = Settings(_env_file=None, n8n_host=N8N_URL)  # type: ignore[call-arg]
    assert settings.json_response is False
    router = SessionRouter(functools.partial(create_engine, build_registry(n8n_client)))
    app = create_app(settings, router)

    async with router.run():
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
            response = await client.post("/mcp", json=initialize_message(), headers=MCP_HEADERS)
            assert response.status_code == 200
            assert response.headers["content-type"].startswith("text/event-stream")
            session_id = response.headers[MCP_SESSION_ID_HEADER]
            assert router.store.get(session_id).state is SessionState.ACTIVE  # type: ignore[union-attr]

            notified = await client.post(
                "/mcp",
                json={"jsonrpc": "2.0", "method": "notifications/initialized"},
                headers=session_headers(session_id),
            )
            assert notified.status_code == 202

            response = await call_tool(client, session_id, "get_workflow", {"id": "broken"})
            assert response.status_code == 200
            assert response.headers["content-type"].startswith("text/event-stream")
            assert decode_message(response)["result"]["isError"] is True

            response = await client.delete("/mcp", headers=session_headers(session_id))
            assert response.status_code == 200
            assert len(router.store) == 0

            response = await call_tool(client, session_id, "list_workflows", {})
            assert response.status_code == 400
            assert response.json()["error"]["code"] == -32000

@pytest.mark.anyio
async def test_rejected_handshake_leaves_no_session(mcp_client: httpx.AsyncClient, router: SessionRouter):
    response = await mcp_client.post(
        "/mcp",
        json=initialize_message(),
        headers={**MCP_HEADERS, "Accept": "text/html"},
    )

    assert response.status_code >= 400
    assert len(router.store) == 0


@pytest.mark.anyio
async def test_failed_handshake_returns_internal_error(mcp_client: httpx.AsyncClient, router: SessionRouter):
    async def failing_start(self: SessionTransport, task_group: Any) -> None:
        raise RuntimeError("engine unavailable")

    with patch.object(SessionTransport, "start", failing_start):
        response = await mcp_client.post("/mcp", json=initialize_message(), headers=MCP_HEADERS)

    assert response.status_code == 500
    assert response.json() == {
        "jsonrpc": "2.0",
        "error": {"code": -32603, "message": "Internal server error"},
        "id": None,
    }
    assert len(router.store) == 0


class StartedThenFailingTransport:
    """Stands in for a session that fails after it began writing a response."""

    session_id = "half-written"
    is_closed = False

    async def handle_request(self, scope: Any, receive: Any, send: Any) -> None:
        await send({"type": "http.response.start", "status": 200, "headers": []})
        raise RuntimeError("stream broke")


@pytest.mark.anyio
async def test_error_after_response_started_is_not_answered_twice(router: SessionRouter):
    router.store.put("half-written", StartedThenFailingTransport())  # type: ignore[arg-type]
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/mcp",
        "headers": [(MCP_SESSION_ID_HEADER.encode(), b"half-written")],
    }
    sent: list[Message] = []

    async def receive() -> Message:
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message: Message) -> None:
        sent.append(message)

    await router.handle_request(scope, receive, send)

    starts = [message for message in sent if message["type"] == "http.response.start"]
    assert len(starts) == 1
    assert starts[0]["status"] == 200
    router.store.delete("half-written")


@pytest.mark.anyio
async def test_response_tracker_records_status():
    sent: list[Message] = []

    async def send(message: Message) -> None:
        sent.append(message)

    tracker = ResponseTracker(send)
    assert not tracker.response_started

    await tracker({"type": "http.response.start", "status": 202, "headers": []})
    await tracker({"type": "http.response.body", "body": b""})

    assert tracker.response_started
    assert tracker.status_code == 202
    assert len(sent) == 2


@pytest.mark.anyio
async def test_exiting_run_closes_all_sessions(n8n_client: N8nClient, settings: Settings):
    registry = build_registry(n8n_client)
    router = SessionRouter(functools.partial(create_engine, registry), json_response=settings.json_response)
    app = create_app(settings, router)
    async with router.run():
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
            await open_session(client)
            await open_session(client)
        transports = [transport for _, transport in router.store.snapshot()]
        assert len(transports) == 2

    assert len(router.store) == 0
    assert all(transport.is_closed for transport in transports)
