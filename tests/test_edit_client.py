from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from src.editing.edit_client import EditServiceClient, decode_stream_line
from src.editing.errors import EditServiceError, StreamFault
from src.editing.types import (
    ChatMessage,
    CodeUpdateEvent,
    DeltaEvent,
    DoneEvent,
    ErrorEvent,
    StatusEvent,
    ToolCallEvent,
    ValidationEvent,
)


def _sse(*records: object) -> bytes:
    lines = []
    for r in records:
        lines.append("data: " + (r if isinstance(r, str) else json.dumps(r)))
    return ("\n".join(lines) + "\n").encode("utf-8")


def _collect(client: EditServiceClient, **kwargs) -> list:
    async def _main() -> list:
        out = []
        async for ev in client.stream_edit(**kwargs):
            out.append(ev)
        return out

    return asyncio.run(_main())


def test_decode_stream_line():
    assert decode_stream_line("data: [DONE]") == (True, None)
    assert decode_stream_line(": keepalive") == (False, None)
    assert decode_stream_line("data: {not json") == (False, None)
    assert decode_stream_line('data: {"type": "mystery"}') == (False, None)
    assert decode_stream_line('data: {"type": "delta", "content": "hi"}') == (
        False,
        DeltaEvent(content="hi"),
    )


def test_stream_decodes_events_and_stops_at_done():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        body = _sse(
            {"type": "tool_call", "tool": "edit_code", "message": "Editing"},
            {"type": "code_update", "code": "v2"},
            {"type": "validation", "valid": False, "error": "bad"},
            {"type": "status", "message": "Thinking"},
            {"type": "done", "code": "v3", "explanation": "Made it blue", "validated": True},
            "[DONE]",
            {"type": "delta", "content": "after done"},
        )
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    client = EditServiceClient(
        url="http://edit.test/api/component/edit",
        token="t0k",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    events = _collect(
        client,
        code="v1",
        instruction="make it blue",
        history=[ChatMessage(role="user", content="hello")],
        scene_id="scene-1",
    )
    assert events == [
        ToolCallEvent(tool="edit_code", message="Editing"),
        CodeUpdateEvent(code="v2"),
        ValidationEvent(valid=False, error="bad"),
        StatusEvent(message="Thinking"),
        DoneEvent(code="v3", explanation="Made it blue", validated=True),
    ]
    assert seen["body"] == {
        "code": "v1",
        "instruction": "make it blue",
        "history": [{"role": "user", "content": "hello"}],
        "sceneId": "scene-1",
    }
    assert seen["auth"] == "Bearer t0k"


def test_scene_id_is_omitted_when_absent():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=_sse({"type": "error", "message": "nope"}))

    client = EditServiceClient(
        url="http://edit.test/edit", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    events = _collect(client, code="", instruction="x")
    assert events == [ErrorEvent(message="nope")]
    assert "sceneId" not in seen["body"]


def test_http_error_status_raises_edit_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "overloaded"})

    client = EditServiceClient(
        url="http://edit.test/edit", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    with pytest.raises(EditServiceError) as ei:
        _collect(client, code="", instruction="x")
    assert ei.value.status_code == 503
    assert ei.value.payload == {"error": "overloaded"}
    assert "overloaded" in str(ei.value)
    assert isinstance(ei.value, StreamFault)


def test_transport_error_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = EditServiceClient(
        url="http://edit.test/edit", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    with pytest.raises(EditServiceError):
        _collect(client, code="", instruction="x")


def test_from_env_reads_url_and_token(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EDIT_SERVICE_URL", "http://svc/edit")
    monkeypatch.setenv("EDIT_SERVICE_TOKEN", "abc")
    client = EditServiceClient.from_env()
    assert client._url == "http://svc/edit"
    assert client._headers()["Authorization"] == "Bearer abc"
