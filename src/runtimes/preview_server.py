from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.components.store import (
    ComponentStore,
    ComponentStoreError,
    store_from_env,
    validate_component_id,
)
from src.editing.edit_client import EditServiceClient
from src.editing.orchestrator import EditStreamSource
from src.editing.preview_session import ComponentPreviewSession
from src.preview.document import DEFAULT_COMPONENT_NAME, build_sandbox_document
from src.preview.props import extract_preview_props
from src.preview.protocol import ProtocolEvent
from src.preview.sandbox import RuntimeFactory
from src.preview.validate import validate_component
from src.preview.verify import CompileVerifier
from src.runtimes.messages import Message, MessageType

# Load local env after imports to keep linting (E402) happy.
load_dotenv()

app = FastAPI()
logger = logging.getLogger(__name__)

_runtime_factory: Any = None
_store: ComponentStore | None = None


def _csv_env(name: str) -> list[str]:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return []
    return [p.strip() for p in raw.split(",") if p.strip()]


_cors_origins = _csv_env("CORS_ALLOW_ORIGINS")
if _cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _get_runtime_factory() -> RuntimeFactory:
    global _runtime_factory
    if _runtime_factory is None:
        from src.preview.browser_runtime import PlaywrightSandboxFactory

        _runtime_factory = PlaywrightSandboxFactory()
    return _runtime_factory


def _get_store() -> ComponentStore:
    global _store
    if _store is None:
        _store = store_from_env()
    return _store


def _get_edit_source() -> EditStreamSource:
    return EditServiceClient.from_env()


async def _read_json(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except Exception:
        return None
    return body if isinstance(body, dict) else None


def _props_arg(value: Any) -> dict[str, str] | None:
    if not isinstance(value, dict):
        return None
    return {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in value.items()}


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/preview/document")
async def api_preview_document(request: Request) -> JSONResponse:
    body = await _read_json(request)
    if body is None:
        return JSONResponse({"error": "invalid_json"}, status_code=400)
    code = body.get("code")
    if not isinstance(code, str):
        return JSONResponse({"error": "missing_code"}, status_code=400)
    name = str(body.get("component_name") or DEFAULT_COMPONENT_NAME)
    props = _props_arg(body.get("props"))
    if props is None:
        props = extract_preview_props(code)
    try:
        doc = build_sandbox_document(code, component_name=name, props=props)
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return JSONResponse(doc.to_dict())


@app.post("/api/preview/props")
async def api_preview_props(request: Request) -> JSONResponse:
    body = await _read_json(request)
    if body is None or not isinstance(body.get("code"), str):
        return JSONResponse({"error": "missing_code"}, status_code=400)
    return JSONResponse({"props": extract_preview_props(body["code"])})


@app.post("/api/preview/validate")
async def api_preview_validate(request: Request) -> JSONResponse:
    body = await _read_json(request)
    if body is None or not isinstance(body.get("code"), str):
        return JSONResponse({"error": "missing_code"}, status_code=400)
    return JSONResponse(validate_component(body["code"]).to_dict())


@app.post("/api/preview/verify")
async def api_preview_verify(request: Request) -> JSONResponse:
    body = await _read_json(request)
    if body is None or not isinstance(body.get("code"), str):
        return JSONResponse({"error": "missing_code"}, status_code=400)
    name = str(body.get("component_name") or DEFAULT_COMPONENT_NAME)
    props = _props_arg(body.get("props"))
    verifier = CompileVerifier(_get_runtime_factory(), component_name=name)
    try:
        outcome = await verifier.verify(body["code"], props=props)
    finally:
        await verifier.close()
    return JSONResponse(outcome.to_dict())


@app.get("/api/components/{component_id}")
async def api_get_component(component_id: str) -> JSONResponse:
    try:
        cid = validate_component_id(component_id)
    except ComponentStoreError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    try:
        code = await asyncio.to_thread(_get_store().get, cid)
    except ComponentStoreError as e:
        logger.warning("Component read failed for %s: %s", cid, e)
        return JSONResponse({"error": str(e)}, status_code=502)
    if code is None:
        return JSONResponse({"error": "not_found"}, status_code=404)
    return JSONResponse({"id": cid, "code": code})


@app.put("/api/components/{component_id}")
async def api_put_component(component_id: str, request: Request) -> JSONResponse:
    try:
        cid = validate_component_id(component_id)
    except ComponentStoreError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    body = await _read_json(request)
    if body is None or not isinstance(body.get("code"), str):
        return JSONResponse({"error": "missing_code"}, status_code=400)
    try:
        await asyncio.to_thread(_get_store().set, cid, body["code"])
    except ComponentStoreError as e:
        logger.warning("Component write failed for %s: %s", cid, e)
        return JSONResponse({"error": str(e)}, status_code=502)
    return JSONResponse({"id": cid, "saved": True})


async def _handle_ws(ws: WebSocket) -> None:
    await ws.accept()

    session: ComponentPreviewSession | None = None
    session_id = ""
    tasks: set[asyncio.Task[Any]] = set()

    async def _send(mtype: MessageType, data: dict[str, Any]) -> None:
        try:
            await ws.send_json(Message.new(mtype, data, session_id=session_id).to_dict())
        except (WebSocketDisconnect, RuntimeError):
            logger.debug("WS send failed (client gone?)", exc_info=True)

    async def _send_session() -> None:
        if session is not None:
            await _send(MessageType.SESSION, session.session.to_dict())

    async def _on_preview_event(event: ProtocolEvent) -> None:
        await _send(MessageType.PREVIEW_EVENT, event.to_dict())
        await _send_session()

    def _spawn(coro: Any) -> None:
        async def _run() -> None:
            try:
                await coro
            except Exception as e:
                logger.exception("WS operation failed")
                await _send(MessageType.ERROR, {"error": str(e)})
            await _send_session()

        task = asyncio.create_task(_run())
        tasks.add(task)
        task.add_done_callback(tasks.discard)

    try:
        while True:
            try:
                raw = await ws.receive_text()
            except WebSocketDisconnect:
                return

            try:
                msg = json.loads(raw)
            except Exception:
                continue
            if not isinstance(msg, dict):
                continue

            mtype = msg.get("type")
            data = msg.get("data") or {}

            if mtype == MessageType.PING.value:
                await _send(MessageType.PING, {})
                continue

            if mtype == MessageType.INIT.value:
                try:
                    cid = validate_component_id(str(data.get("component_id") or ""))
                except ComponentStoreError as e:
                    await _send(MessageType.ERROR, {"error": str(e)})
                    continue
                if session is not None:
                    await session.close()
                session_id = cid
                session = ComponentPreviewSession(
                    cid,
                    store=_get_store(),
                    runtime_factory=_get_runtime_factory(),
                    edit_source=_get_edit_source(),
                    scene_id=data.get("scene_id") or None,
                    props=_props_arg(data.get("props")),
                )
                session.preview.listener.subscribe(_on_preview_event)
                _spawn(session.open())
                continue

            if session is None:
                await _send(MessageType.ERROR, {"error": "not_initialized"})
                continue

            if mtype == MessageType.USER.value:
                text = str(data.get("text") or "").strip()
                if text:
                    _spawn(session.submit(text))
            elif mtype == MessageType.REBUILD.value:
                code = data.get("code")
                _spawn(session.rebuild(code if isinstance(code, str) else None))
            elif mtype == MessageType.RECOMPILE.value:
                code = data.get("code")
                if isinstance(code, str):
                    session.set_live_code(code)

                async def _recompile(s: ComponentPreviewSession = session) -> None:
                    outcome = await s.recompile()
                    await _send(MessageType.VERIFY_RESULT, outcome.to_dict())

                _spawn(_recompile())
            elif mtype == MessageType.FIX.value:
                _spawn(session.fix_with_ai())
            elif mtype == MessageType.SAVE.value:
                _spawn(session.save())
            else:
                await _send(MessageType.ERROR, {"error": f"unknown_type: {mtype}"})
    finally:
        for task in list(tasks):
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if session is not None:
            await session.close()


@app.websocket("/ws")
async def websocket_ws(ws: WebSocket) -> None:
    await _handle_ws(ws)


@app.on_event("shutdown")
async def _close_runtime_factory() -> None:
    global _runtime_factory
    factory, _runtime_factory = _runtime_factory, None
    close = getattr(factory, "close", None)
    if close is not None:
        await close()

