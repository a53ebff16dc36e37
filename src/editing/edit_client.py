"""Client for the external edit-generation service.

The service answers a POST with a server-sent-events style body: one
`data: <json>` record per line, terminated by `data: [DONE]`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx

from src.editing import config
from src.editing.errors import EditServiceError
from src.editing.types import ChatMessage, StreamEvent, parse_stream_event

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def decode_stream_line(line: str) -> tuple[bool, StreamEvent | None]:
    """Decode one line of the stream.

    Returns `(finished, event)`. Lines without the data prefix, malformed
    JSON and unknown event types yield `(False, None)`.
    """
    if not line.startswith(DATA_PREFIX):
        return False, None
    payload = line[len(DATA_PREFIX) :].strip()
    if payload == DONE_SENTINEL:
        return True, None
    try:
        data = json.loads(payload)
    except ValueError:
        logger.debug("Skipping malformed stream record: %.200s", payload)
        return False, None
    return False, parse_stream_event(data)


class EditServiceClient:
    def __init__(
        self,
        *,
        url: str,
        token: str = "",
        timeout_s: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._token = token
        self._timeout_s = config.edit_service_timeout_s() if timeout_s is None else timeout_s
        self._client = client

    @classmethod
    def from_env(cls, *, client: httpx.AsyncClient | None = None) -> EditServiceClient:
        return cls(
            url=config.edit_service_url(),
            token=config.edit_service_token(),
            client=client,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def stream_edit(
        self,
        *,
        code: str,
        instruction: str,
        history: Sequence[ChatMessage] = (),
        scene_id: str | None = None,
    ) -> AsyncIterator[StreamEvent]:
        body: dict[str, Any] = {
            "code": code,
            "instruction": instruction,
            "history": [{"role": m.role, "content": m.content} for m in history],
        }
        if scene_id:
            body["sceneId"] = scene_id

        owned = self._client is None
        client = self._client or httpx.AsyncClient(timeout=self._timeout_s)
        try:
            async with client.stream(
                "POST", self._url, json=body, headers=self._headers()
            ) as res:
                if res.status_code >= 400:
                    raw = await res.aread()
                    payload: Any
                    try:
                        payload = json.loads(raw)
                    except ValueError:
                        payload = {"raw": raw.decode("utf-8", errors="replace")}
                    msg = ""
                    if isinstance(payload, dict):
                        msg = str(payload.get("error") or payload.get("message") or "")
                    raise EditServiceError(
                        f"edit service error {res.status_code}: {msg or 'unknown error'}",
                        status_code=res.status_code,
                        payload=payload,
                    )
                async for line in res.aiter_lines():
                    finished, event = decode_stream_line(line)
                    if finished:
                        return
                    if event is not None:
                        yield event
        except httpx.HTTPError as exc:
            raise EditServiceError(f"edit request failed: {exc}") from exc
        finally:
            if owned:
                await client.aclose()
