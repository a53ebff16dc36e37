"""Sandbox -> host event protocol.

Three event types cross the boundary. Each carries the generation of the
sandbox build that produced it; the host drops anything that does not
belong to the build it is currently showing.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.preview import config

logger = logging.getLogger(__name__)


class ProtocolEventType(Enum):
    SUCCESS = "preview-success"
    ERROR = "preview-error"
    WARNING = "preview-warning"


@dataclass(frozen=True)
class ProtocolEvent:
    type: ProtocolEventType
    generation: int = 0
    message: str | None = None
    auto_mocked: tuple[str, ...] = ()

    @classmethod
    def success(cls, generation: int = 0) -> ProtocolEvent:
        return cls(type=ProtocolEventType.SUCCESS, generation=generation)

    @classmethod
    def error(cls, message: str, generation: int = 0) -> ProtocolEvent:
        return cls(type=ProtocolEventType.ERROR, generation=generation, message=message)

    @classmethod
    def warning(cls, auto_mocked: list[str] | tuple[str, ...], generation: int = 0) -> ProtocolEvent:
        return cls(
            type=ProtocolEventType.WARNING,
            generation=generation,
            auto_mocked=tuple(auto_mocked),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type.value, "generation": self.generation}
        if self.type is ProtocolEventType.ERROR:
            out["error"] = self.message or ""
        if self.type is ProtocolEventType.WARNING:
            out["autoMocked"] = list(self.auto_mocked)
        return out

    @classmethod
    def from_dict(cls, data: Any) -> ProtocolEvent | None:
        """Parse a wire payload. Unknown or malformed payloads yield None."""
        if not isinstance(data, dict):
            return None
        try:
            kind = ProtocolEventType(data.get("type"))
        except ValueError:
            return None
        gen_raw = data.get("generation")
        generation = gen_raw if isinstance(gen_raw, int) and not isinstance(gen_raw, bool) else 0
        if kind is ProtocolEventType.ERROR:
            return cls.error(str(data.get("error") or "Unknown error"), generation)
        if kind is ProtocolEventType.WARNING:
            names = data.get("autoMocked")
            if not isinstance(names, list):
                names = []
            return cls.warning([str(n) for n in names], generation)
        return cls.success(generation)


class EventChannel:
    """Bounded, ordered, one-way queue of protocol events.

    Publishing never blocks the producer: when the queue is full the oldest
    pending event is dropped.
    """

    _CLOSED = object()

    def __init__(self, maxsize: int | None = None) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue(
            maxsize=maxsize if maxsize is not None else config.event_queue_max()
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: ProtocolEvent) -> None:
        if self._closed:
            logger.debug("Dropping %s on closed channel", event.type.value)
            return
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except asyncio.QueueFull:
                dropped = self._queue.get_nowait()
                self._queue.task_done()
                logger.warning("Preview event channel full; dropped %r", dropped)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(self._CLOSED)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            self._queue.task_done()
            self._queue.put_nowait(self._CLOSED)

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    async def get(self) -> ProtocolEvent | None:
        item = await self._queue.get()
        if item is self._CLOSED:
            return None
        return item


@dataclass
class HostPreviewState:
    generation: int = 0
    rendered: bool = False
    error: str | None = None
    auto_mocked: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation": self.generation,
            "rendered": self.rendered,
            "error": self.error,
            "auto_mocked": list(self.auto_mocked),
        }


Subscriber = Callable[[ProtocolEvent], "Awaitable[None] | None"]


class PreviewListener:
    """Host-side consumer of one preview's events.

    Each accepted event replaces the relevant part of the state: success
    clears a shown error, an error does not clear warnings, a warning
    replaces the warning list.
    """

    def __init__(self) -> None:
        self.state = HostPreviewState()
        self._subscribers: list[Subscriber] = []

    @property
    def generation(self) -> int:
        return self.state.generation

    def begin_generation(self, generation: int) -> None:
        self.state.generation = generation
        self.state.rendered = False
        self.state.auto_mocked = []

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        self._subscribers.append(fn)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(fn)
            except ValueError:
                pass

        return _unsubscribe

    def apply(self, event: ProtocolEvent) -> bool:
        if event.generation != self.state.generation:
            logger.debug(
                "Discarding stale %s (generation %s, current %s)",
                event.type.value,
                event.generation,
                self.state.generation,
            )
            return False
        if event.type is ProtocolEventType.SUCCESS:
            self.state.error = None
            self.state.rendered = True
        elif event.type is ProtocolEventType.ERROR:
            self.state.error = event.message or "Unknown error"
            self.state.rendered = False
        else:
            self.state.auto_mocked = list(event.auto_mocked)
        return True

    async def dispatch(self, event: ProtocolEvent) -> bool:
        if not self.apply(event):
            return False
        for fn in list(self._subscribers):
            try:
                res = fn(event)
                if inspect.isawaitable(res):
                    await res
            except Exception:
                logger.exception("Preview event subscriber failed")
        return True

    async def run(self, channel: EventChannel) -> None:
        while True:
            event = await channel.get()
            try:
                if event is None:
                    return
                await self.dispatch(event)
            finally:
                channel.task_done()
