"""Execution harness: one run per sandbox build.

The harness is a small state machine that drives a `ScriptRuntime` (the
isolated page) through transpile -> execute/repair -> resolve -> mount and
publishes the resulting protocol events.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from src.preview import config
from src.preview.document import SandboxDocument
from src.preview.errors import (
    PreviewFault,
    RenderFault,
    TranspileFault,
    UnresolvedSymbolFault,
)
from src.preview.mocks import adhoc_stand_in
from src.preview.protocol import ProtocolEvent

logger = logging.getLogger(__name__)

NO_COMPONENT_MESSAGE = "No component found to render."


class HarnessState(Enum):
    LOADING = "loading"
    TRANSPILING = "transpiling"
    EXECUTING = "executing"
    REPAIRING = "repairing"
    RENDERED = "rendered"
    FAULTED = "faulted"


class ScriptRuntime(Protocol):
    """An isolated context able to run one sandbox document.

    Methods raise `PreviewFault` subclasses: `transpile` raises
    `TranspileFault`, `evaluate` raises `UnresolvedSymbolFault` or
    `ExecutionFault`, `mount` raises `RenderFault`.
    """

    async def load(
        self,
        document: SandboxDocument,
        *,
        generation: int,
        on_event: Callable[[dict[str, Any]], None],
    ) -> None: ...

    async def transpile(self) -> None: ...

    async def evaluate(self) -> None: ...

    async def define(self, code: str) -> None: ...

    async def resolve_component(self, name: str) -> str | None: ...

    async def mount(self) -> None: ...

    async def set_frame(self, frame: int) -> None: ...

    async def show_error(self, text: str) -> None: ...

    async def close(self) -> None: ...


@dataclass
class HarnessResult:
    state: HarnessState
    generation: int
    auto_mocked: list[str] = field(default_factory=list)
    component: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is HarnessState.RENDERED


class ExecutionHarness:
    def __init__(
        self,
        runtime: ScriptRuntime,
        *,
        generation: int,
        publish: Callable[[ProtocolEvent], None],
        on_page_event: Callable[[dict[str, Any]], None] | None = None,
        max_repairs: int | None = None,
    ) -> None:
        self._runtime = runtime
        self._generation = generation
        self._publish = publish
        self._on_page_event = on_page_event or (lambda _payload: None)
        self._max_repairs = config.max_repairs() if max_repairs is None else max(0, max_repairs)
        self._state = HarnessState.LOADING
        self.history: list[HarnessState] = [HarnessState.LOADING]

    @property
    def state(self) -> HarnessState:
        return self._state

    def _enter(self, state: HarnessState) -> None:
        self._state = state
        self.history.append(state)

    async def _fault(
        self,
        exc: PreviewFault,
        *,
        auto_mocked: list[str],
        render_in_page: bool = True,
    ) -> HarnessResult:
        text = exc.display()
        self._enter(HarnessState.FAULTED)
        logger.info("Preview build %s faulted: %s", self._generation, text)
        if render_in_page:
            try:
                await self._runtime.show_error(text)
            except Exception:
                logger.debug("Could not render error surface", exc_info=True)
        self._publish(ProtocolEvent.error(text, self._generation))
        return HarnessResult(
            state=HarnessState.FAULTED,
            generation=self._generation,
            auto_mocked=auto_mocked,
            error=text,
        )

    async def run(self, document: SandboxDocument) -> HarnessResult:
        auto_mocked: list[str] = []
        try:
            await self._runtime.load(
                document, generation=self._generation, on_event=self._on_page_event
            )
        except PreviewFault as exc:
            return await self._fault(exc, auto_mocked=auto_mocked, render_in_page=False)

        self._enter(HarnessState.TRANSPILING)
        try:
            await self._runtime.transpile()
        except TranspileFault as exc:
            return await self._fault(exc, auto_mocked=auto_mocked)

        while True:
            self._enter(HarnessState.EXECUTING)
            try:
                await self._runtime.evaluate()
                break
            except UnresolvedSymbolFault as exc:
                if exc.symbol in auto_mocked or len(auto_mocked) >= self._max_repairs:
                    return await self._fault(exc, auto_mocked=auto_mocked)
                self._enter(HarnessState.REPAIRING)
                auto_mocked.append(exc.symbol)
                logger.debug("Standing in for unresolved symbol %s", exc.symbol)
                try:
                    await self._runtime.define(adhoc_stand_in(exc.symbol))
                except PreviewFault as define_exc:
                    return await self._fault(define_exc, auto_mocked=auto_mocked)
            except PreviewFault as exc:
                return await self._fault(exc, auto_mocked=auto_mocked)

        if auto_mocked:
            self._publish(ProtocolEvent.warning(auto_mocked, self._generation))

        try:
            component = await self._runtime.resolve_component(document.component_name)
        except PreviewFault as exc:
            return await self._fault(exc, auto_mocked=auto_mocked, render_in_page=False)
        if component is None:
            return await self._fault(RenderFault(NO_COMPONENT_MESSAGE), auto_mocked=auto_mocked)

        try:
            await self._runtime.mount()
        except PreviewFault as exc:
            # The fault boundary has already replaced the page content.
            return await self._fault(exc, auto_mocked=auto_mocked, render_in_page=False)

        self._enter(HarnessState.RENDERED)
        self._publish(ProtocolEvent.success(self._generation))
        logger.info(
            "Preview build %s rendered component=%s auto_mocked=%d",
            self._generation,
            component,
            len(auto_mocked),
        )
        return HarnessResult(
            state=HarnessState.RENDERED,
            generation=self._generation,
            auto_mocked=auto_mocked,
            component=component,
        )


class AnimationClock:
    """Synthetic frame counter owned by one sandbox instance.

    Every tick advances the frame (wrapping at `wrap_frames`) and pushes it
    into the sandbox through `push`.
    """

    def __init__(
        self,
        push: Callable[[int], Awaitable[None]],
        *,
        interval_s: float | None = None,
        wrap_frames: int | None = None,
    ) -> None:
        self._push = push
        self.interval_s = config.clock_interval_s() if interval_s is None else interval_s
        self.wrap_frames = config.clock_wrap_frames() if wrap_frames is None else max(1, wrap_frames)
        self._frame = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def frame(self) -> int:
        return self._frame

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def advance(self) -> int:
        self._frame = (self._frame + 1) % self.wrap_frames
        return self._frame

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            frame = self.advance()
            try:
                await self._push(frame)
            except Exception:
                logger.debug("Animation clock stopped: sandbox went away", exc_info=True)
                return

    def start(self) -> None:
        if self.running:
            return
        self._frame = 0
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

