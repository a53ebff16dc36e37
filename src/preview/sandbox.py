from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from src.preview.document import DEFAULT_COMPONENT_NAME, SandboxDocument, build_sandbox_document
from src.preview.errors import SandboxUnavailable
from src.preview.harness import (
    AnimationClock,
    ExecutionHarness,
    HarnessResult,
    HarnessState,
    ScriptRuntime,
)
from src.preview.protocol import EventChannel, PreviewListener, ProtocolEvent

logger = logging.getLogger(__name__)

RuntimeFactory = Callable[[], Awaitable[ScriptRuntime]]


class PreviewSandbox:
    """One preview surface: at most one live sandbox instance at a time.

    Every rebuild bumps the generation, tears down the previous instance
    and runs the harness against a fresh runtime. Events reach `listener`
    through a bounded channel; events from older generations are dropped.
    """

    def __init__(
        self,
        runtime_factory: RuntimeFactory,
        *,
        listener: PreviewListener | None = None,
        component_name: str = DEFAULT_COMPONENT_NAME,
        max_repairs: int | None = None,
        animate: bool = True,
        clock_interval_s: float | None = None,
        clock_wrap_frames: int | None = None,
    ) -> None:
        self._runtime_factory = runtime_factory
        self.listener = listener or PreviewListener()
        self.component_name = component_name
        self._max_repairs = max_repairs
        self._animate = animate
        self._clock_interval_s = clock_interval_s
        self._clock_wrap_frames = clock_wrap_frames

        self._channel = EventChannel()
        self._pump: asyncio.Task[None] | None = None
        self._generation = 0
        self._build_lock = asyncio.Lock()
        self._runtime: ScriptRuntime | None = None
        self._clock: AnimationClock | None = None
        self._closed = False

        self.document: SandboxDocument | None = None
        self.last_result: HarnessResult | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def clock(self) -> AnimationClock | None:
        return self._clock

    @property
    def runtime(self) -> ScriptRuntime | None:
        return self._runtime

    def _ensure_pump(self) -> None:
        if self._pump is None or self._pump.done():
            self._pump = asyncio.create_task(self.listener.run(self._channel))

    def _on_page_event(self, payload: dict[str, Any]) -> None:
        event = ProtocolEvent.from_dict(payload)
        if event is None:
            logger.debug("Ignoring unrecognized sandbox message: %r", payload)
            return
        self._channel.publish(event)

    async def _teardown_instance(self) -> None:
        clock, self._clock = self._clock, None
        if clock is not None:
            await clock.stop()
        runtime, self._runtime = self._runtime, None
        if runtime is not None:
            try:
                await runtime.close()
            except Exception:
                logger.debug("Failed to close sandbox runtime", exc_info=True)

    def invalidate(self) -> None:
        """Mark the current instance stale; its pending events are dropped."""
        self._generation += 1
        self.listener.begin_generation(self._generation)

    async def rebuild(
        self, source: str, *, props: dict[str, str] | None = None
    ) -> HarnessResult | None:
        """Build and run a new sandbox instance for `source`.

        Returns None when a newer rebuild superseded this one before it
        started.
        """
        if self._closed:
            raise RuntimeError("preview sandbox is closed")
        self._ensure_pump()
        self._generation += 1
        gen = self._generation
        self.listener.begin_generation(gen)

        async with self._build_lock:
            if gen != self._generation:
                return None
            await self._teardown_instance()
            document = build_sandbox_document(source, self.component_name, props)
            self.document = document

            try:
                runtime = await self._runtime_factory()
            except Exception as exc:
                logger.exception("Could not start sandbox runtime")
                fault = SandboxUnavailable(str(exc) or exc.__class__.__name__)
                self._channel.publish(ProtocolEvent.error(fault.display(), gen))
                self.last_result = HarnessResult(
                    state=HarnessState.FAULTED, generation=gen, error=fault.display()
                )
                return self.last_result
            self._runtime = runtime

            harness = ExecutionHarness(
                runtime,
                generation=gen,
                publish=self._channel.publish,
                on_page_event=self._on_page_event,
                max_repairs=self._max_repairs,
            )
            result = await harness.run(document)
            if result.ok and self._animate:
                self._clock = AnimationClock(
                    runtime.set_frame,
                    interval_s=self._clock_interval_s,
                    wrap_frames=self._clock_wrap_frames,
                )
                self._clock.start()
            self.last_result = result
            return result

    async def settle(self) -> None:
        """Wait until every published event has been dispatched."""
        if self._closed:
            return
        self._ensure_pump()
        await self._channel.join()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Invalidate anything still in flight.
        self._generation += 1
        self.listener.begin_generation(self._generation)
        await self._teardown_instance()
        self._channel.close()
        pump, self._pump = self._pump, None
        if pump is not None:
            try:
                await pump
            except Exception:
                logger.debug("Preview event pump ended with an error", exc_info=True)
