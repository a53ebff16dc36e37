"""Compile verification: probe a candidate in a throwaway sandbox.

The probe instance is never shown; the controller only observes the first
terminal protocol event it emits (success or error). A probe that reports
nothing within the timeout is treated as a failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.preview import config
from src.preview.document import DEFAULT_COMPONENT_NAME
from src.preview.errors import PreviewFault, ProbeTimeout, SandboxUnavailable
from src.preview.protocol import ProtocolEvent, ProtocolEventType
from src.preview.sandbox import PreviewSandbox, RuntimeFactory

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Compile check timed out — no response from sandbox"


class VerifyStatus(Enum):
    IDLE = "idle"
    PROBING = "probing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class VerifyOutcome:
    status: VerifyStatus
    error: str | None = None
    auto_mocked: tuple[str, ...] = ()
    superseded: bool = False

    @property
    def ok(self) -> bool:
        return self.status is VerifyStatus.SUCCEEDED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "ok": self.ok,
            "error": self.error,
            "auto_mocked": list(self.auto_mocked),
            "superseded": self.superseded,
        }


class CompileVerifier:
    def __init__(
        self,
        runtime_factory: RuntimeFactory,
        *,
        on_verified: Callable[[str], Awaitable[Any]] | None = None,
        on_status: Callable[[VerifyStatus, str | None], None] | None = None,
        on_warning: Callable[[list[str]], None] | None = None,
        component_name: str = DEFAULT_COMPONENT_NAME,
        timeout_s: float | None = None,
        reset_after_s: float | None = None,
    ) -> None:
        self._runtime_factory = runtime_factory
        self._on_verified = on_verified
        self._on_status = on_status
        self._on_warning = on_warning
        self._component_name = component_name
        self.timeout_s = config.probe_timeout_s() if timeout_s is None else timeout_s
        self.reset_after_s = config.verify_reset_s() if reset_after_s is None else reset_after_s

        self.status = VerifyStatus.IDLE
        self.error: str | None = None
        self._probe_task: asyncio.Task[VerifyOutcome] | None = None
        self._reset_task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._probe_task is not None and not self._probe_task.done()

    def _set_status(self, status: VerifyStatus, error: str | None = None) -> None:
        self.status = status
        self.error = error
        if self._on_status is not None:
            try:
                self._on_status(status, error)
            except Exception:
                logger.exception("Verify status callback failed")

    async def _run_probe(
        self, sandbox: PreviewSandbox, code: str, props: dict[str, str] | None
    ) -> ProtocolEvent:
        loop = asyncio.get_running_loop()
        first: asyncio.Future[ProtocolEvent] = loop.create_future()

        def _observe(event: ProtocolEvent) -> None:
            if event.type is ProtocolEventType.WARNING:
                if self._on_warning is not None:
                    self._on_warning(list(event.auto_mocked))
                return
            if not first.done():
                first.set_result(event)

        sandbox.listener.subscribe(_observe)
        await sandbox.rebuild(code, props=props)
        return await first

    async def _probe(self, code: str, props: dict[str, str] | None) -> VerifyOutcome:
        sandbox = PreviewSandbox(
            self._runtime_factory, component_name=self._component_name, animate=False
        )
        try:
            event = await asyncio.wait_for(
                self._run_probe(sandbox, code, props), timeout=self.timeout_s
            )
            auto_mocked = sandbox.listener.state.auto_mocked
        except TimeoutError:
            fault = ProbeTimeout(TIMEOUT_MESSAGE)
            logger.warning("Compile probe timed out after %.1fs", self.timeout_s)
            return VerifyOutcome(status=VerifyStatus.TIMED_OUT, error=fault.display())
        except PreviewFault as exc:
            logger.warning("Compile probe failed outside the harness: %s", exc)
            return VerifyOutcome(status=VerifyStatus.FAILED, error=exc.display())
        except Exception as exc:
            logger.exception("Compile probe crashed")
            fault = SandboxUnavailable(str(exc) or exc.__class__.__name__)
            return VerifyOutcome(status=VerifyStatus.FAILED, error=fault.display())
        finally:
            await sandbox.close()

        if event.type is ProtocolEventType.SUCCESS:
            return VerifyOutcome(status=VerifyStatus.SUCCEEDED, auto_mocked=tuple(auto_mocked))
        return VerifyOutcome(
            status=VerifyStatus.FAILED,
            error=event.message or "Unknown error",
            auto_mocked=tuple(auto_mocked),
        )

    async def _reset_later(self) -> None:
        await asyncio.sleep(self.reset_after_s)
        if self.status is VerifyStatus.SUCCEEDED:
            self._set_status(VerifyStatus.IDLE)

    async def _cancel_tasks(self) -> None:
        for attr in ("_probe_task", "_reset_task"):
            task = getattr(self, attr)
            setattr(self, attr, None)
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def cancel(self) -> None:
        """Tear down any pending probe and the success reset timer."""
        await self._cancel_tasks()
        if self.status is VerifyStatus.PROBING:
            self._set_status(VerifyStatus.IDLE)

    async def verify(self, code: str, *, props: dict[str, str] | None = None) -> VerifyOutcome:
        await self._cancel_tasks()
        self._set_status(VerifyStatus.PROBING)
        task = asyncio.create_task(self._probe(code, props))
        self._probe_task = task
        try:
            outcome = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                if self._probe_task is task:
                    self._set_status(VerifyStatus.IDLE)
                raise
            # A newer probe (or an explicit cancel) took over.
            return VerifyOutcome(status=VerifyStatus.IDLE, superseded=True)
        finally:
            if self._probe_task is task:
                self._probe_task = None

        if outcome.ok:
            self._set_status(VerifyStatus.SUCCEEDED)
            logger.info("Compile probe succeeded")
            if self._on_verified is not None:
                await self._on_verified(code)
            self._reset_task = asyncio.create_task(self._reset_later())
        else:
            self._set_status(outcome.status, outcome.error)
            logger.info("Compile probe failed: %s", outcome.error)
        return outcome

    async def close(self) -> None:
        await self.cancel()
