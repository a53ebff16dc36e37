"""AI-assisted edit loop.

One turn = one instruction sent to the edit service plus the handling of
its streamed events. The sandbox is the oracle: after a commit the next
preview outcome decides whether an automatic follow-up fix is sent.

Overlapping instructions follow cancel-and-restart: a new explicit
instruction cancels the turn in flight. Automatic fixes instead wait for
the turn that armed them to finish.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, Protocol

from src.editing import config
from src.editing.errors import StreamFault
from src.editing.types import (
    ChatMessage,
    CodeUpdateEvent,
    DeltaEvent,
    DoneEvent,
    EditSession,
    ErrorEvent,
    StatusEvent,
    StreamEvent,
    ToolCallEvent,
    ValidationEvent,
)
from src.preview.protocol import ProtocolEvent, ProtocolEventType
from src.runtime_autoheal import AutoFixConfig, apply_auto_fix_decision, decide_auto_fix
from src.runtime_error_feedback import (
    AUTO_FIX_NOTICE,
    build_manual_fix_prompt,
    build_runtime_error_feedback_prompt,
)

logger = logging.getLogger(__name__)

PREVIEW_OK_NOTE = "✓ Preview OK — component renders successfully."
DEFAULT_EXPLANATION = "Changes applied."
VALIDATION_WARNING = "⚠️ Validation issue detected — check preview for runtime errors."
SAVED_NOTE = "✅ Saved & recompiling preview..."
CANCELLED_NOTE = "[Agent] Cancelled: a newer instruction took over."


class EditStreamSource(Protocol):
    def stream_edit(
        self,
        *,
        code: str,
        instruction: str,
        history: Sequence[ChatMessage] = (),
        scene_id: str | None = None,
    ) -> AsyncIterator[StreamEvent]: ...


@dataclass(frozen=True)
class TurnResult:
    committed: bool
    code: str | None = None
    error: str | None = None
    superseded: bool = False


def _append_line(msg: ChatMessage, line: str) -> None:
    msg.content = line if not msg.content else f"{msg.content}\n{line}"


def _append_block(msg: ChatMessage, block: str) -> None:
    msg.content = block if not msg.content else f"{msg.content}\n\n{block}"


class EditOrchestrator:
    def __init__(
        self,
        session: EditSession,
        *,
        source: EditStreamSource,
        rebuild: Callable[[str], Awaitable[Any]],
        save: Callable[[str], Awaitable[None]] | None = None,
        invalidate: Callable[[], None] | None = None,
        autofix: AutoFixConfig | None = None,
        history_limit: int | None = None,
    ) -> None:
        self.session = session
        self._source = source
        self._rebuild = rebuild
        self._save = save
        self._invalidate = invalidate
        self._autofix = autofix or AutoFixConfig.from_env()
        self._history_limit = config.history_max_messages() if history_limit is None else history_limit

        self._turn_task: asyncio.Task[TurnResult] | None = None
        self._autofix_task: asyncio.Task[Any] | None = None
        self._rebuild_tasks: set[asyncio.Task[Any]] = set()

    # ---- rebuilds ---------------------------------------------------------

    def _spawn_rebuild(self, code: str) -> None:
        # Outcomes of the instance being replaced must not reach the auto-fix
        # watch once the new code is committed.
        if self._invalidate is not None:
            self._invalidate()
        task = asyncio.create_task(self._rebuild(code))
        self._rebuild_tasks.add(task)
        task.add_done_callback(self._rebuild_finished)

    def _rebuild_finished(self, task: asyncio.Task[Any]) -> None:
        self._rebuild_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Preview rebuild failed", exc_info=exc)

    # ---- turns ------------------------------------------------------------

    async def _cancel_task(self, task: asyncio.Task[Any] | None) -> None:
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.debug("Cancelled task ended with an error", exc_info=True)

    async def _start_turn(self, instruction: str, *, display: str | None) -> TurnResult:
        await self._cancel_task(self._turn_task)
        task = asyncio.create_task(self._run_turn(instruction, display=display))
        self._turn_task = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return TurnResult(committed=False, superseded=True)
        finally:
            if self._turn_task is task:
                self._turn_task = None

    def _history(self) -> list[ChatMessage]:
        if self._history_limit <= 0:
            return []
        return list(self.session.chat_history[-self._history_limit :])

    async def _run_turn(self, instruction: str, *, display: str | None) -> TurnResult:
        s = self.session
        history = self._history()
        if display is not None:
            s.chat_history.append(ChatMessage(role="user", content=display))
        assistant = ChatMessage(role="assistant", content="")
        s.chat_history.append(assistant)
        s.streaming = True
        logger.info("Edit turn started for component %s", s.component_id)

        try:
            stream = self._source.stream_edit(
                code=s.live_code, instruction=instruction, history=history, scene_id=s.scene_id
            )
            async with aclosing(stream):
                async for event in stream:
                    result = await self._handle(event, assistant)
                    if result is not None:
                        return result
            return TurnResult(committed=False)
        except StreamFault as exc:
            logger.warning("Edit stream failed: %s", exc)
            assistant.content = f"Failed: {exc}"
            return TurnResult(committed=False, error=str(exc))
        except asyncio.CancelledError:
            _append_line(assistant, CANCELLED_NOTE)
            raise
        finally:
            s.streaming = False

    async def _handle(self, event: StreamEvent, assistant: ChatMessage) -> TurnResult | None:
        s = self.session
        if isinstance(event, ToolCallEvent):
            _append_line(assistant, f"[Agent] {event.message or f'Using {event.tool}...'}")
        elif isinstance(event, StatusEvent):
            _append_line(assistant, f"[Agent] {event.message or 'Working...'}")
        elif isinstance(event, ValidationEvent):
            if event.valid:
                _append_line(assistant, "[Agent] Validation passed.")
            else:
                _append_line(assistant, f"[Agent] Validation error: {event.error or 'unknown'}")
        elif isinstance(event, DeltaEvent):
            assistant.content += event.content
        elif isinstance(event, CodeUpdateEvent):
            if event.code:
                s.live_code = event.code
                s.dirty = s.live_code != s.persisted_code
                self._spawn_rebuild(event.code)
        elif isinstance(event, ErrorEvent):
            _append_line(assistant, f"[Error] {event.message}")
            return TurnResult(committed=False, error=event.message)
        elif isinstance(event, DoneEvent):
            return await self._commit(event, assistant)
        return None

    async def _commit(self, event: DoneEvent, assistant: ChatMessage) -> TurnResult:
        s = self.session
        if not event.code:
            if event.explanation:
                _append_block(assistant, event.explanation)
            return TurnResult(committed=False)

        code = event.code
        s.live_code = code
        s.preview_error = None
        s.auto_mocked = []
        s.autofix_armed = True
        self._spawn_rebuild(code)

        explanation = event.explanation or DEFAULT_EXPLANATION
        if event.validated is False:
            explanation += f"\n\n{VALIDATION_WARNING}"
        explanation += f"\n\n{SAVED_NOTE}"
        _append_block(assistant, explanation)

        if self._save is not None:
            try:
                await self._save(code)
                s.persisted_code = code
                s.dirty = False
            except Exception:
                logger.warning("Auto-save after edit failed", exc_info=True)
                s.dirty = True
        else:
            s.dirty = code != s.persisted_code
        logger.info("Edit turn committed for component %s", s.component_id)
        return TurnResult(committed=True, code=code)

    # ---- public entry points ---------------------------------------------

    async def submit(self, instruction: str) -> TurnResult | None:
        """Send an explicit user instruction. Cancels any turn in flight."""
        text = (instruction or "").strip()
        if not text:
            return None
        await self._cancel_task(self._autofix_task)
        self.session.autofix_count = 0
        self.session.autofix_armed = False
        return await self._start_turn(text, display=text)

    async def fix_with_ai(self) -> TurnResult | None:
        """Manual fix action for the fault currently shown."""
        err = self.session.preview_error
        if not err:
            return None
        await self._cancel_task(self._autofix_task)
        self.session.autofix_count = 0
        prompt = build_manual_fix_prompt(error=err)
        return await self._start_turn(prompt, display=prompt)

    async def _run_autofix(self, prompt: str) -> TurnResult:
        running = self._turn_task
        if running is not None and not running.done():
            await asyncio.wait({running})
        return await self._start_turn(prompt, display=None)

    async def on_preview_event(self, event: ProtocolEvent) -> None:
        """Subscriber for the visible preview's protocol events."""
        s = self.session
        if event.type is ProtocolEventType.WARNING:
            s.auto_mocked = list(event.auto_mocked)
            return
        rendered = event.type is ProtocolEventType.SUCCESS
        s.preview_error = None if rendered else (event.message or "Unknown error")

        decision = decide_auto_fix(
            armed=s.autofix_armed,
            attempts=s.autofix_count,
            rendered=rendered,
            cfg=self._autofix,
        )
        if decision.disarm:
            s.autofix_armed = False
        s.autofix_count = apply_auto_fix_decision(attempts=s.autofix_count, decision=decision)

        if decision.reset:
            last = s.last_assistant()
            if last is not None and PREVIEW_OK_NOTE not in last.content:
                _append_block(last, PREVIEW_OK_NOTE)
            return
        if not decision.allowed:
            if decision.reason == "max_attempts":
                logger.info("Auto-fix budget exhausted; leaving the error visible")
            return

        logger.info("Preview failed after edit; sending auto-fix %s", decision.attempts)
        s.chat_history.append(ChatMessage(role="user", content=AUTO_FIX_NOTICE))
        prompt = build_runtime_error_feedback_prompt(
            error=s.preview_error or "", auto_mocked=s.auto_mocked
        )
        self._autofix_task = asyncio.create_task(self._run_autofix(prompt))

    # ---- lifecycle ---------------------------------------------------------

    @property
    def busy(self) -> bool:
        return any(
            t is not None and not t.done()
            for t in (self._turn_task, self._autofix_task, *self._rebuild_tasks)
        )

    async def wait_idle(self) -> None:
        """Wait for the running turn, a scheduled auto-fix and pending rebuilds."""
        while True:
            pending = [
                t
                for t in (self._turn_task, self._autofix_task, *self._rebuild_tasks)
                if t is not None and not t.done()
            ]
            if not pending:
                return
            await asyncio.wait(pending)

    async def close(self) -> None:
        await self._cancel_task(self._autofix_task)
        await self._cancel_task(self._turn_task)
        for task in list(self._rebuild_tasks):
            await self._cancel_task(task)
