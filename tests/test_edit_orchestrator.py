from __future__ import annotations

import asyncio

from src.editing.errors import EditServiceError
from src.editing.orchestrator import (
    CANCELLED_NOTE,
    PREVIEW_OK_NOTE,
    SAVED_NOTE,
    VALIDATION_WARNING,
    EditOrchestrator,
)
from src.editing.types import (
    CodeUpdateEvent,
    DeltaEvent,
    DoneEvent,
    EditSession,
    ErrorEvent,
    StatusEvent,
    ToolCallEvent,
    ValidationEvent,
)
from src.preview.protocol import PreviewListener, ProtocolEvent
from src.runtime_autoheal import AutoFixConfig
from src.runtime_error_feedback import AUTO_FIX_NOTICE


class _ScriptedSource:
    def __init__(self, *turns: list) -> None:
        self.turns = list(turns)
        self.calls: list[dict] = []

    async def stream_edit(self, *, code, instruction, history=(), scene_id=None):
        self.calls.append(
            {
                "code": code,
                "instruction": instruction,
                "history": [m.content for m in history],
                "scene_id": scene_id,
            }
        )
        events = self.turns.pop(0) if self.turns else []
        for ev in events:
            if isinstance(ev, asyncio.Event):
                await ev.wait()
                continue
            if isinstance(ev, Exception):
                raise ev
            yield ev


class _Preview:
    """Stands in for the visible sandbox: each rebuild reports one outcome."""

    def __init__(self, failing: set[str]) -> None:
        self.failing = failing
        self.built: list[str] = []
        self.orchestrator: EditOrchestrator | None = None

    async def __call__(self, code: str) -> None:
        self.built.append(code)
        assert self.orchestrator is not None
        if code in self.failing:
            await self.orchestrator.on_preview_event(
                ProtocolEvent.error("Runtime: widget is not defined")
            )
        else:
            await self.orchestrator.on_preview_event(ProtocolEvent.success())


def _make(source, *, failing=(), autofix=None, save=True, history_limit=20):
    session = EditSession(component_id="c1", live_code="v1", persisted_code="v1", scene_id="s1")
    preview = _Preview(set(failing))
    saved: list[str] = []

    async def _save(code: str) -> None:
        saved.append(code)

    orch = EditOrchestrator(
        session,
        source=source,
        rebuild=preview,
        save=_save if save else None,
        autofix=autofix or AutoFixConfig(enabled=True, max_attempts=2),
        history_limit=history_limit,
    )
    preview.orchestrator = orch
    return orch, session, preview, saved


def test_commit_rebuilds_saves_and_notes_preview_ok():
    source = _ScriptedSource(
        [
            ToolCallEvent(tool="edit_code"),
            StatusEvent(message="Reading component"),
            DoneEvent(code="v2", explanation="Made it blue", validated=True),
        ]
    )
    orch, session, preview, saved = _make(source)

    async def _main() -> None:
        result = await orch.submit("make it blue")
        assert result is not None and result.committed
        await orch.wait_idle()

    asyncio.run(_main())
    assert preview.built == ["v2"]
    assert saved == ["v2"]
    assert session.live_code == "v2"
    assert session.dirty is False
    assert session.autofix_count == 0
    assert session.autofix_armed is False
    assert [m.role for m in session.chat_history] == ["user", "assistant"]
    reply = session.chat_history[-1].content
    assert "[Agent] Using edit_code..." in reply
    assert "[Agent] Reading component" in reply
    assert "Made it blue" in reply
    assert SAVED_NOTE in reply
    assert reply.endswith(PREVIEW_OK_NOTE)
    assert source.calls[0]["scene_id"] == "s1"
    assert source.calls[0]["code"] == "v1"


def test_failing_preview_sends_exactly_one_fix_per_failure_up_to_budget():
    source = _ScriptedSource(
        [DoneEvent(code="v2")],
        [DoneEvent(code="v3")],
        [DoneEvent(code="v4")],
        [DoneEvent(code="v5")],
    )
    orch, session, preview, _ = _make(source, failing={"v2", "v3", "v4", "v5"})

    async def _main() -> None:
        await orch.submit("add a widget")
        await orch.wait_idle()

    asyncio.run(_main())
    assert len(source.calls) == 3
    assert preview.built == ["v2", "v3", "v4"]
    assert session.autofix_count == 2
    assert session.autofix_armed is False
    assert session.preview_error == "Runtime: widget is not defined"
    notices = [m for m in session.chat_history if m.content == AUTO_FIX_NOTICE]
    assert len(notices) == 2
    fix_prompt = source.calls[1]["instruction"]
    assert fix_prompt.startswith("The code you just produced has a RUNTIME ERROR")
    assert "`widget` is not available" in fix_prompt
    assert source.calls[1]["code"] == "v2"


def test_successful_fix_resets_the_counter():
    source = _ScriptedSource([DoneEvent(code="v2")], [DoneEvent(code="v3")])
    orch, session, preview, _ = _make(source, failing={"v2"})

    async def _main() -> None:
        await orch.submit("add a widget")
        await orch.wait_idle()

    asyncio.run(_main())
    assert len(source.calls) == 2
    assert preview.built == ["v2", "v3"]
    assert session.autofix_count == 0
    assert session.preview_error is None
    assert session.chat_history[-1].content.endswith(PREVIEW_OK_NOTE)


def test_disabled_autofix_leaves_error_visible():
    source = _ScriptedSource([DoneEvent(code="v2")], [DoneEvent(code="v3")])
    orch, session, _, _ = _make(
        source, failing={"v2"}, autofix=AutoFixConfig(enabled=False, max_attempts=2)
    )

    async def _main() -> None:
        await orch.submit("add a widget")
        await orch.wait_idle()

    asyncio.run(_main())
    assert len(source.calls) == 1
    assert session.preview_error == "Runtime: widget is not defined"


def test_live_code_updates_rebuild_without_arming_autofix():
    source = _ScriptedSource([CodeUpdateEvent(code="draft"), ErrorEvent(message="model overloaded")])
    orch, session, preview, saved = _make(source, failing={"draft"})

    async def _main() -> None:
        result = await orch.submit("try something")
        assert result is not None
        assert result.committed is False
        assert result.error == "model overloaded"
        await orch.wait_idle()

    asyncio.run(_main())
    assert preview.built == ["draft"]
    assert saved == []
    assert len(source.calls) == 1
    assert session.live_code == "draft"
    assert session.dirty is True
    assert "[Error] model overloaded" in session.chat_history[-1].content


def test_stream_fault_is_reported_in_the_reply():
    source = _ScriptedSource([DeltaEvent(content="Thinking"), EditServiceError("edit service error 500")])
    orch, session, _, _ = _make(source)

    async def _main() -> None:
        result = await orch.submit("x")
        assert result is not None and result.error == "edit service error 500"

    asyncio.run(_main())
    assert session.chat_history[-1].content == "Failed: edit service error 500"
    assert session.streaming is False


def test_validation_failure_adds_warning():
    source = _ScriptedSource(
        [ValidationEvent(valid=False, error="bad jsx"), DoneEvent(code="v2", validated=False)]
    )
    orch, session, _, _ = _make(source)

    async def _main() -> None:
        await orch.submit("x")
        await orch.wait_idle()

    asyncio.run(_main())
    reply = session.chat_history[-1].content
    assert "[Agent] Validation error: bad jsx" in reply
    assert "Changes applied." in reply
    assert VALIDATION_WARNING in reply


def test_done_without_code_does_not_commit():
    source = _ScriptedSource([DoneEvent(code=None, explanation="Nothing to change.")])
    orch, session, preview, _ = _make(source)

    async def _main() -> None:
        result = await orch.submit("x")
        assert result is not None and not result.committed

    asyncio.run(_main())
    assert preview.built == []
    assert session.chat_history[-1].content == "Nothing to change."


def test_new_instruction_cancels_the_turn_in_flight():
    gate = asyncio.Event()
    source = _ScriptedSource([gate, DoneEvent(code="stale")], [DoneEvent(code="v3")])
    orch, session, preview, _ = _make(source)

    async def _main() -> None:
        first = asyncio.create_task(orch.submit("one"))
        while not source.calls:
            await asyncio.sleep(0)
        second = await orch.submit("two")
        r1 = await first
        assert r1 is not None and r1.superseded
        assert second is not None and second.committed
        await orch.wait_idle()

    asyncio.run(_main())
    assert preview.built == ["v3"]
    assert session.live_code == "v3"
    first_reply = session.chat_history[1]
    assert first_reply.role == "assistant"
    assert CANCELLED_NOTE in first_reply.content


def test_fix_with_ai_uses_shown_error():
    source = _ScriptedSource([DoneEvent(code="v2")])
    orch, session, _, _ = _make(source)

    async def _main() -> None:
        assert await orch.fix_with_ai() is None
        session.preview_error = "Runtime: boom"
        await orch.fix_with_ai()
        await orch.wait_idle()

    asyncio.run(_main())
    assert source.calls[0]["instruction"].startswith("Fix this runtime error:\nRuntime: boom")
    assert session.chat_history[0].role == "user"


def test_history_is_capped_and_excludes_current_instruction():
    source = _ScriptedSource([DoneEvent(code="v2")], [DoneEvent(code="v3")])
    orch, _, _, _ = _make(source, history_limit=1)

    async def _main() -> None:
        await orch.submit("first")
        await orch.wait_idle()
        await orch.submit("second")
        await orch.wait_idle()

    asyncio.run(_main())
    assert source.calls[0]["history"] == []
    assert len(source.calls[1]["history"]) == 1
    assert "Changes applied." in source.calls[1]["history"][0]


def test_blank_instruction_is_ignored():
    source = _ScriptedSource()
    orch, _, _, _ = _make(source)
    assert asyncio.run(orch.submit("   ")) is None
    assert source.calls == []


def test_commit_ignores_outcomes_of_the_replaced_preview():
    source = _ScriptedSource([DoneEvent(code="v2")])
    session = EditSession(component_id="c1", live_code="v1", persisted_code="v1")
    listener = PreviewListener()
    listener.begin_generation(1)
    built: list[str] = []

    def _invalidate() -> None:
        listener.begin_generation(listener.generation + 1)

    async def _rebuild(code: str) -> None:
        built.append(code)

    orch = EditOrchestrator(
        session,
        source=source,
        rebuild=_rebuild,
        invalidate=_invalidate,
        autofix=AutoFixConfig(enabled=True, max_attempts=2),
    )
    listener.subscribe(orch.on_preview_event)

    async def _main() -> None:
        result = await orch.submit("make it blue")
        assert result is not None and result.committed
        stale = ProtocolEvent.error("Runtime: draft is not defined", generation=1)
        assert await listener.dispatch(stale) is False
        await orch.wait_idle()

    asyncio.run(_main())
    assert built == ["v2"]
    assert listener.generation == 2
    assert session.autofix_armed is True
    assert session.autofix_count == 0
    assert session.preview_error is None
    assert len(source.calls) == 1
