from __future__ import annotations

import asyncio

from src.preview.errors import TranspileFault
from src.preview.harness import HarnessState
from src.preview.protocol import ProtocolEvent, ProtocolEventType
from src.preview.sandbox import PreviewSandbox

_GOOD = "export default function GeneratedComponent() { return <div /> }"


class _FakeRuntime:
    def __init__(self, *, gate: asyncio.Event | None = None, transpile_error: str | None = None):
        self.gate = gate
        self.transpile_error = transpile_error
        self.frames: list[int] = []
        self.closed = False
        self.on_event = None

    async def load(self, document, *, generation, on_event):
        self.document = document
        self.on_event = on_event
        if self.gate is not None:
            await self.gate.wait()

    async def transpile(self):
        if self.transpile_error:
            raise TranspileFault(self.transpile_error)

    async def evaluate(self):
        pass

    async def define(self, code):
        pass

    async def resolve_component(self, name):
        return name

    async def mount(self):
        pass

    async def set_frame(self, frame):
        self.frames.append(frame)

    async def show_error(self, text):
        pass

    async def close(self):
        self.closed = True


class _Factory:
    def __init__(self, *runtimes: _FakeRuntime) -> None:
        self.runtimes = list(runtimes)
        self.created: list[_FakeRuntime] = []

    async def __call__(self) -> _FakeRuntime:
        rt = self.runtimes.pop(0) if self.runtimes else _FakeRuntime()
        self.created.append(rt)
        return rt


def test_rebuild_renders_and_listener_sees_success():
    seen: list[ProtocolEvent] = []

    async def _main() -> None:
        sandbox = PreviewSandbox(_Factory(), animate=False)
        sandbox.listener.subscribe(seen.append)
        result = await sandbox.rebuild(_GOOD)
        await sandbox.settle()
        assert result is not None and result.ok
        assert sandbox.listener.state.rendered
        assert sandbox.document is not None
        await sandbox.close()

    asyncio.run(_main())
    assert [e.type for e in seen] == [ProtocolEventType.SUCCESS]
    assert seen[0].generation == 1


def test_rebuild_tears_down_previous_instance():
    async def _main() -> None:
        factory = _Factory()
        sandbox = PreviewSandbox(factory, animate=False)
        await sandbox.rebuild(_GOOD)
        await sandbox.rebuild(_GOOD)
        assert factory.created[0].closed
        assert not factory.created[1].closed
        assert sandbox.generation == 2
        await sandbox.close()
        assert factory.created[1].closed

    asyncio.run(_main())


def test_rapid_rebuilds_coalesce_and_drop_stale_events():
    seen: list[ProtocolEvent] = []

    async def _main() -> None:
        gate = asyncio.Event()
        factory = _Factory(_FakeRuntime(gate=gate))
        sandbox = PreviewSandbox(factory, animate=False)
        sandbox.listener.subscribe(seen.append)

        first = asyncio.create_task(sandbox.rebuild(_GOOD))
        await asyncio.sleep(0)
        second = asyncio.create_task(sandbox.rebuild(_GOOD))
        await asyncio.sleep(0)
        third = asyncio.create_task(sandbox.rebuild(_GOOD))
        await asyncio.sleep(0)
        gate.set()

        r1, r2, r3 = await asyncio.gather(first, second, third)
        await sandbox.settle()
        assert r1 is not None and r1.generation == 1
        assert r2 is None
        assert r3 is not None and r3.generation == 3
        assert len(factory.created) == 2
        await sandbox.close()

    asyncio.run(_main())
    assert [(e.type, e.generation) for e in seen] == [(ProtocolEventType.SUCCESS, 3)]


def test_page_events_flow_through_the_channel():
    seen: list[ProtocolEvent] = []

    async def _main() -> None:
        factory = _Factory()
        sandbox = PreviewSandbox(factory, animate=False)
        sandbox.listener.subscribe(seen.append)
        await sandbox.rebuild(_GOOD)
        on_event = factory.created[0].on_event
        on_event({"type": "preview-error", "error": "Uncaught late", "generation": 1})
        on_event({"type": "something-else"})
        on_event({"type": "preview-error", "error": "old", "generation": 0})
        await sandbox.settle()
        assert sandbox.listener.state.error == "Uncaught late"
        await sandbox.close()

    asyncio.run(_main())
    assert [e.message for e in seen] == [None, "Uncaught late"]


def test_factory_failure_reports_sandbox_error():
    async def _broken():
        raise RuntimeError("browser missing")

    async def _main() -> None:
        sandbox = PreviewSandbox(_broken, animate=False)
        result = await sandbox.rebuild(_GOOD)
        await sandbox.settle()
        assert result is not None
        assert result.state is HarnessState.FAULTED
        assert result.error == "Sandbox: browser missing"
        assert sandbox.listener.state.error == "Sandbox: browser missing"
        await sandbox.close()

    asyncio.run(_main())


def test_clock_runs_only_after_successful_render():
    async def _main() -> None:
        factory = _Factory(_FakeRuntime(transpile_error="bad"), _FakeRuntime())
        sandbox = PreviewSandbox(factory, clock_interval_s=0.001, clock_wrap_frames=150)
        await sandbox.rebuild(_GOOD)
        assert sandbox.clock is None

        await sandbox.rebuild(_GOOD)
        assert sandbox.clock is not None and sandbox.clock.running
        runtime = factory.created[1]
        for _ in range(100):
            if runtime.frames:
                break
            await asyncio.sleep(0.001)
        assert runtime.frames[0] == 1
        await sandbox.close()
        assert sandbox.clock is None

    asyncio.run(_main())


def test_rebuild_after_close_raises():
    async def _main() -> None:
        sandbox = PreviewSandbox(_Factory(), animate=False)
        await sandbox.close()
        await sandbox.settle()
        try:
            await sandbox.rebuild(_GOOD)
        except RuntimeError as e:
            assert "closed" in str(e)
        else:
            raise AssertionError("expected RuntimeError")

    asyncio.run(_main())
