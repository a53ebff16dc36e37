from __future__ import annotations

import asyncio

from src.preview.protocol import (
    EventChannel,
    PreviewListener,
    ProtocolEvent,
    ProtocolEventType,
)


def test_event_wire_shapes():
    assert ProtocolEvent.success(2).to_dict() == {"type": "preview-success", "generation": 2}
    assert ProtocolEvent.error("boom", 2).to_dict() == {
        "type": "preview-error",
        "generation": 2,
        "error": "boom",
    }
    assert ProtocolEvent.warning(["A", "b"], 1).to_dict()["autoMocked"] == ["A", "b"]


def test_from_dict_rejects_unknown_payloads():
    assert ProtocolEvent.from_dict("preview-success") is None
    assert ProtocolEvent.from_dict({"type": "preview-rendered"}) is None
    assert ProtocolEvent.from_dict({}) is None


def test_from_dict_fills_defaults():
    ev = ProtocolEvent.from_dict({"type": "preview-error"})
    assert ev is not None
    assert ev.message == "Unknown error"
    assert ev.generation == 0

    warn = ProtocolEvent.from_dict({"type": "preview-warning", "autoMocked": "Badge", "generation": 4})
    assert warn is not None
    assert warn.auto_mocked == ()
    assert warn.generation == 4


def test_listener_success_clears_error_but_error_keeps_warnings():
    listener = PreviewListener()
    listener.begin_generation(1)
    assert listener.apply(ProtocolEvent.warning(["Badge"], 1))
    assert listener.apply(ProtocolEvent.error("Runtime: x is not defined", 1))
    assert listener.state.error == "Runtime: x is not defined"
    assert listener.state.auto_mocked == ["Badge"]

    assert listener.apply(ProtocolEvent.success(1))
    assert listener.state.error is None
    assert listener.state.rendered is True


def test_listener_drops_stale_generations():
    listener = PreviewListener()
    listener.begin_generation(1)
    listener.begin_generation(2)
    assert listener.apply(ProtocolEvent.error("old", 1)) is False
    assert listener.state.error is None


def test_new_generation_resets_warnings():
    listener = PreviewListener()
    listener.begin_generation(1)
    listener.apply(ProtocolEvent.warning(["Badge"], 1))
    listener.begin_generation(2)
    assert listener.state.auto_mocked == []
    assert listener.state.rendered is False


def test_channel_drops_oldest_when_full():
    async def _main() -> list[ProtocolEvent | None]:
        channel = EventChannel(maxsize=2)
        channel.publish(ProtocolEvent.error("first", 1))
        channel.publish(ProtocolEvent.error("second", 1))
        channel.publish(ProtocolEvent.error("third", 1))
        out = [await channel.get(), await channel.get()]
        channel.close()
        out.append(await channel.get())
        return out

    first, second, closed = asyncio.run(_main())
    assert first is not None and first.message == "second"
    assert second is not None and second.message == "third"
    assert closed is None


def test_publish_after_close_is_ignored():
    async def _main() -> None:
        channel = EventChannel(maxsize=4)
        channel.close()
        channel.publish(ProtocolEvent.success(1))
        assert await channel.get() is None

    asyncio.run(_main())


def test_run_dispatches_in_order_and_survives_bad_subscribers():
    seen: list[ProtocolEventType] = []

    async def _record(event: ProtocolEvent) -> None:
        seen.append(event.type)

    def _broken(event: ProtocolEvent) -> None:
        raise ValueError("subscriber bug")

    async def _main() -> None:
        listener = PreviewListener()
        listener.subscribe(_broken)
        unsubscribe = listener.subscribe(_record)
        listener.begin_generation(1)
        channel = EventChannel(maxsize=8)
        pump = asyncio.create_task(listener.run(channel))
        channel.publish(ProtocolEvent.warning(["Badge"], 1))
        channel.publish(ProtocolEvent.success(1))
        await channel.join()
        unsubscribe()
        channel.publish(ProtocolEvent.error("late", 1))
        channel.close()
        await pump

    asyncio.run(_main())
    assert seen == [ProtocolEventType.WARNING, ProtocolEventType.SUCCESS]
