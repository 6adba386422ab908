"""Tests for connection tracking and fan-out."""

import asyncio


def test_connection_tracking(channel):
    channel.connect("c1")
    channel.connect("c2")
    channel.disconnect("c1")
    channel.disconnect("c1")

    assert channel.get_all_connections() == ["c2"]
    assert channel.is_connected("c2")
    assert not channel.is_connected("c1")


def test_broadcast_isolates_failing_recipient(sio, channel):
    for sid in ("c1", "c2", "c3"):
        channel.connect(sid)
    sio.broken.add("c2")

    delivered = asyncio.run(channel.broadcast_all("users", []))

    assert delivered == 2
    assert sio.received("c1", "users") == [[]]
    assert sio.received("c3", "users") == [[]]


def test_broadcast_except_skips_sender(sio, channel):
    for sid in ("c1", "c2", "c3"):
        channel.connect(sid)

    delivered = asyncio.run(channel.broadcast_except("c1", "join", "hello"))

    assert delivered == 2
    assert sio.received("c1") == []
    assert sio.received("c2") == ["hello"]


def test_emit_to_unknown_identity_is_dropped(sio, channel):
    channel.connect("c1")

    assert asyncio.run(channel.emit_to("c9", "privateMessage", "psst")) is False
    assert asyncio.run(channel.emit_to("c1", "privateMessage", "psst")) is True
    assert sio.sent == [("c1", "privateMessage", "psst")]


def test_emit_failure_is_reported(sio, channel):
    channel.connect("c1")
    sio.broken.add("c1")

    assert asyncio.run(channel.emit("c1", "user", {})) is False


def test_on_event_registers_handler(sio, channel):
    async def handler(sid, data):
        pass

    channel.on_event("join", handler)
    assert sio.handlers["join"] is handler
