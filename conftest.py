import pytest

from relay.services.avatar import AvatarProvider
from relay.services.message_log import MessageLog
from relay.services.session import SessionController
from relay.services.ws_manager import ConnectionManager

AVATAR = "https://example.com/avatar.png"


class FakeSocketServer:
    """Records emissions instead of writing to sockets."""

    def __init__(self):
        self.handlers = {}
        self.sent = []  # (sid, event, payload)
        self.broken = set()

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def emit(self, event, data=None, to=None, **kwargs):
        if to in self.broken:
            raise ConnectionError(f"{to} is gone")
        self.sent.append((to, event, data))

    def received(self, sid, event=None):
        return [
            payload
            for to, name, payload in self.sent
            if to == sid and (event is None or name == event)
        ]

    def count(self, event):
        return len([1 for _, name, _ in self.sent if name == event])


@pytest.fixture()
def sio():
    return FakeSocketServer()


@pytest.fixture()
def channel(sio):
    return ConnectionManager(sio)


@pytest.fixture()
def controller(channel):
    async def fixed_avatar():
        return AVATAR

    session = SessionController(
        channel, history=MessageLog(), avatars=AvatarProvider(source=fixed_avatar)
    )
    session.start()
    return session
