"""
Session Controller – Route chat events to the registry and fan out the results
"""

import asyncio
import enum
import logging
from typing import Any, List, Optional

from relay.logging_config import connection_id_var
from relay.models import (
    DEFAULT_NAME,
    User,
    parse_join,
    parse_message,
    parse_private_message,
    parse_rename,
)
from relay.services.avatar import AvatarProvider
from relay.services.message_log import MessageLog
from relay.services.registry import DuplicateIdentity, UserRegistry
from relay.services.ws_manager import ConnectionManager

logger = logging.getLogger(__name__)

# Event names
JOIN = "join"
USER = "user"
USERS = "users"
MESSAGE = "message"
MESSAGES = "messages"
PRIVATE_MESSAGE = "privateMessage"
RENAME = "rename"

SOMEONE_JOINED = "Someone joined the room"


class ConnectionState(enum.Enum):
    CONNECTED = "connected"
    JOINED = "joined"
    CLOSED = "closed"


class SessionController:
    """Presence and broadcast state machine for a single chat room.

    Every registry mutation runs under ``lock`` together with the snapshot and
    the emissions derived from it, so roster broadcasts reach clients in the
    same order as the mutations that produced them. Connect-time history
    replay and message append+broadcast share the lock too, so a message is
    either replayed to a newcomer or delivered to it live, never both.
    """

    def __init__(
        self,
        channel: ConnectionManager,
        registry: Optional[UserRegistry] = None,
        history: Optional[MessageLog] = None,
        avatars: Optional[AvatarProvider] = None,
    ):
        self.channel = channel
        self.registry = registry if registry is not None else UserRegistry()
        self.history = history
        self.avatars = avatars or AvatarProvider()
        self.lock = asyncio.Lock()
        self.sessions = {}  # sid -> ConnectionState, live connections only
        self.running = False
        self._bound = False

    # ============ Lifecycle ============

    def start(self):
        """Register event handlers on the channel and accept events."""
        if not self._bound:
            self.channel.on_event("connect", self.on_connect)
            self.channel.on_event("disconnect", self.on_disconnect)
            self.channel.on_event(JOIN, self.on_join)
            self.channel.on_event(RENAME, self.on_rename)
            self.channel.on_event(MESSAGE, self.on_message)
            self.channel.on_event(PRIVATE_MESSAGE, self.on_private_message)
            self._bound = True
        self.running = True
        logger.info("Session controller started")

    async def stop(self):
        """Stop accepting events and close every session."""
        self.running = False
        async with self.lock:
            for sid in list(self.sessions):
                self.registry.remove(sid)
                self.channel.disconnect(sid)
            self.sessions.clear()
        logger.info("Session controller stopped")

    def state(self, sid: str) -> ConnectionState:
        return self.sessions.get(sid, ConnectionState.CLOSED)

    def roster(self) -> List[User]:
        return self.registry.snapshot()

    async def _broadcast_roster(self):
        users = [user.to_wire() for user in self.registry.snapshot()]
        await self.channel.broadcast_all(USERS, users)

    # ============ Event handlers ============

    async def on_connect(self, sid: str, environ: Optional[dict] = None, auth: Any = None):
        connection_id_var.set(sid)
        if not self.running:
            return False

        async with self.lock:
            self.channel.connect(sid)
            self.sessions[sid] = ConnectionState.CONNECTED
            logger.info(f"Client {sid} connected")
            await self.channel.broadcast_except(sid, JOIN, SOMEONE_JOINED)
            if self.history is not None:
                replay = [message.to_wire() for message in self.history.all()]
                await self.channel.emit(sid, MESSAGES, replay)

    async def on_join(self, sid: str, *args) -> bool:
        connection_id_var.set(sid)
        if not self.running:
            return False

        request = parse_join(args[0] if args else None)
        if request is None:
            logger.warning(f"Dropping malformed join payload: {args!r}")
            return False
        if self.state(sid) is not ConnectionState.CONNECTED:
            logger.warning(f"Ignoring join from {sid} in state {self.state(sid).value}")
            return False

        name = request.name or DEFAULT_NAME
        # Avatar lookup may be slow; keep it outside the critical section
        avatar = request.avatar or await self.avatars.assign()

        async with self.lock:
            if self.state(sid) is not ConnectionState.CONNECTED:
                logger.info(f"Join from {sid} dropped, connection changed state meanwhile")
                return False
            try:
                user = self.registry.add(sid, name, avatar)
            except DuplicateIdentity as e:
                logger.error(f"Rejecting join: {e}")
                return False
            self.sessions[sid] = ConnectionState.JOINED
            logger.info(f"User '{user.name}' joined as {sid}")

            await self.channel.emit(sid, USER, user.to_wire())
            await self._broadcast_roster()
        return True

    async def on_rename(self, sid: str, *args) -> bool:
        connection_id_var.set(sid)
        if not self.running:
            return False

        request = parse_rename(args[0] if args else None)
        if request is None:
            logger.warning(f"Dropping malformed rename payload: {args!r}")
            return False

        async with self.lock:
            if not self.registry.rename(request.user.id, request.user.name):
                logger.debug(f"Rename target {request.user.id} not found")
                return False
            logger.info(f"User {request.user.id} renamed to '{request.user.name}'")
            await self._broadcast_roster()
        return True

    async def on_message(self, sid: str, *args) -> bool:
        connection_id_var.set(sid)
        if not self.running:
            return False

        message = parse_message(args[0] if args else None)
        if message is None:
            logger.warning(f"Dropping malformed message payload: {args!r}")
            return False

        async with self.lock:
            if self.history is not None:
                self.history.append(message)
            logger.info(f"Message from '{message.sender.name}': {message.content}")
            await self.channel.broadcast_all(MESSAGE, message.to_wire())
        return True

    async def on_private_message(self, sid: str, *args) -> bool:
        connection_id_var.set(sid)
        if not self.running:
            return False

        request = parse_private_message(args)
        if request is None:
            logger.warning(f"Dropping malformed private message payload: {args!r}")
            return False

        delivered = await self.channel.emit_to(
            request.target_identity, PRIVATE_MESSAGE, request.message
        )
        logger.info(
            f"Private message to {request.target_identity} "
            f"{'delivered' if delivered else 'dropped'}"
        )
        return delivered

    async def on_disconnect(self, sid: str, *args) -> bool:
        """Release the connection's registry entry. Safe to call more than once."""
        connection_id_var.set(sid)

        async with self.lock:
            self.sessions.pop(sid, None)
            self.channel.disconnect(sid)
            removed = self.registry.remove(sid)
            logger.info(f"Client {sid} disconnected")
            if removed:
                await self._broadcast_roster()
        return removed
