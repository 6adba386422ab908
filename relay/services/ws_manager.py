"""
Socket.IO Connection Manager – Track live sessions and deliver events to each one
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manage Socket.IO connections and deliver events to them.

    Connection identities are Socket.IO session ids. Every send goes to one
    sid at a time, so a failure delivering to one recipient never prevents
    delivery to the others.
    """

    def __init__(self, sio):
        self.sio = sio
        self.connections: Dict[str, None] = {}  # sid -> None, in connect order

    def connect(self, sid: str):
        """Register a new connection."""
        self.connections[sid] = None

    def disconnect(self, sid: str):
        """Unregister a connection."""
        self.connections.pop(sid, None)

    def is_connected(self, sid: str) -> bool:
        return sid in self.connections

    def get_all_connections(self) -> List[str]:
        """Get all connected SIDs."""
        return list(self.connections)

    def on_event(self, event: str, handler: Callable[..., Awaitable[Any]]):
        """Register a handler invoked as ``handler(sid, *args)`` per inbound event."""
        self.sio.on(event, handler=handler)

    async def _send(self, sid: str, event: str, payload: Any) -> bool:
        try:
            await self.sio.emit(event, payload, to=sid)
            return True
        except Exception as e:
            logger.error(f"Failed to emit '{event}' to {sid}: {e}")
            return False

    async def emit(self, sid: str, event: str, payload: Any) -> bool:
        """Send to exactly this connection."""
        return await self._send(sid, event, payload)

    async def broadcast_except(self, sid: str, event: str, payload: Any) -> int:
        """Send to all connections except ``sid``. Returns the delivery count."""
        delivered = 0
        for other in self.get_all_connections():
            if other == sid:
                continue
            if await self._send(other, event, payload):
                delivered += 1
        return delivered

    async def broadcast_all(self, event: str, payload: Any) -> int:
        """Send to every connection, joined or not. Returns the delivery count."""
        delivered = 0
        for sid in self.get_all_connections():
            if await self._send(sid, event, payload):
                delivered += 1
        return delivered

    async def emit_to(self, identity: str, event: str, payload: Any) -> bool:
        """Send to the connection owning ``identity``; dropped if not connected."""
        if identity not in self.connections:
            logger.debug(f"Dropping '{event}' for unknown connection {identity}")
            return False
        return await self._send(identity, event, payload)
