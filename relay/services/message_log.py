"""Append-only chat history replayed to new connections."""

from typing import List

from relay.models import ChatMessage


class MessageLog:
    """Keep every chat message in arrival order.

    Growth is unbounded for the lifetime of the process.
    """

    def __init__(self):
        self._messages: List[ChatMessage] = []

    def append(self, message: ChatMessage):
        self._messages.append(message)

    def all(self) -> List[ChatMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
