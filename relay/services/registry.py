"""
User Registry – Who is online, in join order
"""

from typing import Dict, List, Optional

from relay.models import User


class DuplicateIdentity(Exception):
    """Raised when a connection identity is registered twice."""

    def __init__(self, identity: str):
        super().__init__(f"User with identity {identity!r} already joined")
        self.identity = identity


class UserRegistry:
    """Map connection identities to joined users.

    Dicts keep insertion order, so iteration order is join order and lookups
    by identity are O(1). Callers serialize mutations (see SessionController).
    """

    def __init__(self):
        self._users: Dict[str, User] = {}

    def add(self, identity: str, name: str, avatar: str) -> User:
        """Insert a new user. Raises DuplicateIdentity if already present."""
        if identity in self._users:
            raise DuplicateIdentity(identity)
        user = User(id=identity, name=name, avatar=avatar)
        self._users[identity] = user
        return user.model_copy()

    def remove(self, identity: str) -> bool:
        """Remove a user. Returns False if no user had that identity."""
        return self._users.pop(identity, None) is not None

    def rename(self, identity: str, new_name: str) -> bool:
        """Rename a user in place. Returns False if no user had that identity."""
        user = self._users.get(identity)
        if user is None:
            return False
        user.name = new_name
        return True

    def get(self, identity: str) -> Optional[User]:
        user = self._users.get(identity)
        return user.model_copy() if user is not None else None

    def snapshot(self) -> List[User]:
        """Current roster in join order, as copies."""
        return [user.model_copy() for user in self._users.values()]

    def __contains__(self, identity: str) -> bool:
        return identity in self._users

    def __len__(self) -> int:
        return len(self._users)
