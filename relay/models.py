import copy
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError
from typing import Any, Optional, Tuple

DEFAULT_NAME = "Anonymous"


# ============ Presence Models ============


class User(BaseModel):
    """A joined user. ``id`` is the identity of the owning connection."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = DEFAULT_NAME
    avatar: Optional[str] = Field(default=None, alias="image")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class ChatMessage(BaseModel):
    """Message as broadcast; the sender is captured by value at send time."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sender: User = Field(alias="from")
    content: str

    # Payload exactly as the client sent it, extra fields included
    _payload: Optional[dict] = PrivateAttr(default=None)

    def to_wire(self) -> dict:
        if self._payload is not None:
            return copy.deepcopy(self._payload)
        return self.model_dump(by_alias=True, exclude_unset=True)


# ============ Inbound Event Payloads ============


class JoinRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    avatar: Optional[str] = Field(default=None, alias="image")


class RenameTarget(BaseModel):
    id: str
    name: str


class RenameRequest(BaseModel):
    user: RenameTarget


class PrivateMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_identity: str = Field(alias="targetIdentity")
    message: Any


# ============ Payload parsing ============
# Each parser returns None when the payload does not have the expected shape.


def parse_join(payload: Any) -> Optional[JoinRequest]:
    if payload is None:
        return JoinRequest()
    if isinstance(payload, str):
        return JoinRequest(name=payload)
    if not isinstance(payload, dict):
        return None
    try:
        return JoinRequest.model_validate(payload)
    except ValidationError:
        return None


def parse_rename(payload: Any) -> Optional[RenameRequest]:
    try:
        return RenameRequest.model_validate(payload)
    except ValidationError:
        return None


def parse_message(payload: Any) -> Optional[ChatMessage]:
    try:
        message = ChatMessage.model_validate(payload)
    except ValidationError:
        return None
    message._payload = copy.deepcopy(payload)
    return message


def parse_private_message(args: Tuple[Any, ...]) -> Optional[PrivateMessageRequest]:
    """Accept ``({targetIdentity, message})`` or ``(targetIdentity, message)``."""
    if len(args) == 2 and isinstance(args[0], str):
        data = {"targetIdentity": args[0], "message": args[1]}
    elif len(args) == 1:
        data = args[0]
    else:
        return None
    try:
        request = PrivateMessageRequest.model_validate(data)
    except ValidationError:
        return None
    if request.message is None:
        return None
    return request
