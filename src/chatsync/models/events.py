"""
Transport events and push-channel payloads.

Transports report what happens to them as TransportEvent values, which the
ConnectionSupervisor consumes in one dispatch function.
"""

import enum
import json
from typing import Any, Optional, Union

from pydantic import ValidationError

from chatsync.errors import MalformedEventError
from chatsync.models.message import Message


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class TransportEventKind:
    OPENED = "opened"
    RECEIVED = "received"
    ERRORED = "errored"
    CLOSED = "closed"


class PushEvent:
    """`type` values carried by push-channel payloads."""
    CONNECTED = "connected"
    MESSAGE = "message"


class C2SEvent:
    MESSAGE = "message"


class TransportEvent:
    __slots__ = ("kind", "payload", "error")

    def __init__(self, kind: str, payload: Any = None, error: Optional[BaseException] = None):
        self.kind = kind
        self.payload = payload
        self.error = error

    @classmethod
    def opened(cls) -> "TransportEvent":
        return cls(TransportEventKind.OPENED)

    @classmethod
    def received(cls, payload: Any) -> "TransportEvent":
        return cls(TransportEventKind.RECEIVED, payload=payload)

    @classmethod
    def errored(cls, error: Optional[BaseException] = None) -> "TransportEvent":
        return cls(TransportEventKind.ERRORED, error=error)

    @classmethod
    def closed(cls) -> "TransportEvent":
        return cls(TransportEventKind.CLOSED)

    def __repr__(self) -> str:
        return f"TransportEvent(kind={self.kind!r})"


class ConnectedEvent:
    __slots__ = ("user_id",)

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id

    def __repr__(self) -> str:
        return f"ConnectedEvent(user_id={self.user_id!r})"


def parse_push_event(raw: Any) -> Union[ConnectedEvent, Message, None]:
    """Parse one push-channel payload.

    Accepts a JSON string (push stream) or an already decoded dict (duplex
    socket). Returns None for event types this engine does not handle and
    raises MalformedEventError for anything that cannot be read.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise MalformedEventError(f"Invalid JSON in push event: {e}")
    if not isinstance(raw, dict):
        raise MalformedEventError(f"Push event must be an object, got {type(raw).__name__}")

    event_type = raw.get("type")
    if event_type is None and "message_id" in raw:
        event_type = PushEvent.MESSAGE

    if event_type == PushEvent.CONNECTED:
        return ConnectedEvent(raw.get("user_id") or raw.get("userId"))
    if event_type == PushEvent.MESSAGE:
        try:
            return Message.model_validate(raw)
        except ValidationError as e:
            raise MalformedEventError(
                f"Invalid message event: {e.error_count()} validation error(s)",
                details={"message_id": raw.get("message_id")},
            )
    return None
