"""Shared fakes: an in-memory transport and message builders."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from chatsync.errors import TransportError
from chatsync.models.events import TransportEvent
from chatsync.models.message import Message, Viewer
from chatsync.transport.base import EventSink, Transport

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def message_payload(message_id: str, chat_id: str = "c1", sender: str = "u2", minute: int = 0) -> dict[str, Any]:
    return {
        "type": "message",
        "message_id": message_id,
        "chat_id": chat_id,
        "content": f"hello {message_id}",
        "sender": {"user_id": sender, "username": sender, "first_name": sender.upper(), "last_name": "Test"},
        "timestamp": (BASE_TIME + timedelta(minutes=minute)).isoformat(),
    }


def make_message(message_id: str, chat_id: str = "c1", sender: str = "u2", minute: int = 0) -> Message:
    return Message.model_validate(message_payload(message_id, chat_id, sender, minute))


def ids(messages: list[Message]) -> list[str]:
    return [m.message_id for m in messages]


class FakeTransport(Transport):
    def __init__(self, viewer: Viewer, sink: EventSink, *, fail_open: bool = False, duplex: bool = False):
        super().__init__(viewer, sink)
        self.duplex = duplex
        self.fail_open = fail_open
        self.open_calls = 0
        self.close_calls = 0
        self.sent: list[dict[str, Any]] = []

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def open(self) -> None:
        self.open_calls += 1
        if self.fail_open:
            raise TransportError("connection refused")
        self._emit(TransportEvent.opened())

    async def close(self) -> None:
        self.close_calls += 1

    async def send(self, payload: dict[str, Any]) -> None:
        if not self.duplex:
            await super().send(payload)
        self.sent.append(payload)

    def deliver(self, payload: Any) -> None:
        self._emit(TransportEvent.received(payload))

    def drop(self) -> None:
        self._emit(TransportEvent.errored(TransportError("reset by peer")))
        self._emit(TransportEvent.closed())


class FakeTransportFactory:
    def __init__(self, failures: int = 0, duplex: bool = False):
        self.failures = failures
        self.duplex = duplex
        self.created: list[FakeTransport] = []

    def __call__(self, viewer: Viewer, sink: EventSink) -> FakeTransport:
        transport = FakeTransport(viewer, sink, fail_open=len(self.created) < self.failures, duplex=self.duplex)
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> Optional[FakeTransport]:
        return self.created[-1] if self.created else None


@pytest.fixture
def viewer() -> Viewer:
    return Viewer(user_id="u1", username="alice", first_name="Alice", last_name="Liddell")


@pytest.fixture
def factory() -> FakeTransportFactory:
    return FakeTransportFactory()
