"""
Transport adapter contract.

A transport wraps one push mechanism. Instead of onopen/onmessage/onerror
callbacks it reports TransportEvents into the sink it was built with.
"""

import abc
from typing import Any, Callable

from chatsync.errors import TransportError
from chatsync.models.events import TransportEvent
from chatsync.models.message import Viewer

EventSink = Callable[[TransportEvent], None]
TransportFactory = Callable[[Viewer, EventSink], "Transport"]


class Transport(abc.ABC):
    duplex = False

    def __init__(self, viewer: Viewer, sink: EventSink):
        self._viewer = viewer
        self._sink = sink

    @property
    def viewer(self) -> Viewer:
        return self._viewer

    @abc.abstractmethod
    async def open(self) -> None:
        """Start connecting. Failures may be raised or reported as Errored + Closed."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release the connection. Must be safe to call repeatedly."""

    async def send(self, payload: dict[str, Any]) -> None:
        raise TransportError(f"{type(self).__name__} is receive-only")

    def _emit(self, event: TransportEvent) -> None:
        self._sink(event)
