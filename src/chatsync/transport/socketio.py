"""
Duplex-socket transport over Socket.IO.

Connection: {base_url} with auth={user_id, token}. The client's own
reconnection is disabled; ConnectionSupervisor decides when to retry.
"""

import logging
from typing import Any, Optional

import socketio
from socketio.exceptions import ConnectionError as SocketConnectError

from chatsync.errors import TransportError
from chatsync.models.events import C2SEvent, TransportEvent
from chatsync.models.message import Viewer
from chatsync.transport.base import EventSink, Transport

logger = logging.getLogger(__name__)

RESERVED_EVENTS = ("connect", "disconnect", "connect_error")


class DuplexSocketTransport(Transport):
    duplex = True

    def __init__(
        self,
        viewer: Viewer,
        sink: EventSink,
        base_url: str,
        *,
        token: Optional[str] = None,
        socketio_path: str = "socket.io",
        transports: Optional[list[str]] = None,
        client: Optional[socketio.AsyncClient] = None,
    ):
        super().__init__(viewer, sink)
        self._base_url = base_url
        self._token = token
        self._socketio_path = socketio_path
        self._transports = transports or ["websocket"]
        self._sio: Optional[socketio.AsyncClient] = client
        self._opened = False
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected and not self._closing

    def _register_handlers(self, sio: socketio.AsyncClient) -> None:
        @sio.event
        async def connect() -> None:
            if self._closing:
                return
            logger.info(f"Socket connected for {self._viewer.user_id}")
            self._emit(TransportEvent.opened())

        @sio.event
        async def connect_error(data: Any = None) -> None:
            if not self._closing:
                self._emit(TransportEvent.errored(TransportError(f"Socket connect error: {data}")))

        @sio.on("*")
        async def on_any(event: str, data: Any = None) -> None:
            if event in RESERVED_EVENTS:
                return
            if not isinstance(data, dict):
                logger.debug(f"Ignoring non-object socket event {event!r}")
                return
            if "type" not in data and "message_id" not in data:
                data = {"type": event, **data}
            self._emit(TransportEvent.received(data))

        @sio.event
        async def disconnect(_reason: str = "") -> None:
            if not self._closing:
                logger.info(f"Socket disconnected: {_reason}")
                self._emit(TransportEvent.closed())

    async def open(self) -> None:
        if self._opened or self._closing:
            return
        self._opened = True
        if self._sio is None:
            self._sio = socketio.AsyncClient(reconnection=False)
        # close() may drop self._sio while connect is still pending
        sio = self._sio
        self._register_handlers(sio)

        auth: dict[str, str] = {"user_id": self._viewer.user_id}
        if self._token:
            auth["token"] = self._token
        try:
            await sio.connect(
                self._base_url,
                auth=auth,
                transports=self._transports,
                socketio_path=self._socketio_path,
            )
        except SocketConnectError as e:
            if self._closing:
                return
            raise TransportError(f"Socket connect failed: {e}")
        finally:
            if self._closing and sio.connected:
                logger.debug("Transport closed while connecting, dropping socket")
                await sio.disconnect()

    async def send(self, payload: dict[str, Any]) -> None:
        if not self.connected:
            raise TransportError("Socket not connected")
        await self._sio.emit(C2SEvent.MESSAGE, payload)  # type: ignore[union-attr]

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        sio, self._sio = self._sio, None
        if sio is not None and sio.connected:
            await sio.disconnect()
