"""
ChatSyncClient — wires the engine for one viewer and one open conversation.
"""

import logging
from typing import Any, Optional

import httpx

from chatsync.config import SyncConfig
from chatsync.errors import AccessDeniedError, ChatSyncError
from chatsync.history import HistoryLoader
from chatsync.models.events import ConnectionState
from chatsync.models.message import Message, Viewer
from chatsync.sender import BroadcastSendPipeline, DuplexSendPipeline, SendPipeline
from chatsync.store import MessageStore
from chatsync.supervisor import ConnectionSupervisor
from chatsync.transport.base import EventSink, Transport, TransportFactory
from chatsync.transport.http import HttpClient
from chatsync.transport.socketio import DuplexSocketTransport
from chatsync.transport.sse import PushStreamTransport

logger = logging.getLogger(__name__)


class ChatSyncClient:
    """Async client for a live conversation view.

    Usage::

        async with ChatSyncClient(viewer, config=SyncConfig(base_url=url)) as client:
            store = await client.open_conversation("c1")
            await client.send("hello")
    """

    def __init__(
        self,
        viewer: Optional[Viewer] = None,
        *,
        config: Optional[SyncConfig] = None,
        access_token: Optional[str] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        transport_factory: Optional[TransportFactory] = None,
    ):
        self.config = config or SyncConfig()
        self._viewer = viewer
        self._access_token = access_token
        self._http_transport = http_transport

        self.http = HttpClient(
            base_url=self.config.base_url,
            token=access_token,
            timeout=self.config.request_timeout,
            transport=http_transport,
        )
        self.history = HistoryLoader(self.http)
        self.supervisor = ConnectionSupervisor(
            transport_factory or self._build_transport,
            self._route_message,
            reconnect_delay=self.config.reconnect_delay,
        )
        self._sender: SendPipeline
        if self.config.mode == "duplex":
            self._sender = DuplexSendPipeline(self.supervisor)
        else:
            self._sender = BroadcastSendPipeline(self.http)
        self._store: Optional[MessageStore] = None

    def _build_transport(self, viewer: Viewer, sink: EventSink) -> Transport:
        if self.config.mode == "duplex":
            return DuplexSocketTransport(
                viewer, sink, self.config.base_url,
                token=self._access_token,
                socketio_path=self.config.socketio_path,
                transports=self.config.socketio_transports,
            )
        return PushStreamTransport(
            viewer, sink, self.config.base_url,
            token=self._access_token,
            timeout=self.config.request_timeout,
            http_transport=self._http_transport,
        )

    @property
    def viewer(self) -> Optional[Viewer]:
        return self._viewer

    @property
    def store(self) -> Optional[MessageStore]:
        return self._store

    @property
    def messages(self) -> list[Message]:
        return self._store.messages if self._store is not None else []

    @property
    def state(self) -> ConnectionState:
        return self.supervisor.state

    @property
    def connected(self) -> bool:
        return self.supervisor.connected

    @property
    def sending(self) -> bool:
        return self._sender.in_flight

    def _route_message(self, message: Message) -> None:
        if self._store is not None:
            self._store.merge_live(message)

    async def start(self, viewer: Optional[Viewer] = None) -> None:
        """Connect the live channel. A different viewer tears everything down first."""
        if viewer is not None:
            if self._viewer is not None and viewer.user_id != self._viewer.user_id:
                logger.info(f"Viewer changed from {self._viewer.user_id} to {viewer.user_id}")
                self.close_conversation()
            self._viewer = viewer
        await self.supervisor.start(self._viewer)

    async def open_conversation(self, chat_id: str) -> MessageStore:
        """Open chat_id: start routing live messages to a new store, then seed it with history.

        Raises AccessDeniedError (view discarded) or TransientError (view kept,
        live messages keep arriving) if the history fetch fails.
        """
        if self._viewer is None:
            raise ChatSyncError("no_viewer", "A viewer is required to open a conversation")
        self.close_conversation()
        store = MessageStore(chat_id, self._viewer.user_id)
        self._store = store
        try:
            history = await self.history.fetch(chat_id)
        except AccessDeniedError:
            if self._store is store:
                self._store = None
            raise
        if self._store is store:
            store.load_history(history)
        return store

    def close_conversation(self) -> None:
        self._store = None

    async def send(self, content: str) -> bool:
        if self._store is None:
            raise ChatSyncError("no_conversation", "Open a conversation before sending")
        return await self._sender.send(self._store.chat_id, content)

    async def close(self) -> None:
        self.close_conversation()
        try:
            await self.supervisor.stop()
        finally:
            await self.http.close()

    async def __aenter__(self) -> "ChatSyncClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
