"""
Send pipelines.

Neither pipeline touches the MessageStore: a sent message shows up only when
it comes back over the live channel, like anyone else's.

- DuplexSendPipeline writes to the open duplex socket. Disconnected sends are
  dropped, not queued.
- BroadcastSendPipeline POSTs the message; the server fans it out over the
  push stream to every subscriber, the sender included.
"""

import abc
import logging
from urllib.parse import quote

from chatsync.errors import TransientError
from chatsync.supervisor import ConnectionSupervisor
from chatsync.transport.http import HttpClient

logger = logging.getLogger(__name__)


class SendPipeline(abc.ABC):
    @property
    def in_flight(self) -> bool:
        return False

    @abc.abstractmethod
    async def send(self, chat_id: str, content: str) -> bool:
        """Submit content to chat_id. Returns True if it was handed off."""


class DuplexSendPipeline(SendPipeline):
    def __init__(self, supervisor: ConnectionSupervisor):
        self._supervisor = supervisor

    async def send(self, chat_id: str, content: str) -> bool:
        text = content.strip()
        if not text:
            return False
        if not self._supervisor.connected:
            logger.debug("Not connected, dropping send")
            return False
        return await self._supervisor.send({"chat_id": chat_id, "content": text})


class BroadcastSendPipeline(SendPipeline):
    def __init__(self, http: HttpClient):
        self._http = http
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def send(self, chat_id: str, content: str) -> bool:
        text = content.strip()
        if not text or self._in_flight:
            return False
        self._in_flight = True
        try:
            # Response body is ignored; the message arrives via the push stream.
            await self._http.post(f"/chats/{quote(chat_id, safe='')}/messages", {"content": text})
        except TransientError as e:
            logger.warning(f"Sending to chat {chat_id} failed: {e}")
            return False
        finally:
            self._in_flight = False
        return True
