"""
Push-stream transport: Server-Sent Events over a long-lived httpx GET.

The stream is scoped to the viewer and carries events for every conversation
the viewer is in. Client never writes to it.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional
from urllib.parse import quote

import httpx

from chatsync.errors import TransportError
from chatsync.models.events import TransportEvent
from chatsync.models.message import Viewer
from chatsync.transport.base import EventSink, Transport

logger = logging.getLogger(__name__)


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Yield the data of each SSE frame. Multi-line data is joined with newlines."""
    data: list[str] = []
    async for line in lines:
        if not line:
            if data:
                yield "\n".join(data)
                data = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            data.append(value)
    # a frame cut off by end of stream is dropped, as EventSource does


class PushStreamTransport(Transport):
    def __init__(
        self,
        viewer: Viewer,
        sink: EventSink,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 30.0,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(viewer, sink)
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._http_transport = http_transport
        self._client: Optional[httpx.AsyncClient] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._closing = False

    @property
    def url(self) -> str:
        return f"{self._base_url}/sse/{quote(self._viewer.user_id, safe='')}"

    async def open(self) -> None:
        if self._task is not None or self._closing:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout, read=None),
            transport=self._http_transport,
        )
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            async with self._client.stream("GET", self.url, headers=headers) as response:  # type: ignore[union-attr]
                if response.status_code >= 400:
                    raise TransportError(f"Push stream returned HTTP {response.status_code}")
                logger.info(f"Push stream open for {self._viewer.user_id}")
                self._emit(TransportEvent.opened())
                async for data in iter_sse_data(response.aiter_lines()):
                    logger.debug(f"Push stream frame: {data[:200]}")
                    self._emit(TransportEvent.received(data))
            logger.info("Push stream ended by server")
        except Exception as e:
            if not self._closing:
                logger.warning(f"Push stream failed: {e}")
                self._emit(TransportEvent.errored(e))
        finally:
            if not self._closing:
                self._emit(TransportEvent.closed())

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
