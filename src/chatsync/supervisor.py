"""
Connection supervisor — owns the live transport for one viewer.

Lifecycle:
- start(viewer) closes whatever transport is open, then opens a new one.
- A Closed event schedules exactly one reconnect after reconnect_delay.
  Retries are unbounded and use a fixed delay.
- stop() closes the transport and cancels any pending reconnect.

Transport failures never leave this class as exceptions; they only show up
as the DISCONNECTED state.
"""

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Callable, Optional

from chatsync.config import DEFAULT_RECONNECT_DELAY_S
from chatsync.errors import MalformedEventError, TransportError
from chatsync.models.events import ConnectedEvent, ConnectionState, TransportEvent, TransportEventKind, parse_push_event
from chatsync.models.message import Message, Viewer
from chatsync.transport.base import Transport, TransportFactory

logger = logging.getLogger(__name__)

MessageSink = Callable[[Message], None]
StateListener = Callable[[ConnectionState], None]


class ConnectionSupervisor:
    def __init__(
        self,
        transport_factory: TransportFactory,
        on_message: Optional[MessageSink] = None,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY_S,
    ):
        self._transport_factory = transport_factory
        self.on_message = on_message
        self._reconnect_delay = reconnect_delay
        self._viewer: Optional[Viewer] = None
        self._transport: Optional[Transport] = None
        # Bumped whenever the current transport is replaced or released, so
        # events from an older transport can be told apart and ignored.
        self._generation = 0
        self._state = ConnectionState.DISCONNECTED
        self._state_listeners: list[StateListener] = []
        self._reconnect_timer: Optional[asyncio.TimerHandle] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def viewer(self) -> Optional[Viewer]:
        return self._viewer

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    def add_state_listener(self, listener: StateListener) -> Callable[[], None]:
        self._state_listeners.append(listener)
        def remove() -> None:
            try:
                self._state_listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        self._state = state
        for listener in list(self._state_listeners):
            listener(state)

    async def start(self, viewer: Optional[Viewer]) -> None:
        """Open a transport for viewer, replacing any existing one."""
        if viewer is None:
            logger.debug("No viewer, not connecting")
            return
        self._cancel_reconnect()
        await self._release()

        self._viewer = viewer
        self._generation += 1
        generation = self._generation
        self._set_state(ConnectionState.CONNECTING)

        def sink(event: TransportEvent) -> None:
            if generation == self._generation:
                self.dispatch(event)

        logger.info(f"Connecting live transport for {viewer.user_id}")
        try:
            self._transport = self._transport_factory(viewer, sink)
            await self._transport.open()
        except Exception as e:
            logger.warning(f"Opening transport failed: {e}")
            sink(TransportEvent.errored(e))
            sink(TransportEvent.closed())

    async def stop(self) -> None:
        """Close the transport and cancel any pending reconnect. Idempotent."""
        self._viewer = None
        try:
            self._cancel_reconnect()
        finally:
            try:
                await self._release()
            finally:
                self._set_state(ConnectionState.DISCONNECTED)

    @contextlib.asynccontextmanager
    async def running(self, viewer: Viewer) -> AsyncIterator["ConnectionSupervisor"]:
        await self.start(viewer)
        try:
            yield self
        finally:
            await self.stop()

    async def send(self, payload: dict[str, Any]) -> bool:
        """Write payload to the live transport. False if there is no connected duplex transport."""
        transport = self._transport
        if transport is None or not transport.duplex or not self.connected:
            return False
        try:
            await transport.send(payload)
        except TransportError as e:
            logger.warning(f"Send over transport failed: {e}")
            return False
        return True

    def dispatch(self, event: TransportEvent) -> None:
        """Drive the connection state machine with one transport event."""
        if event.kind == TransportEventKind.OPENED:
            logger.info("Live transport open")
            self._set_state(ConnectionState.CONNECTED)
        elif event.kind == TransportEventKind.RECEIVED:
            self._handle_payload(event.payload)
        elif event.kind == TransportEventKind.ERRORED:
            logger.warning(f"Live transport error: {event.error}")
            self._set_state(ConnectionState.DISCONNECTED)
        elif event.kind == TransportEventKind.CLOSED:
            logger.info("Live transport closed")
            self._set_state(ConnectionState.DISCONNECTED)
            self._schedule_reconnect()
        else:
            logger.debug(f"Unknown transport event {event!r}")

    def _handle_payload(self, payload: Any) -> None:
        try:
            parsed = parse_push_event(payload)
        except MalformedEventError as e:
            logger.warning(f"Dropping malformed push event: {e}")
            return
        if isinstance(parsed, ConnectedEvent):
            logger.debug(f"Push channel confirmed for {parsed.user_id}")
            self._set_state(ConnectionState.CONNECTED)
        elif isinstance(parsed, Message):
            if self.on_message is not None:
                self.on_message(parsed)
        else:
            logger.debug("Ignoring push event of unhandled type")

    def _schedule_reconnect(self) -> None:
        if self._reconnect_timer is not None or self._viewer is None:
            return
        logger.info(f"Reconnecting in {self._reconnect_delay}s")
        loop = asyncio.get_running_loop()
        self._reconnect_timer = loop.call_later(self._reconnect_delay, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_timer = None
        viewer = self._viewer
        if viewer is None:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self.start(viewer))

    def _cancel_reconnect(self) -> None:
        timer, self._reconnect_timer = self._reconnect_timer, None
        if timer is not None:
            timer.cancel()
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def _release(self) -> None:
        transport, self._transport = self._transport, None
        self._generation += 1
        if transport is not None:
            try:
                await transport.close()
            except Exception as e:
                logger.warning(f"Closing transport failed: {e}")
