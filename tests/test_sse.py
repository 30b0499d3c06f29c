"""Push-stream transport: SSE framing and open/close reporting."""

import asyncio
import json

import httpx
import pytest
from conftest import message_payload

from chatsync.models.events import TransportEventKind
from chatsync.transport.sse import PushStreamTransport, iter_sse_data


async def collect(lines):
    async def gen():
        for line in lines:
            yield line
    return [data async for data in iter_sse_data(gen())]


@pytest.mark.asyncio
async def test_iter_sse_data_frames():
    lines = [
        ": keepalive",
        "",
        "event: message",
        "id: 7",
        "data: {\"a\": 1}",
        "",
        "data:first",
        "data: second",
        "",
        "retry: 3000",
        "",
        "data: cut off",
    ]
    assert await collect(lines) == ['{"a": 1}', "first\nsecond"]


class Recorder:
    def __init__(self):
        self.events = []
        self.closed = asyncio.Event()

    def __call__(self, event):
        self.events.append(event)
        if event.kind == TransportEventKind.CLOSED:
            self.closed.set()

    @property
    def kinds(self):
        return [e.kind for e in self.events]


def sse_body(*payloads) -> bytes:
    return "".join(f"data: {json.dumps(p)}\n\n" for p in payloads).encode()


@pytest.mark.asyncio
async def test_stream_reports_open_frames_and_close(viewer):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["accept"] = request.headers["Accept"]
        body = sse_body({"type": "connected", "user_id": "u1"}, message_payload("1"))
        return httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"})

    rec = Recorder()
    transport = PushStreamTransport(viewer, rec, "https://chat.example/", http_transport=httpx.MockTransport(handler))
    await transport.open()
    await asyncio.wait_for(rec.closed.wait(), timeout=2)

    assert rec.kinds == [
        TransportEventKind.OPENED,
        TransportEventKind.RECEIVED,
        TransportEventKind.RECEIVED,
        TransportEventKind.CLOSED,
    ]
    assert json.loads(rec.events[2].payload)["message_id"] == "1"
    assert seen == {"url": "https://chat.example/sse/u1", "accept": "text/event-stream"}
    await transport.close()


@pytest.mark.asyncio
async def test_http_error_reports_error_then_close(viewer):
    rec = Recorder()
    transport = PushStreamTransport(
        viewer, rec, "https://chat.example", http_transport=httpx.MockTransport(lambda r: httpx.Response(502))
    )
    await transport.open()
    await asyncio.wait_for(rec.closed.wait(), timeout=2)
    assert rec.kinds == [TransportEventKind.ERRORED, TransportEventKind.CLOSED]
    await transport.close()


@pytest.mark.asyncio
async def test_connect_failure_reports_error_then_close(viewer):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    rec = Recorder()
    transport = PushStreamTransport(viewer, rec, "https://chat.example", http_transport=httpx.MockTransport(handler))
    await transport.open()
    await asyncio.wait_for(rec.closed.wait(), timeout=2)
    assert rec.kinds == [TransportEventKind.ERRORED, TransportEventKind.CLOSED]
    await transport.close()


@pytest.mark.asyncio
async def test_close_is_silent_and_idempotent(viewer):
    hold = asyncio.Event()

    async def stream():
        yield sse_body(message_payload("1"))
        await hold.wait()

    rec = Recorder()
    transport = PushStreamTransport(
        viewer, rec, "https://chat.example",
        http_transport=httpx.MockTransport(lambda r: httpx.Response(200, content=stream())),
    )
    await transport.open()
    while TransportEventKind.RECEIVED not in rec.kinds:
        await asyncio.sleep(0.005)

    await transport.close()
    await transport.close()
    assert rec.kinds == [TransportEventKind.OPENED, TransportEventKind.RECEIVED]


@pytest.mark.asyncio
async def test_close_before_open(viewer):
    rec = Recorder()
    transport = PushStreamTransport(viewer, rec, "https://chat.example")
    await transport.close()
    await transport.open()
    assert rec.events == []
