import asyncio
import logging

import pytest

from app.errors import ConnectionClosed
from app.models.realtime_schemas import RealtimeSessionConfig

_HANG_UP = object()


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeConnection:
    """In-memory duplex connection with the same shape as the real ones.

    Frames passed in (or fed later) come out of receive() in order; hang_up()
    makes the next receive() report closure. Everything sent is recorded.
    """

    def __init__(self, frames=(), hang_up=False, send_error=None, send_gate=None, echo=False):
        self.inbound = asyncio.Queue()
        for frame in frames:
            self.inbound.put_nowait(frame)
        if hang_up:
            self.inbound.put_nowait(_HANG_UP)
        self.sent = []
        self.close_calls = 0
        self.closed = False
        self.send_error = send_error
        self.send_gate = send_gate
        self.echo = echo

    def feed(self, frame):
        self.inbound.put_nowait(frame)

    def hang_up(self):
        self.inbound.put_nowait(_HANG_UP)

    async def receive(self):
        if self.closed:
            raise ConnectionClosed("closed")
        frame = await self.inbound.get()
        if frame is _HANG_UP:
            self.closed = True
            raise ConnectionClosed("peer hung up")
        return frame

    async def send(self, frame):
        if self.closed:
            raise ConnectionClosed("closed")
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(frame)
        if self.echo:
            self.inbound.put_nowait(frame)

    async def close(self):
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self.inbound.put_nowait(_HANG_UP)


class FakeUpstreamHandle(FakeConnection):
    """Upstream session handle recording control commands apart from relayed frames."""

    def __init__(self, session_id, **kwargs):
        super().__init__(**kwargs)
        self.session_id = session_id
        self.commands = []

    async def create_response(self, instructions):
        self.commands.append({"type": "response.create", "response": {"instructions": instructions}})


class FakeUpstreamClient:
    """Upstream client handing out FakeUpstreamHandles, greeting on open like the real one."""

    def __init__(self, frames=(), error=None, gate=None, **handle_kwargs):
        self.frames = list(frames)
        self.error = error
        self.gate = gate
        self.handle_kwargs = handle_kwargs
        self.configs = []
        self.handles = []

    async def open(self, config):
        self.configs.append(config)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        handle = FakeUpstreamHandle(
            f"sess_{len(self.handles) + 1}", frames=self.frames, **self.handle_kwargs
        )
        if config.instructions:
            await handle.create_response(config.instructions)
        self.handles.append(handle)
        return handle


async def wait_until(predicate, timeout=1.0):
    """Poll predicate until it holds or fail after timeout seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def session_config():
    return RealtimeSessionConfig(model="gpt-4o-realtime-test", instructions="Say hello")
