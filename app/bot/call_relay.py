"""
Per-call relay between the telephony media stream and the realtime session.

A CallRelaySession owns exactly one telephony connection and at most one
upstream session. It opens the upstream, then runs two forwarding tasks, one
per direction. The first task to finish cancels the other and the session
tears both connections down. Frames are never inspected or re-chunked.
"""

import asyncio
import logging
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from app.config.constants import CLOSE_TIMEOUT, LOGGER_NAME
from app.errors import ConnectionClosed, UpstreamConfigInvalid, UpstreamUnavailable
from app.models.realtime_schemas import RealtimeSessionConfig

logger = logging.getLogger(LOGGER_NAME)


class RelayState(str, Enum):
    """Lifecycle of a call relay session."""
    INIT = "init"
    UPSTREAM_CONNECTING = "upstream_connecting"
    RELAYING = "relaying"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


class CallRelaySession:
    """
    Pairs one telephony connection with one upstream realtime session.

    Both connections only need receive(), send() and close(). The upstream
    client only needs an async open(config) returning such a connection, which
    keeps the session testable with in-memory fakes.
    """

    def __init__(
        self,
        telephony,
        upstream_client,
        upstream_config: RealtimeSessionConfig,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.telephony = telephony
        self.upstream = None
        self.state = RelayState.INIT
        self.created_at = datetime.now(UTC)
        self.closed_at: Optional[datetime] = None
        self.frames_to_upstream = 0
        self.frames_to_telephony = 0

        self._upstream_client = upstream_client
        self._upstream_config = upstream_config
        self._tasks: list[asyncio.Task] = []
        self._teardown: Optional[asyncio.Task] = None

    @property
    def finished(self) -> bool:
        return self.state in (RelayState.CLOSED, RelayState.FAILED)

    async def run(self) -> None:
        """
        Drive the session from upstream connect to teardown.

        Never raises for per-call failures; the only exception that escapes is
        cancellation of the calling task, after the session has been closed.
        """
        self.state = RelayState.UPSTREAM_CONNECTING
        logger.info(f"[{self.session_id}] Opening upstream session")

        try:
            upstream = await self._upstream_client.open(self._upstream_config)
        except (UpstreamUnavailable, UpstreamConfigInvalid) as e:
            logger.error(f"[{self.session_id}] Upstream session could not be opened: {e}")
            await self._fail()
            return
        except asyncio.CancelledError:
            await self.close()
            raise
        except Exception as e:
            logger.error(f"[{self.session_id}] Unexpected error opening upstream: {e}", exc_info=True)
            await self._fail()
            return

        if self._teardown is not None:
            # Closed while the upstream was still connecting
            await self._close_connection(upstream, "upstream")
            return

        self.upstream = upstream
        self.state = RelayState.RELAYING
        logger.info(
            f"[{self.session_id}] Relaying between telephony and upstream session "
            f"{getattr(upstream, 'session_id', None)}"
        )

        try:
            await self._relay()
        finally:
            await self.close()

    async def _relay(self) -> None:
        self._tasks = [
            asyncio.create_task(self._pump(self.telephony, self.upstream, "telephony->upstream")),
            asyncio.create_task(self._pump(self.upstream, self.telephony, "upstream->telephony")),
        ]
        try:
            await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if self.state == RelayState.RELAYING:
                self.state = RelayState.CLOSING
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _pump(self, source, destination, direction: str) -> None:
        """Forward frames from source to destination in arrival order until either side closes."""
        forwarded = 0
        try:
            while True:
                frame = await source.receive()
                # Awaiting the send holds back the next read, bounding buffered audio
                await destination.send(frame)
                forwarded += 1
                if direction == "telephony->upstream":
                    self.frames_to_upstream += 1
                else:
                    self.frames_to_telephony += 1
        except ConnectionClosed as e:
            logger.info(f"[{self.session_id}] {direction} ended after {forwarded} frames: {e}")
        except asyncio.CancelledError:
            logger.debug(f"[{self.session_id}] {direction} cancelled after {forwarded} frames")
            raise
        except Exception as e:
            logger.error(f"[{self.session_id}] {direction} relay failed: {e}", exc_info=True)

    async def close(self) -> None:
        """
        Tear the session down. Idempotent and safe to call from either side.

        The first call starts closing whichever connections are still open;
        every caller, concurrent or later, waits for that same teardown.
        """
        if self._teardown is None:
            self._teardown = asyncio.create_task(self._tear_down())
        await asyncio.shield(self._teardown)

    async def _tear_down(self) -> None:
        if self.state != RelayState.FAILED:
            self.state = RelayState.CLOSING

        for task in self._tasks:
            task.cancel()

        await asyncio.gather(
            self._close_connection(self.telephony, "telephony"),
            self._close_connection(self.upstream, "upstream"),
        )
        self.upstream = None

        if self.state != RelayState.FAILED:
            self.state = RelayState.CLOSED
        self.closed_at = datetime.now(UTC)
        duration = (self.closed_at - self.created_at).total_seconds()
        logger.info(
            f"[{self.session_id}] Session {self.state.value} after {duration:.1f}s "
            f"({self.frames_to_upstream} frames up, {self.frames_to_telephony} frames down)"
        )

    async def _fail(self) -> None:
        self.state = RelayState.FAILED
        await self.close()

    async def _close_connection(self, connection, name: str) -> None:
        if connection is None:
            return
        try:
            await asyncio.wait_for(connection.close(), timeout=CLOSE_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"[{self.session_id}] Timed out closing {name} connection")
        except Exception as e:
            logger.warning(f"[{self.session_id}] Error closing {name} connection: {e}")
