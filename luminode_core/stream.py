"""Persistent WebSocket transport for LumiNode push updates.

The stream owns one WebSocket connection at a time, runs the application
heartbeat on it and reconnects after a fixed delay whenever the connection
is lost without :meth:`LuminodeStream.close` having been called. It does not
call back into its owner: every observable occurrence is put on a single
``asyncio.Queue`` as a typed event, which the owner drains in one task.

Connection states:
    IDLE -> CONNECTING -> OPEN -> RECONNECTING -> CONNECTING -> ...
    any state -> CLOSED (intentional, terminal until open() is called)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum

from .errors import LuminodeClientError, LuminodeHeartbeatTimeout
from .protocol import HEARTBEAT_PING, HEARTBEAT_PONG, StreamPayload, parse_stream_message
from .transport.ws_client import LuminodeWsClient, LuminodeWsMessageType

_LOGGER = logging.getLogger(__name__)

PING_INTERVAL = 5.0
PONG_TIMEOUT = 3.5
RECONNECT_DELAY = 5.0


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class StreamOpened:
    """The WebSocket handshake completed."""


@dataclass(frozen=True)
class StreamMessage:
    payload: StreamPayload


@dataclass(frozen=True)
class StreamError:
    """A transport error that did not by itself close the socket."""

    description: str


@dataclass(frozen=True)
class StreamClosed:
    """The connection was lost; a reconnect is already scheduled."""

    reason: str
    error: LuminodeClientError | None = None


StreamEvent = StreamOpened | StreamMessage | StreamError | StreamClosed


class StreamState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


# -----------------------------------------------------------------------------
# Stream
# -----------------------------------------------------------------------------


class LuminodeStream:
    """WebSocket connection with heartbeat and unconditional reconnect.

    Usage:
        events: asyncio.Queue[StreamEvent] = asyncio.Queue()
        stream = LuminodeStream("192.168.1.10", events)
        stream.open()
        event = await events.get()
        ...
        await stream.close()
    """

    def __init__(
        self,
        host: str,
        events: asyncio.Queue[StreamEvent],
        *,
        ping_interval: float = PING_INTERVAL,
        pong_timeout: float = PONG_TIMEOUT,
        reconnect_delay: float = RECONNECT_DELAY,
        connect_timeout: float = 10.0,
    ) -> None:
        self.host = host
        self._events = events
        self._ping_interval = ping_interval
        self._pong_timeout = pong_timeout
        self._reconnect_delay = reconnect_delay
        self._connect_timeout = connect_timeout

        self._state = StreamState.IDLE
        self._client: LuminodeWsClient | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._closing_tasks: set[asyncio.Task[None]] = set()

        # Heartbeat, only while OPEN
        self._ping_task: asyncio.Task[None] | None = None
        self._pong_deadline: asyncio.TimerHandle | None = None
        self._last_ping_sent_at: float | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def last_ping_sent_at(self) -> float | None:
        return self._last_ping_sent_at

    @property
    def pong_pending(self) -> bool:
        return self._pong_deadline is not None

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def open(self) -> None:
        """Start a connection attempt, dropping any current connection."""
        self._cancel_reconnect()
        self._stop_heartbeat()
        if self._listen_task is not None:
            self._listen_task.cancel()
            self._listen_task = None
        self._release_client()

        self._state = StreamState.CONNECTING
        self._listen_task = asyncio.create_task(
            self._run(), name=f"luminode-ws-{self.host}"
        )

    async def close(self) -> None:
        """Close the connection and all timers without reconnecting."""
        self._state = StreamState.CLOSED
        self._cancel_reconnect()
        self._stop_heartbeat()

        task, self._listen_task = self._listen_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        client, self._client = self._client, None
        if client is not None:
            await self._close_client(client)
        if self._closing_tasks:
            await asyncio.gather(*self._closing_tasks, return_exceptions=True)
        _LOGGER.info("[%s] WS closed", self.host)

    # -------------------------------------------------------------------------
    # Internal: connection
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        client = LuminodeWsClient()
        try:
            await client.connect(self.host, timeout=self._connect_timeout)
        except LuminodeClientError as err:
            self._emit(StreamError(f"Connection to {self.host} failed: {err}"))
            self._disconnect(f"Connection to {self.host} failed", err)
            return

        self._client = client
        self._state = StreamState.OPEN
        _LOGGER.info("[%s] WebSocket connected", self.host)
        self._start_heartbeat()
        self._emit(StreamOpened())

        async for message in client:
            if message.type is LuminodeWsMessageType.TEXT:
                self._handle_text(client.decode(message))
            elif message.type is LuminodeWsMessageType.ERROR:
                self._emit(StreamError(message.data or "WebSocket error"))
            elif message.type is LuminodeWsMessageType.CLOSED:
                break

        self._disconnect(f"Connection to {self.host} closed")

    def _handle_text(self, value: object) -> None:
        if value == HEARTBEAT_PONG:
            self._clear_pong_deadline()
            return
        self._emit(StreamMessage(parse_stream_message(value)))

    def _disconnect(
        self, reason: str, error: LuminodeClientError | None = None
    ) -> None:
        """Report the loss once and schedule exactly one reconnect."""
        if self._state not in (StreamState.CONNECTING, StreamState.OPEN):
            return

        _LOGGER.info(
            "[%s] %s, reconnecting in %.1fs", self.host, reason, self._reconnect_delay
        )
        self._state = StreamState.RECONNECTING
        self._stop_heartbeat()

        task, self._listen_task = self._listen_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        self._release_client()

        self._emit(StreamClosed(reason, error))
        self._reconnect_handle = asyncio.get_running_loop().call_later(
            self._reconnect_delay, self._reconnect
        )

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if self._state is StreamState.RECONNECTING:
            self.open()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _release_client(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        task = asyncio.create_task(self._close_client(client))
        self._closing_tasks.add(task)
        task.add_done_callback(self._closing_tasks.discard)

    async def _close_client(self, client: LuminodeWsClient) -> None:
        try:
            await client.close()
        except Exception as err:
            _LOGGER.debug("[%s] Error closing WebSocket: %s", self.host, err)

    def _emit(self, event: StreamEvent) -> None:
        self._events.put_nowait(event)

    # -------------------------------------------------------------------------
    # Internal: heartbeat
    # -------------------------------------------------------------------------

    def _start_heartbeat(self) -> None:
        self._stop_heartbeat()
        self._ping_task = asyncio.create_task(
            self._heartbeat_loop(), name=f"luminode-ws-ping-{self.host}"
        )

    def _stop_heartbeat(self) -> None:
        if self._ping_task is not None:
            if self._ping_task is not asyncio.current_task():
                self._ping_task.cancel()
            self._ping_task = None
        self._clear_pong_deadline()
        self._last_ping_sent_at = None

    async def _heartbeat_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self._ping_interval)
            client = self._client
            if client is None:
                return
            # An outstanding deadline is not pushed back by further pings
            if self._pong_deadline is None:
                self._pong_deadline = loop.call_later(
                    self._pong_timeout, self._on_pong_timeout
                )
            self._last_ping_sent_at = loop.time()
            try:
                await client.send_text(HEARTBEAT_PING)
            except LuminodeClientError as err:
                # The pong deadline takes the connection down.
                _LOGGER.debug("[%s] Ping failed: %s", self.host, err)

    def _clear_pong_deadline(self) -> None:
        if self._pong_deadline is not None:
            self._pong_deadline.cancel()
            self._pong_deadline = None

    def _on_pong_timeout(self) -> None:
        self._pong_deadline = None
        self._disconnect(
            "Websocket Pong timeout",
            LuminodeHeartbeatTimeout(
                f"No pong within {self._pong_timeout}s from {self.host}"
            ),
        )
