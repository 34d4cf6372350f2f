"""High-level connection manager for a LumiNode device.

This module provides the API a control surface uses to talk to one device.
It handles:
- Target configuration and connection lifecycle
- Capability probing (does the firmware serve the WebSocket API?)
- Choosing between the WebSocket stream and HTTP polling
- Fire-and-forget command issuance
- Routing every inbound payload into the state store

Responses are tagged with the connection generation they were requested
under. Tearing down, reconnecting or reconfiguring moves the generation on,
so a response that arrives late is dropped instead of being applied to the
state of a connection that no longer exists.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from contextlib import suppress
from enum import Enum
from functools import partial
from typing import Any

import aiohttp

from . import protocol
from .config import LuminodeConfig
from .errors import LuminodeClientError
from .poller import FAST_POLL_INTERVAL, SLOW_POLL_INTERVAL, LuminodePoller
from .protocol import Command, supports_websocket
from .state import DeviceStateStore, VariablesCallback
from .stream import (
    PING_INTERVAL,
    PONG_TIMEOUT,
    RECONNECT_DELAY,
    LuminodeStream,
    StreamClosed,
    StreamError,
    StreamEvent,
    StreamMessage,
    StreamOpened,
)
from .transport.http import LuminodeHttpClient
from .translator import LuminodeTranslator

_LOGGER = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OK = "ok"
    ERROR = "error"


class TransportKind(Enum):
    NONE = "none"
    HTTP = "http"
    STREAM = "stream"


StatusCallback = Callable[[ConnectionStatus, str | None], None]


class LuminodeSession:
    """Connection manager for one LumiNode device.

    Usage:
        session = LuminodeSession()
        session.on_connection_state_changed(my_status_handler)
        session.on_variables_changed(my_variables_handler)
        await session.configure("192.168.1.10", "secret")
        await session.connect()
        session.send_command(protocol.play_control("go"))
        await session.destroy()
    """

    def __init__(
        self,
        *,
        http_session: aiohttp.ClientSession | None = None,
        fast_poll_interval: float = FAST_POLL_INTERVAL,
        slow_poll_interval: float = SLOW_POLL_INTERVAL,
        ping_interval: float = PING_INTERVAL,
        pong_timeout: float = PONG_TIMEOUT,
        reconnect_delay: float = RECONNECT_DELAY,
        request_timeout: float = 10.0,
    ) -> None:
        """Initialize session.

        Args:
            http_session: aiohttp session to issue requests with. When
                omitted, one is created on demand and closed by destroy().
            fast_poll_interval: Play state (and legacy device info) refresh
                interval (seconds)
            slow_poll_interval: Legacy profile catalog refresh interval
                (seconds)
            ping_interval: WebSocket heartbeat interval (seconds)
            pong_timeout: Heartbeat reply deadline (seconds)
            reconnect_delay: Delay before reopening a lost stream (seconds)
            request_timeout: Per-request HTTP timeout (seconds)
        """
        self.host: str | None = None
        self.password = ""

        self._http_session = http_session
        self._owns_http_session = http_session is None
        self._fast_poll_interval = fast_poll_interval
        self._slow_poll_interval = slow_poll_interval
        self._ping_interval = ping_interval
        self._pong_timeout = pong_timeout
        self._reconnect_delay = reconnect_delay
        self._request_timeout = request_timeout

        # Connection state
        self._generation = 0
        self._status = ConnectionStatus.DISCONNECTED
        self._transport_kind = TransportKind.NONE
        self._http: LuminodeHttpClient | None = None
        self._stream: LuminodeStream | None = None
        self._poller: LuminodePoller | None = None
        self._event_task: asyncio.Task[None] | None = None
        self._requests: set[asyncio.Task[None]] = set()

        self.store = DeviceStateStore()
        self._translator = LuminodeTranslator(
            self.store, request_play_refresh=self.refresh_play_info
        )

        self._status_callback: StatusCallback | None = None

    # -------------------------------------------------------------------------
    # Properties and callbacks
    # -------------------------------------------------------------------------

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def transport_kind(self) -> TransportKind:
        return self._transport_kind

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_connected(self) -> bool:
        return self._status is ConnectionStatus.OK

    def on_connection_state_changed(self, callback: StatusCallback) -> None:
        """Register callback for connection status changes.

        Callback receives the new status and an optional message.
        """
        self._status_callback = callback

    def on_variables_changed(self, callback: VariablesCallback) -> Callable[[], None]:
        """Register callback for changed variable values; returns unsubscribe."""
        return self.store.subscribe(callback)

    # -------------------------------------------------------------------------
    # Public API: Lifecycle
    # -------------------------------------------------------------------------

    async def configure(self, host: str | None, password: str | None = "") -> bool:
        """Set the target device.

        Returns:
            True if the target changed, False if it was already configured.
        """
        password = password or ""
        if host == self.host and password == self.password:
            return False

        await self.disconnect()
        self.host = host
        self.password = password
        self.store.reset()

        if host is None:
            self._http = None
            _LOGGER.debug("No device host configured")
            return True

        self._http = LuminodeHttpClient(
            self._get_http_session(),
            host,
            password=password,
            timeout=self._request_timeout,
        )
        return True

    async def apply_config(self, config: LuminodeConfig) -> bool:
        """Apply a configuration and connect when a host resolves.

        Returns:
            True if the device is connected afterwards.
        """
        host = config.resolve_host()
        changed = await self.configure(host, config.password)
        if host is None:
            return False
        if not changed and self.is_connected:
            return True
        return await self.connect()

    async def connect(self) -> bool:
        """Probe the device and start the matching transport.

        Returns:
            True if the probe succeeded, False otherwise
        """
        if self._http is None or self.host is None:
            _LOGGER.debug("Connect skipped: no device host configured")
            return False

        await self._teardown()
        generation = self._generation
        self._set_status(ConnectionStatus.CONNECTING)
        _LOGGER.info("[%s] Probing software version", self.host)

        try:
            version_info = await self._http.fetch_software_version()
        except LuminodeClientError as err:
            _LOGGER.warning("[%s] Connection failed: %s", self.host, err)
            if generation == self._generation:
                self._set_status(ConnectionStatus.ERROR, str(err))
            return False

        if generation != self._generation:
            _LOGGER.debug("[%s] Probe superseded", self.host)
            return False

        self._translator.handle_response(protocol.SOFTWARE_VERSION_PATH, version_info)
        use_stream = supports_websocket(version_info.get("current"))
        _LOGGER.debug("[%s] Support for Websockets: %s", self.host, use_stream)

        self._set_status(ConnectionStatus.OK)
        if use_stream:
            self._start_stream(self.host, generation)
        else:
            self._start_polling(self.host, generation)
        return True

    async def disconnect(self) -> None:
        """Stop the active transport and all timers; idempotent."""
        await self._teardown()
        self._set_status(ConnectionStatus.DISCONNECTED)

    async def destroy(self) -> None:
        """Disconnect, drop in-flight requests and release the HTTP session."""
        _LOGGER.debug("[%s] Destroy", self.host)
        await self.disconnect()

        requests, self._requests = self._requests, set()
        for task in requests:
            task.cancel()
        for task in requests:
            with suppress(asyncio.CancelledError):
                await task

        self.host = None
        self.password = ""
        self._http = None
        if self._owns_http_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # -------------------------------------------------------------------------
    # Public API: Commands
    # -------------------------------------------------------------------------

    def send_command(self, command: Command) -> None:
        """Issue a command over HTTP without waiting for the outcome.

        Failures are logged; the effect on device state is reported through
        the variables callback once the response has been applied.
        """
        if self._http is None:
            _LOGGER.warning(
                "Command %s %s lost: no device configured", command.method, command.path
            )
            return
        self._spawn(self._execute(command, self._generation))

    def refresh_play_info(self) -> None:
        """Re-query player discovery and play state without blocking."""
        if self._http is None:
            return
        self._spawn(self._refresh_play_info(self._generation))

    # -------------------------------------------------------------------------
    # Internal: Transport selection
    # -------------------------------------------------------------------------

    def _start_stream(self, host: str, generation: int) -> None:
        events: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._stream = LuminodeStream(
            host,
            events,
            ping_interval=self._ping_interval,
            pong_timeout=self._pong_timeout,
            reconnect_delay=self._reconnect_delay,
            connect_timeout=self._request_timeout,
        )
        self._event_task = asyncio.create_task(
            self._consume_stream_events(events, generation),
            name=f"luminode-events-{host}",
        )
        self._stream.open()

        # Play state is never pushed over the stream.
        self._poller = LuminodePoller(
            host,
            fast_jobs=[partial(self._refresh_play_info, generation)],
            fast_interval=self._fast_poll_interval,
            slow_interval=self._slow_poll_interval,
        )
        self._poller.start()
        self._transport_kind = TransportKind.STREAM

    def _start_polling(self, host: str, generation: int) -> None:
        self._poller = LuminodePoller(
            host,
            fast_jobs=[
                partial(self._execute, protocol.device_info(), generation),
                partial(self._refresh_play_info, generation),
            ],
            slow_jobs=[partial(self._refresh_profiles, generation)],
            fast_interval=self._fast_poll_interval,
            slow_interval=self._slow_poll_interval,
        )
        self._poller.start()
        self._transport_kind = TransportKind.HTTP

    async def _teardown(self) -> None:
        # Responses of everything issued so far become stale.
        self._generation += 1

        poller, self._poller = self._poller, None
        if poller is not None:
            await poller.stop()

        stream, self._stream = self._stream, None
        if stream is not None:
            await stream.close()

        task, self._event_task = self._event_task, None
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        self._transport_kind = TransportKind.NONE

    def _set_status(self, status: ConnectionStatus, message: str | None = None) -> None:
        """Update connection status and notify callback."""
        if self._status is status:
            return
        _LOGGER.debug("[%s] Status: %s → %s", self.host, self._status.value, status.value)
        self._status = status
        if self._status_callback:
            try:
                self._status_callback(status, message)
            except Exception as err:
                _LOGGER.exception("[%s] Status callback error: %s", self.host, err)

    # -------------------------------------------------------------------------
    # Internal: Stream events
    # -------------------------------------------------------------------------

    async def _consume_stream_events(
        self, events: asyncio.Queue[StreamEvent], generation: int
    ) -> None:
        while True:
            event = await events.get()
            if generation != self._generation:
                return
            try:
                self._handle_stream_event(event)
            except Exception as err:
                _LOGGER.exception("[%s] Stream event error: %s", self.host, err)

    def _handle_stream_event(self, event: StreamEvent) -> None:
        if isinstance(event, StreamMessage):
            self._translator.handle_stream_message(event.payload)
        elif isinstance(event, StreamOpened):
            _LOGGER.debug("[%s] Connection opened", self.host)
            self._set_status(ConnectionStatus.OK)
        elif isinstance(event, StreamError):
            _LOGGER.error("[%s] WebSocket error: %s", self.host, event.description)
        elif isinstance(event, StreamClosed):
            _LOGGER.debug("[%s] %s", self.host, event.reason)
            self._set_status(ConnectionStatus.DISCONNECTED, event.reason)

    # -------------------------------------------------------------------------
    # Internal: Requests
    # -------------------------------------------------------------------------

    def _get_http_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
            self._owns_http_session = True
        return self._http_session

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task: asyncio.Task[None] = asyncio.create_task(coro)
        self._requests.add(task)
        task.add_done_callback(self._requests.discard)

    async def _execute(self, command: Command, generation: int) -> None:
        """Run one request and apply its response if still current."""
        http = self._http
        if http is None or generation != self._generation:
            return
        try:
            payload = await http.request(command.path, command.method, command.body)
        except LuminodeClientError as err:
            _LOGGER.debug(
                "[%s] CMD error: %s %s: %s", self.host, command.method, command.path, err
            )
            return

        if generation != self._generation:
            _LOGGER.debug(
                "[%s] Discarding stale response for %s", self.host, command.path
            )
            return
        self._translator.handle_response(command.path, payload)

    async def _refresh_play_info(self, generation: int) -> None:
        await self._execute(protocol.player_discovery(), generation)
        if generation != self._generation:
            return
        player_index = self.store.snapshot.main_player_index
        if player_index is not None:
            await self._execute(protocol.player_state(player_index), generation)

    async def _refresh_profiles(self, generation: int) -> None:
        await self._execute(protocol.active_profile_name(), generation)
        await self._execute(protocol.profile_catalog(), generation)
