"""WebSocket client wrapper for LumiNode."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from ..errors import LuminodeClientError, LuminodeConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class LuminodeWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class LuminodeWsMessage:
    """Normalized WebSocket message payload."""

    type: LuminodeWsMessageType
    data: str | None = None


class LuminodeWsClient:
    """Wrapper around the websockets library for LumiNode."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    async def connect(self, host: str, *, timeout: float = 10.0) -> None:
        """Connect to the device websocket."""
        self._ws = await connect_websocket(host, timeout=timeout)

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_text(self, data: str) -> None:
        """Send a raw text frame."""
        if self._ws is None:
            raise LuminodeConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(data)
        except ConnectionClosed as err:
            raise LuminodeConnectionError("WebSocket closed while sending") from err

    def __aiter__(self) -> AsyncIterator[LuminodeWsMessage]:
        if self._ws is None:
            raise LuminodeConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[LuminodeWsMessage]:
        if self._ws is None:
            raise LuminodeConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed:
            yield LuminodeWsMessage(type=LuminodeWsMessageType.CLOSED)
        except Exception as err:
            yield LuminodeWsMessage(type=LuminodeWsMessageType.ERROR, data=str(err))
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield LuminodeWsMessage(type=LuminodeWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> LuminodeWsMessage | None:
        """Normalize frames into LuminodeWsMessage; binary frames are skipped."""
        if isinstance(msg, (bytes, bytearray, memoryview)):
            return None
        if isinstance(msg, str):
            return LuminodeWsMessage(LuminodeWsMessageType.TEXT, msg)
        return LuminodeWsMessage(LuminodeWsMessageType.TEXT, str(msg))

    @staticmethod
    def decode(message: LuminodeWsMessage) -> Any:
        """Decode a TEXT message payload.

        Frames that are not valid JSON are returned as the raw text, since
        the device may send bare tokens such as ``pong``.
        """
        if message.type is not LuminodeWsMessageType.TEXT:
            raise LuminodeClientError("Only TEXT messages can be decoded")
        if not isinstance(message.data, str):
            raise LuminodeClientError("Message data is not a string")
        try:
            return json.loads(message.data)
        except ValueError:
            return message.data
