"""WebSocket helpers for LumiNode device transport."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
    WebSocketException,
)
from websockets.typing import Subprotocol

from ..errors import (
    LuminodeConnectionError,
    LuminodeHandshakeError,
    LuminodeTimeout,
)
from ..protocol import WS_PATH, WS_SUBPROTOCOL


async def connect_websocket(
    host: str,
    *,
    timeout: float = 10.0,
) -> ClientConnection:
    """Connect to the device WebSocket endpoint.

    Protocol-level pings are disabled: liveness is checked with the
    application heartbeat (``"ping"``/``"pong"`` text frames) the device
    implements.

    Args:
        host: Target host
        timeout: Connection timeout
    """
    ws_url = f"ws://{host}{WS_PATH}"
    try:
        return await asyncio.wait_for(
            websockets.connect(
                ws_url,
                subprotocols=[Subprotocol(WS_SUBPROTOCOL)],
                ping_interval=None,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise LuminodeTimeout("WebSocket connection timed out") from err
    except InvalidStatus as err:
        raise LuminodeHandshakeError(
            f"WebSocket upgrade rejected with status {err.response.status_code}"
        ) from err
    except (InvalidHandshake, InvalidURI) as err:
        # Includes a device that does not accept the subprotocol
        raise LuminodeHandshakeError(f"WebSocket handshake failed: {err}") from err
    except (OSError, WebSocketException) as err:
        raise LuminodeConnectionError("WebSocket connection failed") from err
