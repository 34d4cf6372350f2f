"""Transport layer for the LumiNode connectivity core.

This package contains all IO and network handling.

Components:
- http: HTTP client for REST API calls
- ws: WebSocket connection management
- ws_client: WebSocket message iteration
"""

from .http import LuminodeHttpClient
from .ws import connect_websocket
from .ws_client import LuminodeWsClient, LuminodeWsMessage, LuminodeWsMessageType

__all__ = [
    "LuminodeHttpClient",
    "LuminodeWsClient",
    "LuminodeWsMessage",
    "LuminodeWsMessageType",
    "connect_websocket",
]
