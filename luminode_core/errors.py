"""Client error types for LumiNode device interactions."""

from __future__ import annotations


class LuminodeClientError(Exception):
    """Base error for LumiNode client failures."""


class LuminodeTimeout(LuminodeClientError):
    """Timeout while communicating with the device."""


class LuminodeConnectionError(LuminodeClientError):
    """Network connection to the device failed."""


class LuminodeHandshakeError(LuminodeClientError):
    """WebSocket handshake failed."""


class LuminodeResponseError(LuminodeClientError):
    """HTTP response error from the device.

    The device API has no distinguishable error payload, so rejected
    credentials surface here as a plain non-2xx status.
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class LuminodeProtocolError(LuminodeClientError):
    """Device answered with a payload that is not the expected JSON."""


class LuminodeHeartbeatTimeout(LuminodeClientError):
    """No heartbeat reply arrived before the pong deadline."""
