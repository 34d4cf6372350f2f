"""Connectivity core for Luminex LumiNode devices."""

__version__ = "0.1.0"

from .config import ConfigLoadError, LuminodeConfig, load_config
from .errors import (
    LuminodeClientError,
    LuminodeConnectionError,
    LuminodeHandshakeError,
    LuminodeHeartbeatTimeout,
    LuminodeProtocolError,
    LuminodeResponseError,
    LuminodeTimeout,
)
from .poller import LuminodePoller, PollerState
from .protocol import Command, parse_stream_message, supports_websocket
from .session import ConnectionStatus, LuminodeSession, TransportKind
from .state import (
    DeviceIdentity,
    DeviceSnapshot,
    DeviceStateStore,
    PlayState,
    ProfileEntry,
)
from .stream import LuminodeStream, StreamState
from .translator import LuminodeTranslator
from .transport import LuminodeHttpClient, LuminodeWsClient

__all__ = [
    "Command",
    "ConfigLoadError",
    "ConnectionStatus",
    "DeviceIdentity",
    "DeviceSnapshot",
    "DeviceStateStore",
    "LuminodeClientError",
    "LuminodeConfig",
    "LuminodeConnectionError",
    "LuminodeHandshakeError",
    "LuminodeHeartbeatTimeout",
    "LuminodeHttpClient",
    "LuminodePoller",
    "LuminodeProtocolError",
    "LuminodeResponseError",
    "LuminodeSession",
    "LuminodeStream",
    "LuminodeTimeout",
    "LuminodeTranslator",
    "LuminodeWsClient",
    "PlayState",
    "PollerState",
    "ProfileEntry",
    "StreamState",
    "TransportKind",
    "__version__",
    "load_config",
    "parse_stream_message",
    "supports_websocket",
]
