"""Protocol helpers for the LumiNode HTTP and WebSocket API.

This module holds the wire constants, the firmware capability check, typed
command builders for the REST endpoints, and the typed variants that inbound
WebSocket envelopes are parsed into.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Final

WS_PATH: Final = "/api/ws"
WS_SUBPROTOCOL: Final = "luminex-luminode-v1-json"
HEARTBEAT_PING: Final = "ping"
HEARTBEAT_PONG: Final = "pong"

AUTH_USERNAME: Final = "admin"

SOFTWARE_VERSION_PATH: Final = "software/version"
DEVICE_INFO_PATH: Final = "deviceinfo"
PLAYER_DISCOVERY_PATH: Final = "IO?io_class=player"
PLAYER_STATE_PATH: Final = "play/player"
ACTIVE_PROFILE_NAME_PATH: Final = "active_profile_name"
PROFILE_PATH: Final = "profile"
PLAY_CONTROL_PATH: Final = "play/control"
PLAY_SNAPSHOT_PATH: Final = "play/play_snapshot"

PLAY_ACTIONS: tuple[str, ...] = ("go", "forward", "back", "reset")

# First firmware release that serves /api/ws
WS_MIN_VERSION: tuple[int, int, int] = (2, 7, 0)

_VERSION_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


# -----------------------------------------------------------------------------
# Firmware capability
# -----------------------------------------------------------------------------


def parse_version(raw: str) -> tuple[int, int, int] | None:
    """Extract ``(major, minor, patch)`` from a firmware version string.

    Accepts ``v2.7.1``, ``2.7`` and suffixed builds such as ``2.7.1RC1-abc``.
    Missing components default to 0. Returns None when the string does not
    start with a version number.
    """
    match = _VERSION_RE.match(raw)
    if match is None:
        return None
    major, minor, patch = (int(group or 0) for group in match.groups())
    return major, minor, patch


def supports_websocket(raw: Any) -> bool:
    """Return True when firmware ``raw`` serves the streaming endpoint.

    An absent or empty version means legacy firmware. A version that does not
    parse at all is assumed to be a custom build of recent firmware.
    """
    if not raw or not isinstance(raw, str):
        return False
    version = parse_version(raw)
    if version is None:
        return True
    return version >= WS_MIN_VERSION


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Command:
    """A single REST call against ``/api/<path>``."""

    path: str
    method: str = "GET"
    body: dict[str, Any] | None = None


def _zero_based(number: int, what: str) -> int:
    if isinstance(number, bool) or not isinstance(number, int):
        raise ValueError(f"{what} must be an integer, got {type(number).__name__}")
    if number < 1:
        raise ValueError(f"{what} is 1-based, got {number}")
    return number - 1


def software_version() -> Command:
    return Command(SOFTWARE_VERSION_PATH)


def device_info() -> Command:
    return Command(DEVICE_INFO_PATH)


def player_discovery() -> Command:
    return Command(PLAYER_DISCOVERY_PATH)


def player_state(player_index: int) -> Command:
    """Query live play state of the player input at ``player_index``."""
    return Command(f"{PLAYER_STATE_PATH}/{player_index}")


def active_profile_name() -> Command:
    return Command(ACTIVE_PROFILE_NAME_PATH)


def profile_catalog() -> Command:
    return Command(PROFILE_PATH)


def identify() -> Command:
    return Command("identify", "POST")


def reboot() -> Command:
    return Command("reboot", "POST")


def reset(*, keep_ip_settings: bool = True, keep_user_profiles: bool = True) -> Command:
    """Factory reset, optionally keeping network settings and user profiles."""
    return Command(
        "reset",
        "POST",
        {
            "keep_ip_settings": keep_ip_settings,
            "keep_user_profiles": keep_user_profiles,
        },
    )


def display(display_on: bool) -> Command:
    return Command("display", "POST", {"display_on": display_on})


def recall_profile(profile: int, *, keep_ip_settings: bool = True) -> Command:
    """Recall configuration from a profile.

    Args:
        profile: 1-based profile number as shown to operators.
        keep_ip_settings: Keep the current network settings.
    """
    index = _zero_based(profile, "profile")
    return Command(
        f"{PROFILE_PATH}/{index}/recall",
        "POST",
        {"keep_ip_settings": keep_ip_settings},
    )


def save_profile(profile: int, name: str) -> Command:
    """Save the current configuration to a 1-based profile slot."""
    index = _zero_based(profile, "profile")
    if not name:
        raise ValueError("profile name is required")
    return Command(f"{PROFILE_PATH}/{index}/save", "POST", {"name": str(name)})


def dmx_acknowledge(port: int | None = None) -> Command:
    """Acknowledge stream loss indications on one 1-based port, or all."""
    if port is None:
        return Command("dmx/acknowledge", "POST")
    return Command(f"dmx/{_zero_based(port, 'port')}/acknowledge", "POST")


def force_rdm_discovery(port: int | None = None) -> Command:
    """Force RDM discovery on one 1-based port, or all."""
    if port is None:
        return Command("dmx/force_discovery", "POST")
    return Command(f"dmx/{_zero_based(port, 'port')}/force_discovery", "POST")


def play_control(action: str) -> Command:
    """Control all players (go, forward, back or reset)."""
    if action not in PLAY_ACTIONS:
        raise ValueError(f"Unknown play action: {action}")
    return Command(PLAY_CONTROL_PATH, "POST", {"action": action})


def play_snapshot(snapshot_id: str) -> Command:
    return Command(PLAY_SNAPSHOT_PATH, "POST", {"snapshot_id": snapshot_id})


# -----------------------------------------------------------------------------
# Inbound stream messages
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ApiTreeMessage:
    """Full ``/api`` tree replay."""

    op: str
    device_info: Any
    active_profile_name: Any
    profiles: Any


@dataclass(frozen=True)
class DeviceInfoMessage:
    op: str
    value: Any


@dataclass(frozen=True)
class ActiveProfileNameMessage:
    op: str
    value: Any


@dataclass(frozen=True)
class ProfileMessage:
    """Change of a single profile entry at ``/api/profile/<index>``."""

    op: str
    index: int
    value: Any


@dataclass(frozen=True)
class UnrecognizedMessage:
    """Anything that is not a known envelope; logged and dropped."""

    raw: Any
    path: str | None = None
    op: str | None = None


StreamPayload = (
    ApiTreeMessage
    | DeviceInfoMessage
    | ActiveProfileNameMessage
    | ProfileMessage
    | UnrecognizedMessage
)

_PROFILE_PATH_RE = re.compile(r"^/api/profile/(\d+)$")


def parse_stream_message(value: Any) -> StreamPayload:
    """Map a decoded ``{op, path, value}`` envelope to a typed variant.

    Never raises: unknown shapes become :class:`UnrecognizedMessage`.
    """
    if not isinstance(value, dict):
        return UnrecognizedMessage(value)

    op = value.get("op")
    path = value.get("path")
    if not isinstance(op, str) or not op or not isinstance(path, str) or not path:
        return UnrecognizedMessage(value)

    payload = value.get("value")

    if path == "/api":
        tree = payload if isinstance(payload, dict) else {}
        return ApiTreeMessage(
            op=op,
            device_info=tree.get("deviceinfo"),
            active_profile_name=tree.get("active_profile_name"),
            profiles=tree.get("profile"),
        )
    if path == "/api/deviceinfo":
        return DeviceInfoMessage(op=op, value=payload)
    if path == "/api/active_profile_name":
        return ActiveProfileNameMessage(op=op, value=payload)
    if match := _PROFILE_PATH_RE.match(path):
        return ProfileMessage(op=op, index=int(match.group(1)), value=payload)

    return UnrecognizedMessage(value, path=path, op=op)
