"""Translate device responses and stream messages into store updates."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from .protocol import (
    ACTIVE_PROFILE_NAME_PATH,
    DEVICE_INFO_PATH,
    PLAY_CONTROL_PATH,
    PLAY_SNAPSHOT_PATH,
    PLAYER_DISCOVERY_PATH,
    PROFILE_PATH,
    SOFTWARE_VERSION_PATH,
    ActiveProfileNameMessage,
    ApiTreeMessage,
    DeviceInfoMessage,
    ProfileMessage,
    StreamPayload,
    UnrecognizedMessage,
)
from .state import (
    NO_SNAPSHOT,
    DeviceIdentity,
    DeviceStateStore,
    PlayState,
    ProfileEntry,
)

_LOGGER = logging.getLogger(__name__)

_PLAYER_STATE_RE = re.compile(r"^play/player/\d+$")


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def parse_device_info(payload: Any) -> DeviceIdentity | None:
    if not isinstance(payload, dict):
        return None
    return DeviceIdentity(
        short_name=_optional_str(payload.get("short_name")),
        long_name=_optional_str(payload.get("long_name")),
        serial=_optional_str(payload.get("serial")),
        mac_address=_optional_str(payload.get("mac_address")),
        device_type=_optional_str(payload.get("type")),
        nr_dmx_ports=_optional_int(payload.get("nr_dmx_ports")),
        nr_processblocks=_optional_int(payload.get("nr_processblocks")),
    )


def parse_profile(index: int, payload: Any) -> ProfileEntry | None:
    if not isinstance(payload, dict):
        return None
    name = payload.get("name")
    return ProfileEntry(index=index, name="" if name is None else str(name))


def parse_profile_catalog(payload: Any) -> list[ProfileEntry] | None:
    """Parse ``[{id, name}, ...]``; entries without an integer id are skipped."""
    if not isinstance(payload, list):
        return None
    entries: list[ProfileEntry] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        index = _optional_int(item.get("id"))
        if index is None or index < 0:
            continue
        entry = parse_profile(index, item)
        if entry is not None:
            entries.append(entry)
    return entries


class LuminodeTranslator:
    """Route (path, payload) pairs and stream messages to store entry points.

    Args:
        store: Store receiving the updates.
        request_play_refresh: Called after a play command completed, so the
            play state is fetched right away instead of on the next poll.
    """

    def __init__(
        self,
        store: DeviceStateStore,
        *,
        request_play_refresh: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._request_play_refresh = request_play_refresh

    # -------------------------------------------------------------------------
    # HTTP responses
    # -------------------------------------------------------------------------

    def handle_response(self, path: str, payload: Any) -> None:
        """Apply the response of ``/api/<path>`` to the store."""
        if path == SOFTWARE_VERSION_PATH:
            self.apply_software_version(payload)
        elif path == DEVICE_INFO_PATH:
            self.apply_device_info(payload)
        elif path == PLAYER_DISCOVERY_PATH:
            self.apply_player_discovery(payload)
        elif _PLAYER_STATE_RE.match(path):
            self.apply_play_state(payload)
        elif path == ACTIVE_PROFILE_NAME_PATH:
            self.apply_active_profile_name(payload)
        elif path == PROFILE_PATH:
            self.apply_profile_catalog(payload)
        elif path in (PLAY_CONTROL_PATH, PLAY_SNAPSHOT_PATH):
            self._play_command_completed()
        else:
            _LOGGER.debug("Unhandled command %s: %r", path, payload)

    def apply_software_version(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            _LOGGER.debug("Dropping software version payload: %r", payload)
            return
        self._store.update_software_version(
            _optional_str(payload.get("current")),
            _optional_str(payload.get("alternate")),
        )

    def apply_device_info(self, payload: Any) -> None:
        identity = parse_device_info(payload)
        if identity is None:
            _LOGGER.debug("Dropping device info payload: %r", payload)
            return
        self._store.update_device_info(identity)

    def apply_player_discovery(self, payload: Any) -> None:
        if not isinstance(payload, list):
            _LOGGER.debug("Dropping player list payload: %r", payload)
            return
        if not payload:
            self._store.update_player_discovery(None)
            return
        first = payload[0]
        player_index = (
            _optional_int(first.get("id")) if isinstance(first, dict) else None
        )
        if player_index is None:
            # No usable main player; stop querying the previous one
            _LOGGER.debug("Player entry without id: %r", first)
        self._store.update_player_discovery(player_index)

    def apply_play_state(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            _LOGGER.debug("Dropping play state payload: %r", payload)
            return
        current = payload.get("playing_snapshot_id")
        upcoming = payload.get("next_snapshot_id")
        self._store.update_play_state(
            PlayState(
                current_snapshot=NO_SNAPSHOT if current is None else str(current),
                next_snapshot=NO_SNAPSHOT if upcoming is None else str(upcoming),
            )
        )

    def apply_active_profile_name(self, payload: Any) -> None:
        if not isinstance(payload, dict) or payload.get("name") is None:
            _LOGGER.debug("Dropping active profile payload: %r", payload)
            return
        self._store.update_active_profile_name(str(payload["name"]))

    def apply_profile_catalog(self, payload: Any) -> None:
        entries = parse_profile_catalog(payload)
        if entries is None:
            _LOGGER.debug("Dropping profile catalog payload: %r", payload)
            return
        self._store.replace_profiles(entries)

    def apply_profile(self, index: int, payload: Any) -> None:
        entry = parse_profile(index, payload)
        if entry is None:
            _LOGGER.debug("Dropping profile %d payload: %r", index, payload)
            return
        self._store.update_profile(entry)

    def _play_command_completed(self) -> None:
        if self._request_play_refresh is not None:
            self._request_play_refresh()

    # -------------------------------------------------------------------------
    # Stream messages
    # -------------------------------------------------------------------------

    def handle_stream_message(self, message: StreamPayload) -> None:
        """Apply a typed stream message to the store."""
        if isinstance(message, ApiTreeMessage):
            self.apply_device_info(message.device_info)
            self.apply_active_profile_name(message.active_profile_name)
            self.apply_profile_catalog(message.profiles)
        elif isinstance(message, DeviceInfoMessage):
            self.apply_device_info(message.value)
        elif isinstance(message, ActiveProfileNameMessage):
            self.apply_active_profile_name(message.value)
        elif isinstance(message, ProfileMessage):
            if message.op == "replace":
                self.apply_profile(message.index, message.value)
            else:
                _LOGGER.debug(
                    "Unhandled profile WS message: /api/profile/%d (%s)",
                    message.index,
                    message.op,
                )
        elif isinstance(message, UnrecognizedMessage):
            _LOGGER.debug("Unhandled WS message: %s", message.path or message.raw)
