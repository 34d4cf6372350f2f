"""Local mirror of LumiNode device state.

The store holds a single immutable :class:`DeviceSnapshot`. Every entry
point builds a new snapshot with :func:`dataclasses.replace` and commits it
through one path, which diffs the exported variables of the old and new
snapshot and notifies observers of the keys whose value changed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any

_LOGGER = logging.getLogger(__name__)

NO_SNAPSHOT = "-"

VariableValues = dict[str, Any]
VariablesCallback = Callable[[VariableValues], None]


@dataclass(frozen=True)
class DeviceIdentity:
    """Identity fields reported by ``/api/deviceinfo``."""

    short_name: str | None = None
    long_name: str | None = None
    serial: str | None = None
    mac_address: str | None = None
    device_type: str | None = None
    nr_dmx_ports: int | None = None
    nr_processblocks: int | None = None


@dataclass(frozen=True)
class ProfileEntry:
    """A saved device configuration. ``index`` is 0-based."""

    index: int
    name: str

    @property
    def variable_id(self) -> str:
        return f"profile_{self.index + 1}_name"


@dataclass(frozen=True)
class PlayState:
    current_snapshot: str = NO_SNAPSHOT
    next_snapshot: str = NO_SNAPSHOT


@dataclass(frozen=True)
class DeviceSnapshot:
    """Immutable view of everything known about the device."""

    identity: DeviceIdentity = field(default_factory=DeviceIdentity)
    current_version: str | None = None
    alternate_version: str | None = None
    active_profile_name: str | None = None
    profiles: tuple[ProfileEntry, ...] = ()
    play_state: PlayState = field(default_factory=PlayState)
    main_player_index: int | None = None

    def profile(self, index: int) -> ProfileEntry | None:
        """Return the profile at 0-based ``index`` if the device reported it."""
        for entry in self.profiles:
            if entry.index == index:
                return entry
        return None

    def is_playing(self, snapshot_id: str) -> bool:
        current = self.play_state.current_snapshot
        return bool(current) and current == snapshot_id

    def is_next(self, snapshot_id: str) -> bool:
        upcoming = self.play_state.next_snapshot
        return bool(upcoming) and upcoming == snapshot_id

    def variables(self) -> VariableValues:
        """Return the exported variables, keyed by variable id.

        Fields the device has not reported yet are left out.
        """
        identity = self.identity
        values: VariableValues = {
            "short_name": identity.short_name,
            "long_name": identity.long_name,
            "nr_dmx_ports": identity.nr_dmx_ports,
            "nr_processblocks": identity.nr_processblocks,
            "serial": identity.serial,
            "mac_address": identity.mac_address,
            "device_type": identity.device_type,
            "current_version": self.current_version,
            "alternate_version": self.alternate_version,
            "active_profile_name": self.active_profile_name,
        }
        values = {key: value for key, value in values.items() if value is not None}
        values["current_snapshot"] = self.play_state.current_snapshot
        values["next_snapshot"] = self.play_state.next_snapshot
        for entry in self.profiles:
            values[entry.variable_id] = entry.name
        return values


_MISSING = object()


def diff_variables(old: VariableValues, new: VariableValues) -> VariableValues:
    """Return the entries of ``new`` that are absent from or differ in ``old``."""
    return {
        key: value for key, value in new.items() if old.get(key, _MISSING) != value
    }


class DeviceStateStore:
    """Authoritative in-memory device state with change notification."""

    def __init__(self) -> None:
        self._snapshot = DeviceSnapshot()
        self._observers: list[VariablesCallback] = []

    @property
    def snapshot(self) -> DeviceSnapshot:
        return self._snapshot

    def subscribe(self, callback: VariablesCallback) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return _unsubscribe

    def reset(self) -> None:
        """Forget everything; used when the target device changes."""
        self._snapshot = DeviceSnapshot()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def update_device_info(self, identity: DeviceIdentity) -> VariableValues:
        return self._commit(replace(self._snapshot, identity=identity))

    def update_software_version(
        self, current: str | None, alternate: str | None
    ) -> VariableValues:
        return self._commit(
            replace(
                self._snapshot, current_version=current, alternate_version=alternate
            )
        )

    def update_player_discovery(self, player_index: int | None) -> VariableValues:
        """Record the main player, or reset play state when there is none."""
        if player_index is None:
            return self._commit(
                replace(
                    self._snapshot, main_player_index=None, play_state=PlayState()
                )
            )
        return self._commit(replace(self._snapshot, main_player_index=player_index))

    def update_play_state(self, play_state: PlayState) -> VariableValues:
        return self._commit(replace(self._snapshot, play_state=play_state))

    def update_active_profile_name(self, name: str) -> VariableValues:
        return self._commit(replace(self._snapshot, active_profile_name=name))

    def replace_profiles(self, profiles: Iterable[ProfileEntry]) -> VariableValues:
        """Replace the whole profile catalog.

        Only profiles whose name differs from the stored catalog are
        notified.
        """
        by_index = {entry.index: entry for entry in profiles}
        ordered = tuple(by_index[index] for index in sorted(by_index))
        return self._commit(replace(self._snapshot, profiles=ordered))

    def update_profile(self, profile: ProfileEntry) -> VariableValues:
        """Insert or replace a single profile entry, keeping the others."""
        entries = {entry.index: entry for entry in self._snapshot.profiles}
        entries[profile.index] = profile
        ordered = tuple(entries[index] for index in sorted(entries))
        return self._commit(replace(self._snapshot, profiles=ordered))

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def _commit(self, snapshot: DeviceSnapshot) -> VariableValues:
        changed = diff_variables(self._snapshot.variables(), snapshot.variables())
        self._snapshot = snapshot
        if changed:
            self._notify(changed)
        return changed

    def _notify(self, changed: VariableValues) -> None:
        for callback in list(self._observers):
            try:
                callback(dict(changed))
            except Exception as err:
                _LOGGER.exception("Variables callback error: %s", err)
