"""Tests for LuminodeTranslator routing."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from luminode_core.protocol import parse_stream_message
from luminode_core.state import DeviceStateStore, PlayState, ProfileEntry
from luminode_core.translator import LuminodeTranslator

DEVICE_INFO = {
    "short_name": "LN12",
    "long_name": "LumiNode 12 FOH",
    "nr_dmx_ports": 12,
    "nr_processblocks": 16,
    "serial": "LN12-0042",
    "mac_address": "00:11:22:33:44:55",
    "type": "LumiNode 12",
}


@pytest.fixture
def store() -> DeviceStateStore:
    return DeviceStateStore()


@pytest.fixture
def refresh() -> MagicMock:
    return MagicMock()


@pytest.fixture
def translator(store: DeviceStateStore, refresh: MagicMock) -> LuminodeTranslator:
    return LuminodeTranslator(store, request_play_refresh=refresh)


class TestHandleResponse:
    def test_device_info(self, translator, store):
        changed = MagicMock()
        store.subscribe(changed)

        translator.handle_response("deviceinfo", DEVICE_INFO)
        translator.handle_response("deviceinfo", DEVICE_INFO)

        changed.assert_called_once()
        assert changed.call_args.args[0]["device_type"] == "LumiNode 12"
        assert store.snapshot.identity.nr_dmx_ports == 12

    def test_software_version(self, translator, store):
        translator.handle_response(
            "software/version", {"current": "2.7.1", "alternate": "2.6.3"}
        )

        assert store.snapshot.current_version == "2.7.1"
        assert store.snapshot.alternate_version == "2.6.3"

    def test_player_discovery_uses_first_player(self, translator, store):
        translator.handle_response("IO?io_class=player", [{"id": 5}, {"id": 9}])

        assert store.snapshot.main_player_index == 5

    def test_empty_player_list_resets(self, translator, store):
        translator.handle_response("IO?io_class=player", [{"id": 1}])
        translator.handle_response(
            "play/player/1", {"playing_snapshot_id": "1.00", "next_snapshot_id": "1.10"}
        )

        translator.handle_response("IO?io_class=player", [])

        assert store.snapshot.main_player_index is None
        assert store.snapshot.play_state == PlayState()

    def test_player_without_id_clears_main_player(self, translator, store):
        translator.handle_response("IO?io_class=player", [{"id": 2}])

        translator.handle_response("IO?io_class=player", [{"name": "Player 1"}])

        assert store.snapshot.main_player_index is None

    def test_out_of_range_numbers_are_dropped(self, translator, store):
        translator.handle_response(
            "deviceinfo", {"short_name": "LN12", "nr_dmx_ports": float("inf")}
        )

        assert store.snapshot.identity.short_name == "LN12"
        assert store.snapshot.identity.nr_dmx_ports is None

    def test_play_state_missing_ids_become_marker(self, translator, store):
        translator.handle_response("play/player/0", {"playing_snapshot_id": "3.00"})

        assert store.snapshot.play_state == PlayState("3.00", "-")

    def test_active_profile_name(self, translator, store):
        translator.handle_response("active_profile_name", {"name": "Festival"})

        assert store.snapshot.active_profile_name == "Festival"

    def test_profile_catalog(self, translator, store):
        translator.handle_response(
            "profile", [{"id": 0, "name": "A"}, {"id": 1, "name": "B"}, {"name": "x"}]
        )

        assert store.snapshot.profiles == (ProfileEntry(0, "A"), ProfileEntry(1, "B"))

    @pytest.mark.parametrize(
        ("path", "payload"),
        [
            ("profile", {"id": 0, "name": "A"}),
            ("profile", None),
            ("deviceinfo", "not an object"),
            ("IO?io_class=player", {"id": 1}),
            ("play/player/0", []),
            ("active_profile_name", {}),
            ("software/version", "2.7.1"),
        ],
    )
    def test_malformed_payloads_are_dropped(self, translator, store, path, payload):
        changed = MagicMock()
        store.subscribe(changed)
        before = store.snapshot

        translator.handle_response(path, payload)

        changed.assert_not_called()
        assert store.snapshot == before

    @pytest.mark.parametrize("path", ["play/control", "play/play_snapshot"])
    def test_play_commands_trigger_refresh(self, translator, refresh, path):
        translator.handle_response(path, None)

        refresh.assert_called_once_with()

    def test_other_command_results_are_ignored(self, translator, refresh, store):
        before = store.snapshot

        translator.handle_response("profile/0/recall", None)
        translator.handle_response("reboot", None)

        refresh.assert_not_called()
        assert store.snapshot == before


class TestHandleStreamMessage:
    def test_api_tree_replays_three_entities(self, translator, store):
        translator.handle_stream_message(
            parse_stream_message(
                {
                    "op": "replace",
                    "path": "/api",
                    "value": {
                        "deviceinfo": DEVICE_INFO,
                        "active_profile_name": {"name": "Default"},
                        "profile": [{"id": 0, "name": "Default"}],
                    },
                }
            )
        )

        assert store.snapshot.identity.short_name == "LN12"
        assert store.snapshot.active_profile_name == "Default"
        assert store.snapshot.profiles == (ProfileEntry(0, "Default"),)

    def test_profile_replace_updates_single_entry(self, translator, store):
        store.replace_profiles([ProfileEntry(0, "A"), ProfileEntry(1, "B")])
        changed = MagicMock()
        store.subscribe(changed)

        translator.handle_stream_message(
            parse_stream_message(
                {"op": "replace", "path": "/api/profile/1", "value": {"name": "B2"}}
            )
        )

        changed.assert_called_once_with({"profile_2_name": "B2"})

    def test_profile_other_ops_ignored(self, translator, store):
        translator.handle_stream_message(
            parse_stream_message(
                {"op": "remove", "path": "/api/profile/1", "value": None}
            )
        )

        assert store.snapshot.profiles == ()

    def test_unrecognized_is_dropped(self, translator, store):
        before = store.snapshot

        translator.handle_stream_message(parse_stream_message({"op": "replace", "path": "/api/dmx"}))
        translator.handle_stream_message(parse_stream_message("garbage"))

        assert store.snapshot == before
