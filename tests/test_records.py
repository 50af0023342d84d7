"""Unit tests for record models and the dual-shape decoder."""

import json

import pytest

from unifi_compat.errors import DecodeError, RecordShapeError, UnsupportedShapeError
from unifi_compat.flex import FlexInt
from unifi_compat.records import (
    AccessPoint,
    AccessPointStat,
    RogueAP,
    ServerStatus,
    decode_dual_shape,
    decode_list,
    decode_record,
)


class TestDualShape:
    """Nested shape first, flat shape second."""

    def test_nested_shape(self):
        stat = decode_dual_shape(AccessPointStat, {"ap": {"bytes": 10}}, "ap")
        assert stat.bytes.value == 10

    def test_flat_shape(self):
        stat = decode_dual_shape(AccessPointStat, {"bytes": 10}, "ap")
        assert stat.bytes.value == 10

    def test_both_shapes_agree(self):
        fields = {"bytes": "2048", "tx_packets": 7, "user-num_sta": None, "site_id": "s1"}
        nested = decode_dual_shape(AccessPointStat, {"ap": dict(fields)}, "ap")
        flat = decode_dual_shape(AccessPointStat, dict(fields), "ap")
        assert nested.bytes == flat.bytes
        assert nested.tx_packets == flat.tx_packets
        assert nested.user_num_sta == flat.user_num_sta
        assert nested.site_id == flat.site_id

    def test_flat_record_with_string_envelope_field(self):
        # 5.10 stat records carry "ap" as the access point MAC string
        stat = decode_dual_shape(AccessPointStat, {"ap": "aa:bb:cc:dd:ee:ff", "bytes": 3}, "ap")
        assert stat.ap == "aa:bb:cc:dd:ee:ff"
        assert stat.bytes.value == 3

    def test_double_failure_surfaces_flat_error(self):
        with pytest.raises(UnsupportedShapeError) as excinfo:
            decode_dual_shape(AccessPointStat, {"ap": {"bytes": [1]}, "bytes": {"x": 1}}, "ap")
        assert excinfo.value.raw == {"x": 1}

    def test_non_object_body(self):
        with pytest.raises(RecordShapeError):
            decode_dual_shape(AccessPointStat, [1, 2, 3], "ap")


class TestRecords:
    """Models decode flex fields and keep unknown keys."""

    def test_server_status(self):
        status = decode_record(ServerStatus, {"up": "true", "server_version": "7.4.162", "uuid": "u-1"})
        assert status.up.value is True
        assert status.server_version == "7.4.162"

    def test_unsupported_shape_propagates_unchanged(self):
        with pytest.raises(UnsupportedShapeError):
            decode_record(RogueAP, {"rssi": {"dbm": -40}})

    def test_out_of_range_counter_is_a_decode_error(self):
        with pytest.raises(DecodeError):
            decode_record(RogueAP, json.loads('{"rssi": 1' + "0" * 400 + "}"))

    def test_wrong_field_type_is_record_shape_error(self):
        with pytest.raises(RecordShapeError):
            decode_record(RogueAP, {"essid": ["not", "a", "string"]})

    def test_defaults_for_missing_fields(self):
        rogue = decode_record(RogueAP, {"essid": "neighbor"})
        assert rogue.rssi == FlexInt()
        assert rogue.is_rogue.value is False

    def test_extra_keys_are_kept(self):
        rogue = decode_record(RogueAP, {"essid": "x", "vendor_specific": 1})
        assert rogue.model_extra["vendor_specific"] == 1

    def test_access_point_nested_stat_and_temps(self):
        ap = decode_record(AccessPoint, {
            "_id": "dev1",
            "type": "uap",
            "adopted": "1",
            "state": "1",
            "general_temperature": "45 C",
            "ethernet_overrides": ["eth0", "eth1"],
            "system-stats": {"cpu": "3.1", "mem": "40", "temps": {"cpu": 51, "board": "47.5 C"}},
            "stat": {"ap": {"bytes": "4096", "tx_bytes": 100}},
        })
        assert ap.id == "dev1"
        assert ap.adopted.value is True
        assert ap.general_temperature.value == 45
        assert ap.ethernet_overrides.value == "eth0, eth1"
        assert ap.system_stats.temps["board"].value == 47.5
        assert ap.stat.bytes.value == 4096

    def test_access_point_flat_stat(self):
        ap = decode_record(AccessPoint, {"type": "uap", "stat": {"bytes": 12}})
        assert ap.stat.bytes.value == 12

    def test_dump_reencodes_flex_values(self):
        stat = decode_record(AccessPointStat, {"bytes": "10", "time": 1.5})
        dumped = stat.model_dump(mode="json", by_alias=True)
        assert dumped["bytes"] == 10
        assert dumped["time"] == 1.5

    def test_decode_list_rejects_non_list(self):
        with pytest.raises(RecordShapeError):
            decode_list(RogueAP, {"essid": "x"})

    def test_decode_list_none_is_empty(self):
        assert decode_list(RogueAP, None) == []
