# SPDX-License-Identifier: MIT
"""Pydantic record models for controller payloads.

Only the fields the client itself reads, plus a representative set of
counters, are declared; everything else the controller sends is kept as
extra attributes. Numeric, boolean and list-or-string fields use the flex
scalars so every firmware generation decodes into the same types.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import DecodeError, RecordShapeError
from .flex import FlexBool, FlexInt, FlexString, FlexTemp

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "AccessPoint",
    "AccessPointStat",
    "Camera",
    "RogueAP",
    "ServerStatus",
    "Site",
    "SystemStats",
    "decode_dual_shape",
    "decode_list",
    "decode_record",
]

ModelT = TypeVar("ModelT", bound=BaseModel)


class _RecordBase(BaseModel):
    """Permissive base: unknown keys are kept, aliases and names both accepted."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


def decode_record(model: Type[ModelT], body: Any) -> ModelT:
    """Validate one parsed JSON value as ``model``.

    Pydantic validation failures become RecordShapeError. Errors raised by
    the flex scalars are not ValueErrors, so pydantic lets them through and
    they reach the caller unchanged.
    """
    try:
        return model.model_validate(body)
    except ValidationError as err:
        raise RecordShapeError(f"cannot decode {model.__name__}: {err}") from err


def decode_list(model: Type[ModelT], items: Any) -> List[ModelT]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise RecordShapeError(f"expected a list of {model.__name__}, got {type(items).__name__}")
    return [decode_record(model, item) for item in items]


def decode_dual_shape(model: Type[ModelT], body: Any, envelope_key: str) -> ModelT:
    """Decode a record that is either ``{envelope_key: {...}}`` or flat.

    The nested shape is tried first. If it fails the body is decoded as the
    flat record, and that attempt's error is what the caller sees.
    """
    try:
        if not isinstance(body, dict) or not isinstance(body.get(envelope_key), dict):
            raise RecordShapeError(f"no {envelope_key!r} envelope in {model.__name__} body")
        return decode_record(model, body[envelope_key])
    except DecodeError as err:
        _LOGGER.debug("phase=decode event=nested_miss model=%s key=%s error=%s", model.__name__, envelope_key, err)
    return decode_record(model, body)


class ServerStatus(_RecordBase):
    """The controller's /status document (the "meta" block of the reply)."""

    up: FlexBool = Field(default_factory=FlexBool)
    server_version: str = ""
    uuid: str = ""


class Site(_RecordBase):
    id: str = Field("", alias="_id")
    name: str = ""
    desc: str = ""
    site_name: str = ""
    source_name: str = ""
    num_new_alarms: FlexInt = Field(default_factory=FlexInt)
    role: str = ""


class AccessPointStat(_RecordBase):
    """Access point traffic counters.

    Controller 5.10 sends these flat; 5.11 and later nest them under "ap".
    """

    site_id: str = ""
    o: str = ""
    oid: str = ""
    ap: str = ""
    time: FlexInt = Field(default_factory=FlexInt)
    bytes: FlexInt = Field(default_factory=FlexInt)
    duration: FlexInt = Field(default_factory=FlexInt)
    rx_bytes: FlexInt = Field(default_factory=FlexInt)
    rx_packets: FlexInt = Field(default_factory=FlexInt)
    rx_errors: FlexInt = Field(default_factory=FlexInt)
    rx_dropped: FlexInt = Field(default_factory=FlexInt)
    tx_bytes: FlexInt = Field(default_factory=FlexInt)
    tx_packets: FlexInt = Field(default_factory=FlexInt)
    tx_errors: FlexInt = Field(default_factory=FlexInt)
    tx_dropped: FlexInt = Field(default_factory=FlexInt)
    wifi_tx_dropped: FlexInt = Field(default_factory=FlexInt)
    user_num_sta: FlexInt = Field(default_factory=FlexInt, alias="user-num_sta")
    guest_num_sta: FlexInt = Field(default_factory=FlexInt, alias="guest-num_sta")


class SystemStats(_RecordBase):
    cpu: FlexInt = Field(default_factory=FlexInt)
    mem: FlexInt = Field(default_factory=FlexInt)
    uptime: FlexInt = Field(default_factory=FlexInt)
    temps: Dict[str, FlexTemp] = Field(default_factory=dict)


class AccessPoint(_RecordBase):
    id: str = Field("", alias="_id")
    mac: str = ""
    name: str = ""
    model: str = ""
    type: str = ""
    version: str = ""
    serial: str = ""
    ip: str = ""
    site_id: str = ""
    site_name: str = ""
    source_name: str = ""
    adopted: FlexBool = Field(default_factory=FlexBool)
    locating: FlexBool = Field(default_factory=FlexBool)
    upgradable: FlexBool = Field(default_factory=FlexBool)
    has_temperature: FlexBool = Field(default_factory=FlexBool)
    state: FlexInt = Field(default_factory=FlexInt)
    uptime: FlexInt = Field(default_factory=FlexInt)
    last_seen: FlexInt = Field(default_factory=FlexInt)
    num_sta: FlexInt = Field(default_factory=FlexInt)
    bytes: FlexInt = Field(default_factory=FlexInt)
    rx_bytes: FlexInt = Field(default_factory=FlexInt)
    tx_bytes: FlexInt = Field(default_factory=FlexInt)
    general_temperature: FlexTemp = Field(default_factory=FlexTemp)
    ethernet_overrides: FlexString = Field(default_factory=FlexString)
    system_stats: SystemStats = Field(default_factory=SystemStats, alias="system-stats")
    stat: Optional[AccessPointStat] = None

    @field_validator("stat", mode="before")
    @classmethod
    def _decode_stat(cls, value: Any) -> Any:
        if value is None or isinstance(value, AccessPointStat):
            return value
        return decode_dual_shape(AccessPointStat, value, "ap")


class RogueAP(_RecordBase):
    """A neighboring access point seen by one of ours."""

    id: str = Field("", alias="_id")
    ap_mac: str = ""
    bssid: str = ""
    essid: str = ""
    site_id: str = ""
    site_name: str = ""
    source_name: str = ""
    band: str = ""
    radio: str = ""
    radio_name: str = ""
    security: str = ""
    oui: str = ""
    age: FlexInt = Field(default_factory=FlexInt)
    bw: FlexInt = Field(default_factory=FlexInt)
    center_freq: FlexInt = Field(default_factory=FlexInt)
    channel: FlexInt = Field(default_factory=FlexInt)
    freq: FlexInt = Field(default_factory=FlexInt)
    is_adhoc: FlexBool = Field(default_factory=FlexBool)
    is_rogue: FlexBool = Field(default_factory=FlexBool)
    is_ubnt: FlexBool = Field(default_factory=FlexBool)
    last_seen: FlexInt = Field(default_factory=FlexInt)
    noise: FlexInt = Field(default_factory=FlexInt)
    report_time: FlexInt = Field(default_factory=FlexInt)
    rssi: FlexInt = Field(default_factory=FlexInt)
    rssi_age: FlexInt = Field(default_factory=FlexInt)
    signal: FlexInt = Field(default_factory=FlexInt)


class Camera(_RecordBase):
    """A protect camera. Keys are camelCase on the wire."""

    id: str = ""
    mac: str = ""
    host: str = ""
    type: str = ""
    name: Optional[str] = None
    display_name: str = Field("", alias="displayName")
    state: str = ""
    last_seen: FlexInt = Field(default_factory=FlexInt, alias="lastSeen")
    uptime: FlexInt = Field(default_factory=FlexInt)
    firmware_version: FlexString = Field(default_factory=FlexString, alias="firmwareVersion")
    is_adopted: FlexBool = Field(default_factory=FlexBool, alias="isAdopted")
    is_recording: FlexBool = Field(default_factory=FlexBool, alias="isRecording")
    is_mic_enabled: FlexBool = Field(default_factory=FlexBool, alias="isMicEnabled")
    is_motion_detected: FlexBool = Field(default_factory=FlexBool, alias="isMotionDetected")
    mic_volume: FlexInt = Field(default_factory=FlexInt, alias="micVolume")
