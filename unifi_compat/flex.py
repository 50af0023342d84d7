# SPDX-License-Identifier: MIT
# Flexible scalars for controller payloads.
#
# The controller emits the same logical field as a JSON number, a numeric
# string, a boolean word or null depending on firmware generation. Each type
# here decodes every observed wire shape into one canonical value and keeps
# the original text next to it, so display code shows what the server sent
# while arithmetic uses a real number.
#
# All four are usable as pydantic field types; they validate through
# decode() and serialize through encode().

from __future__ import annotations

import json
import math
from decimal import Decimal
from typing import Any, List, Optional, Union

from pydantic_core import core_schema

from .errors import UnsupportedShapeError

# Tokens that decode to True. Everything else, including unknown words, is False.
TRUTHY_TOKENS = frozenset(("1", "true", "yes", "t", "armed", "active", "enabled", "ready", "up", "ok"))

# JSON encoders switch to exponent notation at this magnitude.
_EXPONENT_THRESHOLD = 1e21

Number = Union[int, float]


def format_number(value: Number) -> str:
    """Shortest round-trip decimal rendering, never in exponent form."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value) or math.isinf(value):
        return repr(value)
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def parse_float(text: str) -> float:
    """Best-effort float parse; garbage yields 0."""
    try:
        return float(text)
    except ValueError:
        return 0.0


def _encode_number(value: float) -> Number:
    # whole numbers go back on the wire as integers: 10, not 10.0
    if value.is_integer() and abs(value) < _EXPONENT_THRESHOLD:
        return int(value)
    return value


def _is_number(raw: Any) -> bool:
    return isinstance(raw, (int, float)) and not isinstance(raw, bool)


def _to_float(type_name: str, raw: Number) -> float:
    # JSON integers are unbounded; past the float range they cannot be held
    try:
        return float(raw)
    except OverflowError as err:
        raise UnsupportedShapeError(type_name, raw) from err


class _FlexBase:
    """Pydantic hook shared by the flexible scalars."""

    __slots__ = ()

    @classmethod
    def decode(cls, raw: Any):
        raise NotImplementedError

    def encode(self) -> Any:
        raise NotImplementedError

    @classmethod
    def _validate(cls, raw: Any):
        if isinstance(raw, cls):
            return raw
        return cls.decode(raw)

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type, handler):
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(lambda v: v.encode()),
        )

    def to_json(self) -> str:
        return json.dumps(self.encode())


class FlexInt(_FlexBase):
    """A number that may arrive as a number, a string or null."""

    __slots__ = ("value", "text")

    def __init__(self, value: Number = 0.0, text: Optional[str] = None) -> None:
        self.value = float(value)
        self.text = format_number(value) if text is None else text

    @classmethod
    def decode(cls, raw: Any) -> "FlexInt":
        if _is_number(raw):
            return cls(_to_float(cls.__name__, raw), format_number(raw))
        if isinstance(raw, str):
            return cls(parse_float(raw), raw)
        if raw is None:
            return cls(0.0, "0")
        raise UnsupportedShapeError(cls.__name__, raw)

    def encode(self) -> Number:
        return _encode_number(self.value)

    def int(self) -> int:
        return int(self.value)

    def add(self, other: "FlexInt") -> None:
        self.add_float(other.value)

    def add_float(self, value: float) -> None:
        self.value += value
        self.text = format_number(self.value)

    def __int__(self) -> int:
        return int(self.value)

    def __float__(self) -> float:
        return self.value

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"FlexInt(value={self.value!r}, text={self.text!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, FlexInt):
            return NotImplemented
        return self.value == other.value and self.text == other.text


class FlexBool(_FlexBase):
    """A boolean that may arrive as a JSON bool, a number or a status word.

    Only the tokens in TRUTHY_TOKENS mean True; "disarmed", "no", "0" and
    any unrecognized word are False.
    """

    __slots__ = ("value", "text")

    def __init__(self, value: bool = False, text: Optional[str] = None) -> None:
        self.value = bool(value)
        self.text = ("true" if value else "false") if text is None else text

    @classmethod
    def decode(cls, raw: Any) -> "FlexBool":
        # quoted strings lose their quotes, everything else keeps its JSON token
        text = raw if isinstance(raw, str) else json.dumps(raw)
        return cls(text.lower() in TRUTHY_TOKENS, text)

    def encode(self) -> bool:
        return self.value

    def float(self) -> float:
        return 1.0 if self.value else 0.0

    def __bool__(self) -> bool:
        return self.value

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"FlexBool(value={self.value!r}, text={self.text!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, FlexBool):
            return NotImplemented
        return self.value == other.value and self.text == other.text


class FlexString(_FlexBase):
    """A string, or a list of strings rendered as one comma-joined string."""

    __slots__ = ("value", "items", "is_array")

    def __init__(self, value: str = "", items: Optional[List[str]] = None, is_array: bool = False) -> None:
        self.value = value
        self.items = [value] if items is None and value else list(items or [])
        self.is_array = is_array

    @classmethod
    def from_list(cls, items: List[str]) -> "FlexString":
        return cls(", ".join(items), items, True)

    @classmethod
    def decode(cls, raw: Any) -> "FlexString":
        if isinstance(raw, list):
            return cls.from_list([item for item in raw if isinstance(item, str)])
        if isinstance(raw, str):
            return cls(raw, [raw])
        if raw is None:
            return cls()
        raise UnsupportedShapeError(cls.__name__, raw)

    def encode(self) -> Union[str, List[str]]:
        if self.is_array:
            return list(self.items)
        return self.value

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"FlexString(value={self.value!r}, items={self.items!r}, is_array={self.is_array!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, FlexString):
            return NotImplemented
        return (self.value, self.items, self.is_array) == (other.value, other.items, other.is_array)


class FlexTemp(_FlexBase):
    """A Celsius temperature sent as a number, "<n>", "<n> <unit>" or null."""

    __slots__ = ("value", "text")

    def __init__(self, value: Number = 0.0, text: Optional[str] = None) -> None:
        self.value = float(value)
        self.text = format_number(value) if text is None else text

    @classmethod
    def decode(cls, raw: Any) -> "FlexTemp":
        if _is_number(raw):
            return cls(_to_float(cls.__name__, raw), format_number(raw))
        if isinstance(raw, str):
            parts = raw.split(" ", 1)
            if len(parts) == 2:
                # "<value> <unit>"; the unit is not converted
                return cls(parse_float(parts[0]), raw)
            return cls(parse_float(raw), raw)
        if raw is None:
            return cls(0.0, "0")
        raise UnsupportedShapeError(cls.__name__, raw)

    def encode(self) -> Number:
        return _encode_number(self.value)

    def celsius(self) -> float:
        return self.value

    def celsius_int(self) -> int:
        return int(self.value)

    def fahrenheit(self) -> float:
        return self.value * 9 / 5 + 32

    def fahrenheit_int(self) -> int:
        return int(self.fahrenheit())

    def add(self, other: "FlexTemp") -> None:
        self.add_float(other.value)

    def add_float(self, value: float) -> None:
        self.value += value
        self.text = format_number(self.value)

    def __float__(self) -> float:
        return self.value

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"FlexTemp(value={self.value!r}, text={self.text!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, FlexTemp):
            return NotImplemented
        return self.value == other.value and self.text == other.text

