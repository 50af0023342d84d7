"""Unit tests for the flexible scalar codecs."""

import json

import pytest

from unifi_compat.errors import UnsupportedShapeError
from unifi_compat.flex import FlexBool, FlexInt, FlexString, FlexTemp, format_number


class TestFlexInt:
    """FlexInt decodes numbers, numeric strings and null."""

    @pytest.mark.parametrize("raw", [0, 10, -3, 1.5, 123456789012, 0.1])
    def test_number_keeps_value(self, raw):
        f = FlexInt.decode(raw)
        assert f.value == raw
        assert json.loads(f.to_json()) == raw

    def test_number_text_is_shortest_decimal(self):
        assert FlexInt.decode(10).text == "10"
        assert FlexInt.decode(10.0).text == "10"
        assert FlexInt.decode(1.5).text == "1.5"
        assert FlexInt.decode(1e-7).text == "0.0000001"

    def test_numeric_string_keeps_text(self):
        f = FlexInt.decode("0042")
        assert f.text == "0042"
        assert f.value == 42.0
        assert f.int() == 42

    def test_unparseable_string_is_zero(self):
        f = FlexInt.decode("n/a")
        assert f.value == 0
        assert f.text == "n/a"

    def test_empty_string_is_zero(self):
        assert FlexInt.decode("").value == 0

    def test_null(self):
        f = FlexInt.decode(None)
        assert f.value == 0
        assert f.text == "0"

    @pytest.mark.parametrize("raw", [True, {"a": 1}, [1, 2]])
    def test_unsupported_shapes(self, raw):
        with pytest.raises(UnsupportedShapeError):
            FlexInt.decode(raw)

    def test_integer_beyond_float_range_is_a_decode_error(self):
        huge = json.loads("1" + "0" * 400)
        with pytest.raises(UnsupportedShapeError):
            FlexInt.decode(huge)

    def test_encode_emits_number_not_text(self):
        assert FlexInt.decode("12").encode() == 12
        assert FlexInt.decode("1.25").encode() == 1.25

    def test_add_updates_both_fields(self):
        f = FlexInt.decode("5")
        f.add(FlexInt.decode(2.5))
        assert f.value == 7.5
        assert f.text == "7.5"
        f.add_float(0.5)
        assert f.text == "8"
        assert str(f) == "8"


class TestFlexBool:
    """FlexBool follows a fixed truthy allow-list."""

    @pytest.mark.parametrize(
        "raw", ["1", "true", "TRUE", "yes", "t", "armed", "Active", "enabled", "ready", "up", "OK", 1, True]
    )
    def test_truthy(self, raw):
        assert FlexBool.decode(raw).value is True

    @pytest.mark.parametrize(
        "raw", ["0", "false", "no", "disarmed", "inactive", "maybe", "", 0, False, None, 2]
    )
    def test_falsy(self, raw):
        assert FlexBool.decode(raw).value is False

    def test_text_is_source_token(self):
        assert FlexBool.decode("Enabled").text == "Enabled"
        assert FlexBool.decode(True).text == "true"
        assert FlexBool.decode(1).text == "1"
        assert FlexBool.decode(None).text == "null"

    def test_encode_is_json_bool(self):
        assert FlexBool.decode("yes").to_json() == "true"
        assert FlexBool.decode("nope").encode() is False

    def test_float_view(self):
        assert FlexBool.decode("up").float() == 1.0
        assert FlexBool.decode("down").float() == 0.0


class TestFlexString:
    """FlexString accepts a string or a list of strings."""

    def test_array(self):
        f = FlexString.decode(["a", "b"])
        assert f.value == "a, b"
        assert f.is_array is True
        assert f.encode() == ["a", "b"]

    def test_array_drops_non_strings(self):
        f = FlexString.decode(["a", 1, None, "c"])
        assert f.items == ["a", "c"]
        assert f.value == "a, c"

    def test_plain_string(self):
        f = FlexString.decode("eth0")
        assert f.is_array is False
        assert f.items == ["eth0"]
        assert f.encode() == "eth0"

    def test_null_is_empty(self):
        f = FlexString.decode(None)
        assert f.items == []
        assert f.value == ""

    @pytest.mark.parametrize("raw", [{"a": "b"}, 5])
    def test_unsupported_shapes(self, raw):
        with pytest.raises(UnsupportedShapeError):
            FlexString.decode(raw)


class TestFlexTemp:
    """FlexTemp decodes Celsius values with an optional unit."""

    def test_value_with_unit(self):
        f = FlexTemp.decode("36.5 C")
        assert f.value == 36.5
        assert f.text == "36.5 C"
        assert f.fahrenheit() == pytest.approx(97.7)

    def test_plain_string(self):
        assert FlexTemp.decode("41").value == 41.0

    def test_number(self):
        f = FlexTemp.decode(100)
        assert f.celsius() == 100
        assert f.fahrenheit_int() == 212

    def test_null(self):
        assert FlexTemp.decode(None).text == "0"

    def test_garbage_is_zero(self):
        assert FlexTemp.decode("hot").value == 0

    def test_fahrenheit_does_not_mutate(self):
        f = FlexTemp.decode(20)
        f.fahrenheit()
        assert f.value == 20

    def test_integer_accessors_truncate(self):
        f = FlexTemp.decode(36.9)
        assert f.celsius_int() == 36
        assert f.fahrenheit_int() == 98

    def test_unsupported_shape(self):
        with pytest.raises(UnsupportedShapeError):
            FlexTemp.decode([1])

    def test_integer_beyond_float_range_is_a_decode_error(self):
        with pytest.raises(UnsupportedShapeError):
            FlexTemp.decode(10 ** 400)


def test_format_number_large_values_have_no_exponent():
    assert format_number(1e20) == "100000000000000000000"
    assert format_number(2.5e-5) == "0.000025"
