import math
import random

import pytest

from floattoy.datatypes import FLOAT_FORMATS, ParseFailure, make_custom_format
from floattoy.textio import (
    bit_string,
    format_decimal,
    from_hex,
    grouped_bit_string,
    parse_decimal_input,
    to_hex,
)

FP16 = FLOAT_FORMATS["fp16"]
FP32 = FLOAT_FORMATS["fp32"]
FP64 = FLOAT_FORMATS["fp64"]


def test_to_hex_pads_to_nibble_count() -> None:
    assert to_hex(FP16, 0x3C00) == "0x3C00"
    assert to_hex(FP32, 1) == "0x00000001"
    assert to_hex(FP64, 0x7FEFFFFFFFFFFFFF) == "0x7FEFFFFFFFFFFFFF"
    assert to_hex(FLOAT_FORMATS["fp8_e4m3"], 0x38) == "0x38"
    assert to_hex(make_custom_format(0, 4, 3), 0x52) == "0x52"
    assert to_hex(make_custom_format(1, 4, 4), 0x1FF) == "0x1FF"


def test_from_hex_accepts_optional_prefix() -> None:
    assert from_hex(FP32, "0x3f800000") == 0x3F800000
    assert from_hex(FP32, "0X3F800000") == 0x3F800000
    assert from_hex(FP32, "3F80") == 0x3F80
    assert from_hex(FP16, "  0x3C00 ") == 0x3C00


def test_from_hex_empty_is_zero() -> None:
    assert from_hex(FP16, "") == 0
    assert from_hex(FP16, "0x") == 0


def test_from_hex_truncates_high_bits() -> None:
    assert from_hex(FP16, "0x123456") == 0x3456
    assert from_hex(make_custom_format(0, 4, 3), "0xFF") == 0x7F
    assert from_hex(FP64, "0x1FFFFFFFFFFFFFFFF") == (1 << 64) - 1


@pytest.mark.parametrize("text", ["0xZZ", "-1", "1_0", "0x 12", "3.5", "0xx1"])
def test_from_hex_rejects_non_hex(text: str) -> None:
    with pytest.raises(ParseFailure):
        from_hex(FP32, text)


def test_hex_round_trip() -> None:
    rng = random.Random(16)
    for spec in FLOAT_FORMATS.values():
        for _ in range(200):
            bits = rng.getrandbits(spec.total_bits)
            assert from_hex(spec, to_hex(spec, bits)) == bits


def test_parse_decimal_input_symbolic_tokens() -> None:
    assert math.isnan(parse_decimal_input("NaN"))
    assert math.isnan(parse_decimal_input("nan"))
    assert parse_decimal_input("Infinity") == math.inf
    assert parse_decimal_input("+Infinity") == math.inf
    assert parse_decimal_input("-infinity") == -math.inf


def test_parse_decimal_input_numbers() -> None:
    assert parse_decimal_input("1.25e3") == 1250.0
    assert parse_decimal_input(" 1_000 ") == 1000.0
    assert parse_decimal_input("-0.1") == -0.1
    assert math.copysign(1.0, parse_decimal_input("-0")) == -1.0
    assert parse_decimal_input("1e999") == math.inf
    assert parse_decimal_input("1.") == 1.0
    assert parse_decimal_input(".5") == 0.5
    assert parse_decimal_input("2E-3") == 0.002


@pytest.mark.parametrize("text", ["", "  ", "-", "abc", "1.2.3", "0x10"])
def test_parse_decimal_input_rejects_garbage(text: str) -> None:
    with pytest.raises(ParseFailure):
        parse_decimal_input(text)


@pytest.mark.parametrize("text", ["inf", "-inf", "+inf", "-nan", "+NaN", "nan1", "infinit", "1e", "e5", "."])
def test_parse_decimal_input_rejects_other_spellings(text: str) -> None:
    with pytest.raises(ParseFailure):
        parse_decimal_input(text)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (math.nan, "NaN"),
        (math.inf, "Infinity"),
        (-math.inf, "-Infinity"),
        (0.0, "0"),
        (-0.0, "-0"),
        (1.0, "1"),
        (-3.0, "-3"),
        (0.1, "0.1"),
        (3.140625, "3.140625"),
        (1e300, "1e+300"),
        (2.0**-24, "5.960464477539063e-08"),
    ],
)
def test_format_decimal(value: float, expected: str) -> None:
    assert format_decimal(value) == expected


def test_format_decimal_round_trips_through_parse() -> None:
    for value in (0.1, 1 / 3, 2.0**-1074, 1.7976931348623157e308, -123.456):
        assert parse_decimal_input(format_decimal(value)) == value


def test_bit_strings() -> None:
    assert bit_string(FP16, 0x3C00) == "0011110000000000"
    assert bit_string(make_custom_format(0, 4, 3), 0x52) == "1010010"
    assert grouped_bit_string(FP32, 0x3F800000) == "0 01111111 " + "0" * 23
    assert grouped_bit_string(make_custom_format(0, 4, 3), 0x52) == "1010 010"
