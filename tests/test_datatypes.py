import pytest

from floattoy.datatypes import (
    FLOAT_FORMATS,
    FormatDescriptor,
    ValidationError,
    derived_bias,
    format_name,
    make_custom_format,
    parse_format_name,
)


def test_builtin_formats_layout_and_order() -> None:
    layouts = {
        key: (spec.sign_bits, spec.exponent_bits, spec.fraction_bits, spec.bias)
        for key, spec in FLOAT_FORMATS.items()
    }
    assert list(layouts) == ["fp16", "fp32", "fp64", "bf16", "fp8_e5m2", "fp8_e4m3"]
    assert layouts["fp16"] == (1, 5, 10, 15)
    assert layouts["fp32"] == (1, 8, 23, 127)
    assert layouts["fp64"] == (1, 11, 52, 1023)
    assert layouts["bf16"] == (1, 8, 7, 127)
    assert layouts["fp8_e5m2"] == (1, 5, 2, 15)
    assert layouts["fp8_e4m3"] == (1, 4, 3, 7)


def test_fp64_builtin_keeps_full_width_fields() -> None:
    fp64 = FLOAT_FORMATS["fp64"]
    assert fp64.exponent_bits == 11
    assert fp64.fraction_bits == 52
    assert fp64.max_exponent == 1023
    assert fp64.min_exponent == -1022


def test_descriptor_allows_wide_fields_within_total() -> None:
    spec = FormatDescriptor(sign_bits=0, exponent_bits=8, fraction_bits=56, bias=127)
    assert spec.total_bits == 64
    assert spec.key == "U0E8M56"

    with pytest.raises(ValidationError, match="exceeds 64"):
        FormatDescriptor(sign_bits=1, exponent_bits=8, fraction_bits=56, bias=127)


def test_custom_format_caps_field_widths() -> None:
    with pytest.raises(ValidationError, match="Fraction width must be at most 32"):
        make_custom_format(1, 11, 52)
    with pytest.raises(ValidationError, match="Exponent width must be at most 32"):
        make_custom_format(0, 33, 0)


def test_builtin_total_bits_and_hex_digits() -> None:
    assert FLOAT_FORMATS["fp64"].total_bits == 64
    assert FLOAT_FORMATS["fp64"].hex_digits == 16
    assert FLOAT_FORMATS["fp8_e4m3"].hex_digits == 2


def test_custom_format_derives_bias() -> None:
    assert make_custom_format(1, 4, 3).bias == 7
    assert make_custom_format(1, 8, 23).bias == 127
    assert make_custom_format(0, 1, 3).bias == 0
    assert make_custom_format(1, 0, 5).bias == 0
    assert derived_bias(11) == 1023


def test_custom_format_name_and_key() -> None:
    signed = make_custom_format(1, 4, 3)
    unsigned = make_custom_format(0, 5, 2)

    assert signed.name == "S1E4M3"
    assert signed.key == "S1E4M3"
    assert signed.title == "S1E4M3"
    assert unsigned.name == "U0E5M2"
    assert format_name(0, 0, 0) == "U0E0M0"


def test_identical_widths_give_identical_names() -> None:
    assert make_custom_format(1, 6, 9).name == make_custom_format(1, 6, 9).name
    assert make_custom_format(1, 6, 9) == make_custom_format(1, 6, 9)


def test_builtin_name_is_derived_from_widths() -> None:
    assert FLOAT_FORMATS["fp16"].name == "S1E5M10"
    assert FLOAT_FORMATS["bf16"].name == "S1E8M7"


def test_sixty_four_bit_custom_format_is_accepted() -> None:
    spec = make_custom_format(1, 31, 32)
    assert spec.total_bits == 64
    assert spec.bias == (1 << 30) - 1


@pytest.mark.parametrize(
    ("sign_bits", "exponent_bits", "fraction_bits"),
    [
        (1, 32, 32),
        (1, -1, 3),
        (1, 4, -2),
        (2, 4, 3),
        (1, 33, 3),
        (0, 4, 33),
    ],
)
def test_invalid_widths_are_rejected(sign_bits: int, exponent_bits: int, fraction_bits: int) -> None:
    with pytest.raises(ValidationError):
        make_custom_format(sign_bits, exponent_bits, fraction_bits)


def test_validation_error_is_a_value_error() -> None:
    with pytest.raises(ValueError, match="exceeds 64"):
        make_custom_format(1, 32, 32)


def test_parse_format_name_accepts_builtin_keys_and_custom_names() -> None:
    assert parse_format_name("fp32") is FLOAT_FORMATS["fp32"]
    assert parse_format_name(" FP16 ") is FLOAT_FORMATS["fp16"]

    custom = parse_format_name("s1e4m3")
    assert (custom.sign_bits, custom.exponent_bits, custom.fraction_bits, custom.bias) == (1, 4, 3, 7)
    assert parse_format_name("U0E6M2").sign_bits == 0


@pytest.mark.parametrize("text", ["bogus", "S1E4", "U1E4M3", "S0E4M3", "S1E40M40"])
def test_parse_format_name_rejects_bad_names(text: str) -> None:
    with pytest.raises(ValidationError):
        parse_format_name(text)
