from __future__ import annotations

import math
import re

from .datatypes import FormatDescriptor, ParseFailure

_HEX_DIGITS_RE = re.compile(r"[0-9A-Fa-f]*")
_INFINITY_RE = re.compile(r"([-+]?)infinity", re.IGNORECASE)
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:e[-+]?\d+)?", re.IGNORECASE)


def clean_input(text: str) -> str:
    return text.strip().replace("_", "").replace(" ", "")


def to_hex(descriptor: FormatDescriptor, bits: int) -> str:
    bits &= (1 << descriptor.total_bits) - 1
    return "0x" + format(bits, f"0{descriptor.hex_digits}X")


def from_hex(descriptor: FormatDescriptor, text: str) -> int:
    digits = text.strip()
    if digits[:2] in {"0x", "0X"}:
        digits = digits[2:]
    if not _HEX_DIGITS_RE.fullmatch(digits):
        raise ParseFailure(f"Invalid hex input: {text!r}")
    if not digits:
        return 0
    return int(digits, 16) & ((1 << descriptor.total_bits) - 1)


def bit_string(descriptor: FormatDescriptor, bits: int) -> str:
    if descriptor.total_bits == 0:
        return ""
    mask = (1 << descriptor.total_bits) - 1
    return format(bits & mask, f"0{descriptor.total_bits}b")


def parse_decimal_input(text: str) -> float:
    cleaned = clean_input(text)
    if cleaned in {"", "+", "-"}:
        raise ParseFailure("Decimal input is empty.")

    infinity = _INFINITY_RE.fullmatch(cleaned)
    if infinity is not None:
        return -math.inf if infinity.group(1) == "-" else math.inf
    if cleaned.lower() == "nan":
        return math.nan

    if _NUMBER_RE.fullmatch(cleaned) is None:
        raise ParseFailure(f"Invalid decimal input: {text!r}")
    return float(cleaned)


def format_decimal(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0.0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    text = repr(value)
    if text.endswith(".0"):
        text = text[:-2]
    return text


def grouped_bit_string(descriptor: FormatDescriptor, bits: int) -> str:
    """Bit string split into its sign, exponent and fraction groups."""
    text = bit_string(descriptor, bits)
    exponent_start = descriptor.sign_bits
    fraction_start = exponent_start + descriptor.exponent_bits
    groups = (text[:exponent_start], text[exponent_start:fraction_start], text[fraction_start:])
    return " ".join(group for group in groups if group)
