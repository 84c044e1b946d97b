from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

import numpy as np

MAX_TOTAL_BITS = 64
MAX_FIELD_BITS = 32


class ValidationError(ValueError):
    """Raised when a format descriptor cannot be built."""


class ParseFailure(ValueError):
    """Raised when hex or decimal text cannot be committed."""


class Classification(str, Enum):
    ZERO = "zero"
    SUBNORMAL = "subnormal"
    NORMAL = "normal"
    INFINITY = "infinity"
    NAN = "nan"


class FieldTriple(NamedTuple):
    sign: int
    exponent_field: int
    fraction_field: int


@dataclass(frozen=True)
class DecodedValue:
    real_value: float
    classification: Classification
    sign_factor: float
    binary_exponent: int | float
    mantissa_display: str


@dataclass(frozen=True)
class FormatDescriptor:
    sign_bits: int
    exponent_bits: int
    fraction_bits: int
    bias: int
    key: str = ""
    title: str = ""
    numpy_dtype: Any = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.sign_bits not in (0, 1):
            raise ValidationError(f"Sign width must be 0 or 1; got {self.sign_bits}.")
        for label, bits in (("Exponent", self.exponent_bits), ("Fraction", self.fraction_bits)):
            if bits < 0:
                raise ValidationError(f"{label} width must not be negative; got {bits}.")
        if self.total_bits > MAX_TOTAL_BITS:
            raise ValidationError(
                f"Total width {self.total_bits} exceeds {MAX_TOTAL_BITS} bits."
            )
        if not self.key:
            object.__setattr__(self, "key", self.name)
        if not self.title:
            object.__setattr__(self, "title", self.name)

    @property
    def total_bits(self) -> int:
        return self.sign_bits + self.exponent_bits + self.fraction_bits

    @property
    def name(self) -> str:
        return format_name(self.sign_bits, self.exponent_bits, self.fraction_bits)

    @property
    def exponent_all_ones(self) -> int:
        return (1 << self.exponent_bits) - 1

    @property
    def min_exponent(self) -> int:
        return 1 - self.bias

    @property
    def max_exponent(self) -> int:
        return (1 << self.exponent_bits) - 2 - self.bias

    @property
    def hex_digits(self) -> int:
        return -(-self.total_bits // 4)


def format_name(sign_bits: int, exponent_bits: int, fraction_bits: int) -> str:
    prefix = "S" if sign_bits else "U"
    return f"{prefix}{sign_bits}E{exponent_bits}M{fraction_bits}"


def derived_bias(exponent_bits: int) -> int:
    if exponent_bits <= 0:
        return 0
    return (1 << (exponent_bits - 1)) - 1


def make_custom_format(sign_bits: int, exponent_bits: int, fraction_bits: int) -> FormatDescriptor:
    # Built-in layouts may use wider fields; user-defined ones are capped.
    for label, bits in (("Exponent", exponent_bits), ("Fraction", fraction_bits)):
        if bits > MAX_FIELD_BITS:
            raise ValidationError(f"{label} width must be at most {MAX_FIELD_BITS}; got {bits}.")
    return FormatDescriptor(
        sign_bits=sign_bits,
        exponent_bits=exponent_bits,
        fraction_bits=fraction_bits,
        bias=derived_bias(exponent_bits),
    )


FLOAT_FORMATS: dict[str, FormatDescriptor] = {
    "fp16": FormatDescriptor(
        sign_bits=1,
        exponent_bits=5,
        fraction_bits=10,
        bias=15,
        key="fp16",
        title="16-bit (half)",
        numpy_dtype=np.float16,
    ),
    "fp32": FormatDescriptor(
        sign_bits=1,
        exponent_bits=8,
        fraction_bits=23,
        bias=127,
        key="fp32",
        title="32-bit (float)",
        numpy_dtype=np.float32,
    ),
    "fp64": FormatDescriptor(
        sign_bits=1,
        exponent_bits=11,
        fraction_bits=52,
        bias=1023,
        key="fp64",
        title="64-bit (double)",
        numpy_dtype=np.float64,
    ),
    "bf16": FormatDescriptor(
        sign_bits=1,
        exponent_bits=8,
        fraction_bits=7,
        bias=127,
        key="bf16",
        title="bfloat16",
    ),
    "fp8_e5m2": FormatDescriptor(
        sign_bits=1,
        exponent_bits=5,
        fraction_bits=2,
        bias=15,
        key="fp8_e5m2",
        title="FP8 (E5M2)",
    ),
    "fp8_e4m3": FormatDescriptor(
        sign_bits=1,
        exponent_bits=4,
        fraction_bits=3,
        bias=7,
        key="fp8_e4m3",
        title="FP8 (E4M3)",
    ),
}


_FORMAT_NAME_RE = re.compile(r"([SU])([01])E(\d+)M(\d+)", re.IGNORECASE)


def parse_format_name(text: str) -> FormatDescriptor:
    cleaned = text.strip()
    builtin = FLOAT_FORMATS.get(cleaned.lower())
    if builtin is not None:
        return builtin

    match = _FORMAT_NAME_RE.fullmatch(cleaned)
    if match is None:
        raise ValidationError(
            f"Unknown format {text!r}; expected one of {', '.join(FLOAT_FORMATS)} "
            "or a name like S1E4M3."
        )
    letter, sign_text, exponent_text, fraction_text = match.groups()
    sign_bits = int(sign_text)
    if (letter.upper() == "S") != (sign_bits == 1):
        raise ValidationError(f"Format name {text!r} has a mismatched sign prefix.")
    return make_custom_format(sign_bits, int(exponent_text), int(fraction_text))
