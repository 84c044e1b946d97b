from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import numpy as np

from .datatypes import (
    Classification,
    DecodedValue,
    FieldTriple,
    FormatDescriptor,
)


def _mask(bits: int) -> int:
    return (1 << bits) - 1


def pack(
    descriptor: FormatDescriptor,
    sign: int,
    exponent_field: int,
    fraction_field: int,
) -> int:
    """Compose a bit pattern from its three fields.

    Each field is masked to its own width first, so out-of-range inputs are
    truncated rather than rejected.
    """
    exponent_shift = descriptor.fraction_bits
    sign_shift = descriptor.fraction_bits + descriptor.exponent_bits

    sign &= _mask(descriptor.sign_bits)
    exponent_field &= _mask(descriptor.exponent_bits)
    fraction_field &= _mask(descriptor.fraction_bits)

    bits = (sign << sign_shift) | (exponent_field << exponent_shift) | fraction_field
    return bits & _mask(descriptor.total_bits)


def unpack(descriptor: FormatDescriptor, bits: int) -> FieldTriple:
    exponent_shift = descriptor.fraction_bits
    sign_shift = descriptor.fraction_bits + descriptor.exponent_bits

    bits &= _mask(descriptor.total_bits)
    return FieldTriple(
        sign=(bits >> sign_shift) & _mask(descriptor.sign_bits),
        exponent_field=(bits >> exponent_shift) & _mask(descriptor.exponent_bits),
        fraction_field=bits & _mask(descriptor.fraction_bits),
    )


def toggle_bit(bits: int, bit_index: int, descriptor: FormatDescriptor | None = None) -> int:
    """Flip one bit, bit 0 being the least significant.

    With a descriptor the result is masked to its width, so an index past the
    top bit leaves the pattern unchanged.
    """
    if bit_index < 0:
        raise ValueError(f"Bit index must not be negative; got {bit_index}.")
    flipped = bits ^ (1 << bit_index)
    if descriptor is None:
        return flipped
    return flipped & _mask(descriptor.total_bits)


def classify(
    descriptor: FormatDescriptor,
    exponent_field: int,
    fraction_field: int,
) -> Classification:
    # All-ones is checked first: with no exponent bits it equals zero and wins.
    if exponent_field == descriptor.exponent_all_ones:
        if fraction_field == 0:
            return Classification.INFINITY
        return Classification.NAN
    if exponent_field == 0:
        if fraction_field == 0:
            return Classification.ZERO
        return Classification.SUBNORMAL
    return Classification.NORMAL


def mantissa_digits(fraction_bits: int) -> int:
    return min(16, max(3, math.ceil(fraction_bits / 3)))


def format_mantissa(mantissa: float, fraction_bits: int) -> str:
    if math.isnan(mantissa):
        return "NaN"
    quantum = Decimal(1).scaleb(-mantissa_digits(fraction_bits))
    text = format(Decimal(mantissa).quantize(quantum, rounding=ROUND_HALF_UP), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _scaled_value(sign_factor: float, mantissa: float, exponent: int) -> float:
    try:
        magnitude = math.ldexp(mantissa, exponent)
    except OverflowError:
        magnitude = math.inf
    return math.copysign(magnitude, sign_factor)


def decode(
    descriptor: FormatDescriptor,
    sign: int,
    exponent_field: int,
    fraction_field: int,
) -> DecodedValue:
    sign, exponent_field, fraction_field = unpack(
        descriptor, pack(descriptor, sign, exponent_field, fraction_field)
    )
    classification = classify(descriptor, exponent_field, fraction_field)

    if classification is Classification.NAN:
        return DecodedValue(
            real_value=math.nan,
            classification=classification,
            sign_factor=math.nan,
            binary_exponent=math.nan,
            mantissa_display="NaN",
        )

    sign_factor = -1.0 if sign else 1.0

    if classification is Classification.INFINITY:
        return DecodedValue(
            real_value=math.copysign(math.inf, sign_factor),
            classification=classification,
            sign_factor=sign_factor,
            binary_exponent=math.inf,
            mantissa_display="∞",
        )

    if classification is Classification.ZERO:
        return DecodedValue(
            real_value=math.copysign(0.0, sign_factor),
            classification=classification,
            sign_factor=sign_factor,
            binary_exponent=0,
            mantissa_display="0.0",
        )

    fraction = math.ldexp(float(fraction_field), -descriptor.fraction_bits)
    if classification is Classification.SUBNORMAL:
        exponent = descriptor.min_exponent
        mantissa = fraction
    else:
        exponent = exponent_field - descriptor.bias
        mantissa = 1.0 + fraction

    return DecodedValue(
        real_value=_scaled_value(sign_factor, mantissa, exponent),
        classification=classification,
        sign_factor=sign_factor,
        binary_exponent=exponent,
        mantissa_display=format_mantissa(mantissa, descriptor.fraction_bits),
    )


def round_half_even(value: float) -> int:
    floor = math.floor(value)
    diff = value - floor
    if diff > 0.5:
        return floor + 1
    if diff < 0.5:
        return floor
    return floor if floor % 2 == 0 else floor + 1


def _infinity(descriptor: FormatDescriptor, sign: int) -> FieldTriple:
    return FieldTriple(sign, descriptor.exponent_all_ones, 0)


def encode(descriptor: FormatDescriptor, value: float) -> FieldTriple:
    """Round ``value`` to the nearest pattern of ``descriptor``, ties to even.

    Overflow saturates to infinity and underflow to signed zero. Every NaN
    becomes the single quiet NaN with only the top fraction bit set.
    """
    value = float(value)
    sign_mask = _mask(descriptor.sign_bits)

    if math.isnan(value):
        quiet_bit = (1 << descriptor.fraction_bits) >> 1
        return FieldTriple(0, descriptor.exponent_all_ones, quiet_bit)

    sign = (1 if math.copysign(1.0, value) < 0 else 0) & sign_mask

    if math.isinf(value):
        return _infinity(descriptor, sign)
    if value == 0.0:
        return FieldTriple(sign, 0, 0)

    magnitude = abs(value)
    frexp_mantissa, frexp_exponent = math.frexp(magnitude)
    exponent = frexp_exponent - 1
    mantissa = frexp_mantissa * 2.0

    fraction_bits = descriptor.fraction_bits
    min_exponent = descriptor.min_exponent
    max_exponent = descriptor.max_exponent

    if exponent > max_exponent:
        return _infinity(descriptor, sign)

    if exponent < min_exponent:
        rounded = round_half_even(math.ldexp(magnitude, fraction_bits - min_exponent))
        if rounded <= 0:
            return FieldTriple(sign, 0, 0)
        if rounded > _mask(fraction_bits):
            return FieldTriple(sign, min(1, descriptor.exponent_all_ones), 0)
        return FieldTriple(sign, 0, rounded)

    rounded = round_half_even(math.ldexp(mantissa - 1.0, fraction_bits))
    if rounded == 1 << fraction_bits:
        rounded = 0
        exponent += 1
        if exponent > max_exponent:
            return _infinity(descriptor, sign)
    return FieldTriple(sign, exponent + descriptor.bias, rounded)


def encode_bits(descriptor: FormatDescriptor, value: float) -> int:
    return pack(descriptor, *encode(descriptor, value))


def decode_bits(descriptor: FormatDescriptor, bits: int) -> DecodedValue:
    return decode(descriptor, *unpack(descriptor, bits))


def _uint_dtype_for_bits(bits: int) -> Any:
    if bits == 16:
        return np.uint16
    if bits == 32:
        return np.uint32
    if bits == 64:
        return np.uint64
    raise ValueError(f"Unsupported native float width: {bits}")


def native_value(descriptor: FormatDescriptor, bits: int) -> float:
    """Reinterpret ``bits`` through numpy, for formats with a native dtype."""
    if descriptor.numpy_dtype is None:
        raise ValueError(f"{descriptor.title} has no native numpy dtype.")
    np_raw = np.array([bits], dtype=_uint_dtype_for_bits(descriptor.total_bits))
    return float(np_raw.view(descriptor.numpy_dtype)[0])


def native_bits(descriptor: FormatDescriptor, value: float) -> int:
    if descriptor.numpy_dtype is None:
        raise ValueError(f"{descriptor.title} has no native numpy dtype.")
    np_value = np.array([value], dtype=descriptor.numpy_dtype)
    return int(np_value.view(_uint_dtype_for_bits(descriptor.total_bits))[0])
