from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

from .codec import decode, encode_bits, pack, toggle_bit, unpack
from .datatypes import (
    Classification,
    DecodedValue,
    FieldTriple,
    FormatDescriptor,
    ParseFailure,
)
from .textio import bit_string, format_decimal, from_hex, parse_decimal_input, to_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisplaySnapshot:
    """Everything a renderer shows for one pattern, computed in one go."""

    descriptor: FormatDescriptor
    bits: int
    fields: FieldTriple
    decoded: DecodedValue
    hex_text: str
    decimal_text: str
    bit_text: str
    sign_text: str
    exponent_text: str
    mantissa_text: str

    @property
    def formula(self) -> str:
        return (
            f"{self.sign_text} × {self.exponent_text} × {self.mantissa_text}"
            f" = {self.decimal_text}"
        )


def build_snapshot(descriptor: FormatDescriptor, bits: int) -> DisplaySnapshot:
    bits &= (1 << descriptor.total_bits) - 1
    fields = unpack(descriptor, bits)
    decoded = decode(descriptor, *fields)
    classification = decoded.classification

    if classification is Classification.NAN:
        sign_text = "NaN"
        exponent_text = "NaN"
    else:
        sign_text = "-1" if decoded.sign_factor < 0 else "1"
        if classification is Classification.INFINITY:
            exponent_text = "∞"
        else:
            exponent_text = f"2^{decoded.binary_exponent}"

    return DisplaySnapshot(
        descriptor=descriptor,
        bits=bits,
        fields=fields,
        decoded=decoded,
        hex_text=to_hex(descriptor, bits),
        decimal_text=format_decimal(decoded.real_value),
        bit_text=bit_string(descriptor, bits),
        sign_text=sign_text,
        exponent_text=exponent_text,
        mantissa_text=decoded.mantissa_display,
    )


def _value_preset(value: float) -> Callable[[FormatDescriptor], int]:
    return lambda descriptor: encode_bits(descriptor, value)


PRESETS: dict[str, Callable[[FormatDescriptor], int]] = {
    "0": _value_preset(0.0),
    "-0": _value_preset(-0.0),
    "1": _value_preset(1.0),
    "-1": _value_preset(-1.0),
    "π": _value_preset(math.pi),
    "e": _value_preset(math.e),
    "0.1": _value_preset(0.1),
    "min normal": lambda d: pack(d, 0, 1, 0),
    "max normal": lambda d: pack(d, 0, d.exponent_all_ones - 1, (1 << d.fraction_bits) - 1),
    "min subnormal": lambda d: pack(d, 0, 0, 1),
    "+∞": _value_preset(math.inf),
    "-∞": _value_preset(-math.inf),
    "NaN": _value_preset(math.nan),
}

PRESET_ALIASES = {
    "pi": "π",
    "+inf": "+∞",
    "inf": "+∞",
    "-inf": "-∞",
    "nan": "NaN",
}


class FormatEditor:
    """Editing context for one format: holds its single current bit pattern.

    Every edit swaps the whole pattern and rebuilds the snapshot before
    returning, so readers never see a half-applied edit.
    """

    def __init__(self, descriptor: FormatDescriptor, bits: int | None = None) -> None:
        self.descriptor = descriptor
        if bits is None:
            bits = encode_bits(descriptor, math.pi)
        self._snapshot = build_snapshot(descriptor, bits)

    @property
    def bits(self) -> int:
        return self._snapshot.bits

    @property
    def snapshot(self) -> DisplaySnapshot:
        return self._snapshot

    def set_bits(self, bits: int) -> DisplaySnapshot:
        self._snapshot = build_snapshot(self.descriptor, bits)
        return self._snapshot

    def set_fields(self, sign: int, exponent_field: int, fraction_field: int) -> DisplaySnapshot:
        return self.set_bits(pack(self.descriptor, sign, exponent_field, fraction_field))

    def set_value(self, value: float) -> DisplaySnapshot:
        return self.set_bits(encode_bits(self.descriptor, value))

    def toggle(self, bit_index: int) -> DisplaySnapshot:
        if bit_index >= self.descriptor.total_bits:
            raise IndexError(
                f"Bit index {bit_index} out of range for {self.descriptor.total_bits}-bit "
                f"{self.descriptor.title}."
            )
        return self.set_bits(toggle_bit(self.bits, bit_index, self.descriptor))

    def reset(self) -> DisplaySnapshot:
        return self.set_value(math.pi)

    def apply_preset(self, name: str) -> DisplaySnapshot:
        preset = PRESETS[PRESET_ALIASES.get(name, name)]
        return self.set_bits(preset(self.descriptor))

    def commit_hex(self, text: str) -> bool:
        try:
            bits = from_hex(self.descriptor, text)
        except ParseFailure as exc:
            logger.debug("Rejected hex commit for %s: %s", self.descriptor.key, exc)
            return False
        self.set_bits(bits)
        return True

    def commit_decimal(self, text: str) -> bool:
        try:
            value = parse_decimal_input(text)
        except ParseFailure as exc:
            logger.debug("Rejected decimal commit for %s: %s", self.descriptor.key, exc)
            return False
        self.set_value(value)
        return True
