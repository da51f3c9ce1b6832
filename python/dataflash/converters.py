"""Typed field values and the per-character type converters.

Format characters used in DataFlash format strings::

    b   int8_t          B   uint8_t
    h   int16_t         H   uint16_t
    i   int32_t         I   uint32_t
    q   int64_t         Q   uint64_t
    f   float
    c   int16_t * 100   C   uint16_t * 100
    e   int32_t * 100   E   uint32_t * 100
    L   int32_t latitude/longitude (degrees * 1e7)
    n   char[4]         N   char[16]        Z   char[64]
    M   uint8_t flight mode
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Protocol, Union

from .errors import MalformedRecord, TypeMismatch

if TYPE_CHECKING:
    from .vehicle import VehicleSession


# ---------------------------------------------------------------------------
# Typed values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IntValue:
    value: int

    def as_int(self) -> int:
        return self.value

    def as_float(self) -> float:
        return float(self.value)

    def as_str(self) -> str:
        raise TypeMismatch(f"integer {self.value} is not text")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class FloatValue:
    value: float

    def as_int(self) -> int:
        raise TypeMismatch(f"float {self.value} is not an integer")

    def as_float(self) -> float:
        return self.value

    def as_str(self) -> str:
        raise TypeMismatch(f"float {self.value} is not text")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TextValue:
    value: str

    def as_int(self) -> int:
        raise TypeMismatch(f"text {self.value!r} is not an integer")

    def as_float(self) -> float:
        raise TypeMismatch(f"text {self.value!r} is not a float")

    def as_str(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


TypedValue = Union[IntValue, FloatValue, TextValue]


# ---------------------------------------------------------------------------
# Binary cursor
# ---------------------------------------------------------------------------

class BinaryCursor:
    """Forward-only read position over a fixed byte buffer."""

    def __init__(self, data: bytes, offset: int = 0):
        self._data = data
        self.offset = offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self.offset

    def read(self, n: int) -> bytes:
        if n > self.remaining:
            raise MalformedRecord(
                f"read of {n} bytes at offset {self.offset} runs past end of buffer")
        raw = self._data[self.offset:self.offset + n]
        self.offset += n
        return bytes(raw)

    def read_byte(self) -> int:
        return self.read(1)[0]


# ---------------------------------------------------------------------------
# Little-endian integer helpers
# ---------------------------------------------------------------------------

# struct chars for signed words, keyed by width; upper-cased for unsigned
_WORD_FMT = {1: "b", 2: "h", 4: "i", 8: "q"}


def _word_fmt(width: int, signed: bool) -> str:
    fmt = _WORD_FMT[width]
    return "<" + (fmt if signed else fmt.upper())


def from_little_endian(raw: bytes, signed: bool) -> int:
    """Decode a 1, 2, 4 or 8 byte little-endian integer.

    8-byte values are composed from two 32-bit words: the low word is always
    zero-extended, the high word carries the sign.
    """
    if len(raw) == 8:
        low = from_little_endian(raw[:4], False)
        high = from_little_endian(raw[4:], signed)
        return (high << 32) | low
    return struct.unpack(_word_fmt(len(raw), signed), raw)[0]


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------

class Converter(Protocol):
    width: int

    def from_text(self, s: str) -> TypedValue: ...
    def from_binary(self, cursor: BinaryCursor) -> tuple[TypedValue, int]: ...
    def pack(self, value) -> bytes: ...


@dataclass(frozen=True)
class IntConverter:
    width: int
    signed: bool = True

    def from_text(self, s: str) -> IntValue:
        return IntValue(int(s))

    def from_binary(self, cursor: BinaryCursor) -> tuple[IntValue, int]:
        raw = cursor.read(self.width)
        return IntValue(from_little_endian(raw, self.signed)), self.width

    def pack(self, value) -> bytes:
        return struct.pack(_word_fmt(self.width, self.signed), int(value))


@dataclass(frozen=True)
class ScaledConverter:
    """Fixed-point integer, multiplied by ``scale`` after decoding."""

    width: int
    scale: float
    signed: bool = True

    def from_text(self, s: str) -> FloatValue:
        return FloatValue(float(s))

    def from_binary(self, cursor: BinaryCursor) -> tuple[FloatValue, int]:
        raw = cursor.read(self.width)
        n = from_little_endian(raw, self.signed)
        return FloatValue(n * self.scale), self.width

    def pack(self, value) -> bytes:
        return struct.pack(_word_fmt(self.width, self.signed),
                           int(round(float(value) / self.scale)))


@dataclass(frozen=True)
class FloatConverter:
    width: int = 4

    def from_text(self, s: str) -> FloatValue:
        return FloatValue(float(s))

    def from_binary(self, cursor: BinaryCursor) -> tuple[FloatValue, int]:
        raw = cursor.read(self.width)
        return FloatValue(struct.unpack("<f", raw)[0]), self.width

    def pack(self, value) -> bytes:
        return struct.pack("<f", float(value))


@dataclass(frozen=True)
class StringConverter:
    """Fixed-size latin-1 char buffer, terminated at the first NUL."""

    width: int

    def from_text(self, s: str) -> TextValue:
        return TextValue(s)

    def from_binary(self, cursor: BinaryCursor) -> tuple[TextValue, int]:
        raw = cursor.read(self.width)
        text = raw.split(b"\x00", 1)[0].decode("latin-1")
        return TextValue(text), self.width

    def pack(self, value) -> bytes:
        encoded = str(value).encode("latin-1")
        if len(encoded) > self.width:
            raise ValueError(
                f"{value!r} does not fit in a {self.width} byte string field")
        return encoded.ljust(self.width, b"\x00")


class ModeConverter:
    """Flight mode byte, named through the session's vehicle mode table."""

    width = 1

    def __init__(self, session: VehicleSession):
        self._session = session

    def from_text(self, s: str) -> TextValue:
        return TextValue(s)

    def from_binary(self, cursor: BinaryCursor) -> tuple[TextValue, int]:
        code = cursor.read_byte()
        return TextValue(self._session.mode_name(code)), self.width

    def pack(self, value) -> bytes:
        if isinstance(value, str):
            value = self._session.mode_number(value)
        return struct.pack("<B", int(value))

    def __repr__(self) -> str:
        return f"ModeConverter(build={self._session.build_name!r})"


def build_type_codes(session: VehicleSession) -> Mapping[str, Converter]:
    """Build the read-only converter table for one decoding session."""
    return MappingProxyType({
        "b": IntConverter(1),
        "B": IntConverter(1, signed=False),
        "h": IntConverter(2),
        "H": IntConverter(2, signed=False),
        "i": IntConverter(4),
        "I": IntConverter(4, signed=False),
        "q": IntConverter(8),
        "Q": IntConverter(8, signed=False),
        "f": FloatConverter(),
        "c": ScaledConverter(2, 0.01),
        "C": ScaledConverter(2, 0.01, signed=False),
        "e": ScaledConverter(4, 0.01),
        "E": ScaledConverter(4, 0.01, signed=False),
        "L": ScaledConverter(4, 1.0e-7),
        "n": StringConverter(4),
        "N": StringConverter(16),
        "Z": StringConverter(64),
        "M": ModeConverter(session),
    })
