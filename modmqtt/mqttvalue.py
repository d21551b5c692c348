"""Values published to or received from the MQTT broker."""

from __future__ import annotations

import enum
import math
import re
import struct

NO_PRECISION = -1


class ConvError(Exception):
    """Raised when a value cannot be converted to the requested form."""


class SourceType(enum.IntEnum):
    """Kind of data an MqttValue was created from."""

    INT = 0
    DOUBLE = 1
    BINARY = 2
    INT64 = 3


def _wrap(value: int, bits: int) -> int:
    """Reduce an integer to a signed integer of the given width."""
    value &= (1 << bits) - 1
    if value >> (bits - 1):
        value -= 1 << bits
    return value


def _clamp(value: int, bits: int) -> int:
    low = -(1 << (bits - 1))
    high = (1 << (bits - 1)) - 1
    return max(low, min(high, value))


_SPACE = "[ \t\n\v\f\r]*"
_INT_AUTO_BASE = re.compile(
    _SPACE
    + r"(?P<sign>[+-]?)(?:0[xX](?P<hex>[0-9a-fA-F]+)|(?P<oct>0[0-7]*)|(?P<dec>[1-9][0-9]*))"
)
_INT_DECIMAL = re.compile(_SPACE + r"(?P<sign>[+-]?)(?P<dec>[0-9]+)")
_FLOAT = re.compile(
    _SPACE
    + r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


def _parse_int(text: str, auto_base: bool, target: str) -> int:
    """Parse a whole string as an integer the way the C library does."""
    if not text:
        return 0
    pattern = _INT_AUTO_BASE if auto_base else _INT_DECIMAL
    match = pattern.fullmatch(text)
    if match is None:
        raise ConvError(f"Cannot convert {text} to {target}")
    if match["hex"] is not None:
        number = int(match["hex"], 16)
    elif auto_base and match["oct"] is not None:
        number = int(match["oct"], 8)
    else:
        number = int(match["dec"], 10)
    if match["sign"] == "-":
        number = -number
    return _clamp(number, 64)


def _parse_float(text: str) -> float:
    if not text:
        return 0.0
    if _FLOAT.fullmatch(text) is None:
        raise ConvError(f"Cannot convert {text} to double")
    return float(text.strip())


class MqttValue:
    """A typed value: 32- or 64-bit integer, double or binary string."""

    __slots__ = ("_type", "_value", "_precision")

    def __init__(self, value: int | float | str | bytes = 0, precision: int = NO_PRECISION):
        if isinstance(value, bool):
            value = int(value)
        if isinstance(value, int):
            if _clamp(value, 32) == value:
                self._assign(SourceType.INT, value)
            else:
                self._assign(SourceType.INT64, _wrap(value, 64))
        elif isinstance(value, float):
            self._assign(SourceType.DOUBLE, value, precision)
        elif isinstance(value, str):
            self._assign(SourceType.BINARY, value.encode("utf-8", "surrogateescape"))
        elif isinstance(value, (bytes, bytearray, memoryview)):
            self._assign(SourceType.BINARY, bytes(value))
        else:
            raise TypeError(f"unsupported value type {type(value).__name__}")

    def _assign(self, kind: SourceType, value, precision: int = NO_PRECISION) -> None:
        self._type = kind
        self._value = value
        self._precision = precision if kind is SourceType.DOUBLE else NO_PRECISION

    @classmethod
    def _make(cls, kind: SourceType, value, precision: int = NO_PRECISION) -> "MqttValue":
        obj = cls.__new__(cls)
        obj._assign(kind, value, precision)
        return obj

    @classmethod
    def from_int(cls, val: int) -> "MqttValue":
        return cls._make(SourceType.INT, _wrap(int(val), 32))

    @classmethod
    def from_int64(cls, val: int) -> "MqttValue":
        return cls._make(SourceType.INT64, _wrap(int(val), 64))

    @classmethod
    def from_double(cls, val: float, precision: int = NO_PRECISION) -> "MqttValue":
        return cls._make(SourceType.DOUBLE, float(val), precision)

    @classmethod
    def from_binary(cls, data: bytes) -> "MqttValue":
        return cls._make(SourceType.BINARY, bytes(data))

    @classmethod
    def from_string(cls, val: str) -> "MqttValue":
        return cls._make(SourceType.BINARY, val.encode("utf-8", "surrogateescape"))

    @property
    def source_type(self) -> SourceType:
        return self._type

    @property
    def precision(self) -> int:
        return self._precision

    def _format_double(self) -> str:
        value = self._value
        if self._precision == NO_PRECISION and math.isfinite(value) and value.is_integer():
            return str(int(value))
        digits = 6 if self._precision == NO_PRECISION else self._precision
        return f"{value:.{digits}f}"

    def as_string(self) -> str:
        if self._type is SourceType.BINARY:
            return self._value.decode("utf-8", "surrogateescape")
        if self._type is SourceType.DOUBLE:
            return self._format_double()
        return str(self._value)

    def as_float(self) -> float:
        if self._type is SourceType.BINARY:
            return _parse_float(self.as_string())
        return float(self._value)

    def _double_to_int(self, bits: int) -> int:
        if not math.isfinite(self._value):
            raise ConvError(f"Cannot convert {self._value} to int")
        return _wrap(int(self._value), bits)

    def as_int(self) -> int:
        if self._type is SourceType.BINARY:
            return _wrap(_parse_int(self.as_string(), True, "int"), 32)
        if self._type is SourceType.DOUBLE:
            return self._double_to_int(32)
        return _wrap(self._value, 32)

    def as_uint16(self) -> int:
        val = self.as_int()
        if val < 0 or val > 0xFFFF:
            raise ConvError(f"Conversion failed, value {val} out of range")
        return val

    def as_int64(self) -> int:
        if self._type is SourceType.BINARY:
            return _parse_int(self.as_string(), False, "int64")
        if self._type is SourceType.DOUBLE:
            return self._double_to_int(64)
        return self._value

    def as_bytes(self) -> bytes:
        """Raw bytes of the value; numbers use native byte order."""
        if self._type is SourceType.BINARY:
            return self._value
        if self._type is SourceType.INT:
            return struct.pack("=i", self._value)
        if self._type is SourceType.INT64:
            return struct.pack("=q", self._value)
        return struct.pack("=d", self._value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MqttValue):
            return NotImplemented
        return (self._type, self._value, self._precision) == (
            other._type,
            other._value,
            other._precision,
        )

    def __hash__(self) -> int:
        return hash((self._type, self._value, self._precision))

    def __repr__(self) -> str:
        return f"MqttValue({self._type.name}, {self._value!r})"