"""Parsers for scalar values found in the configuration file."""

from __future__ import annotations

import enum
import re
from datetime import timedelta

from modmqtt.exceptions import ModMqttError

_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1


class ConfigurationError(ModMqttError):
    """Invalid configuration value, optionally with its position."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        self.line = line
        self.column = column
        if line is not None:
            where = f"line {line}" if column is None else f"line {line}, column {column}"
            message = f"{where}: {message}"
        super().__init__(message)


class SerialMode(enum.Enum):
    RS232 = "rs232"
    RS485 = "rs485"


class RtsMode(enum.Enum):
    DOWN = "down"
    UP = "up"


def parse_serial_mode(text: str) -> SerialMode:
    try:
        return SerialMode(text)
    except ValueError:
        raise ConfigurationError(f"Unknown serial mode {text}") from None


def parse_rts_mode(text: str) -> RtsMode:
    try:
        return RtsMode(text)
    except ValueError:
        raise ConfigurationError(f"Unknown RTS mode {text}") from None


_DURATION = re.compile(r"([0-9]+)(ms|s|min)")
_UNIT_MS = {"ms": 1, "s": 1000, "min": 60 * 1000}


def parse_duration(text: str) -> timedelta:
    """Parse a time like '10ms', '5s' or '2min'."""
    match = _DURATION.fullmatch(text)
    if match is None:
        raise ConfigurationError("Invalid time specification")
    return timedelta(milliseconds=int(match[1]) * _UNIT_MS[match[2]])


_RANGE = re.compile(r"\s*([0-9]+)-([0-9]+)\s*")
_NUMBER_PREFIX = re.compile(r"[ \t\n\v\f\r]*[+-]?[0-9]+")


def _to_number(text: str) -> int:
    match = _NUMBER_PREFIX.match(text)
    if match is None:
        raise ConfigurationError(f"Conversion to number or number list failed for [{text}]")
    if match.end() != len(text):
        raise ConfigurationError(
            f"Conversion to number failed, unknown char at {match.end()} position in {text}"
        )
    value = int(match.group(0))
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ConfigurationError(
            "Conversion to number or number list contains number that is out of range"
        )
    return value


def _tokens(text: str) -> list[str]:
    return [t for t in text.strip().split(",") if t]


def parse_number_ranges(text: str) -> list[tuple[int, int]]:
    """Parse '1,2,3,4-5,6' into (first, last) pairs; single numbers give (n, n)."""
    result = []
    for token in _tokens(text):
        match = _RANGE.fullmatch(token)
        if match is not None:
            result.append((_to_number(match[1]), _to_number(match[2])))
        else:
            number = _to_number(token)
            result.append((number, number))
    return result


def parse_string_list(text: str) -> list[str]:
    """Split a comma separated list, trimming each item."""
    return [t.strip() for t in _tokens(text)]