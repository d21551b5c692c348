"""Data converter interface and helpers for converter implementations."""

from __future__ import annotations

import abc
import math
import re
import struct
import sys
from typing import Sequence

from modmqtt.mqttvalue import MqttValue
from modmqtt.registers import ModbusRegisters

_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1
_SPACE = "[ \t\n\v\f\r]*"
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_FLOAT_PREFIX = re.compile(
    _SPACE
    + r"[+-]?(?:(?P<num>(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


def _wrap32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def to_double(arg: str) -> float:
    """Parse the leading number of a string; trailing text is ignored."""
    match = _FLOAT_PREFIX.match(arg)
    if match is None:
        raise ValueError(f"Cannot convert {arg!r} to double")
    value = float(match.group(0).strip())
    if match["num"] is not None and math.isinf(value):
        raise ValueError(f"value {arg!r} out of range")
    return value


def to_int(arg: str, base: int = 10) -> int:
    """Parse the leading integer of a string in the given base."""
    if not 2 <= base <= 36:
        raise ValueError(f"invalid base {base}")
    prefix = "(?:0[xX](?=[0-9a-fA-F]))?" if base == 16 else ""
    pattern = re.compile(
        _SPACE + r"(?P<sign>[+-]?)" + prefix + f"(?P<digits>[{_DIGITS[:base]}]+)",
        re.IGNORECASE,
    )
    match = pattern.match(arg)
    if match is None:
        raise ValueError(f"Cannot convert {arg!r} to int")
    value = int(match["sign"] + match["digits"], base)
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError("value out of range")
    return value


def get_arg(index: int, args: Sequence[str]) -> str:
    """Return the converter argument at index."""
    if 0 <= index < len(args):
        return args[index]
    raise IndexError("Not enough arguments for converter")


def get_int_arg(index: int, args: Sequence[str]) -> int:
    return to_int(get_arg(index, args))


def get_double_arg(index: int, args: Sequence[str]) -> float:
    return to_double(get_arg(index, args))


def get_hex16_arg(index: int, args: Sequence[str]) -> int:
    """Return the argument at index parsed as a hexadecimal 16-bit mask."""
    value = to_int(get_arg(index, args), 16)
    if value < 0 or value > 0xFFFF:
        raise ValueError("value out of range")
    return value


def registers_to_int32(data: Sequence[int], low_first: bool = False) -> int:
    """Combine one or two registers into a signed 32-bit integer."""
    high, low = (1, 0) if low_first and len(data) > 1 else (0, 1)
    value = data[high]
    if len(data) > 1:
        value = _wrap32((value << 16) + data[low])
    return value


def int32_to_registers(val: int, low_first: bool = False, register_count: int = 1) -> list[int]:
    """Split an integer into one or two registers."""
    registers = [val & 0xFFFF]
    if register_count == 2:
        high = (val >> 16) & 0xFFFF
        if low_first:
            registers.append(high)
        else:
            registers.insert(0, high)
    return registers


def swap_byte_order(value: int) -> int:
    """Swap the two bytes of a register."""
    return ((value & 0x00FF) << 8) | ((value & 0xFF00) >> 8)


def swap_registers_byte_order(registers: Sequence[int]) -> list[int]:
    return [swap_byte_order(r) for r in registers]


def to_network_byte_order(registers: Sequence[int]) -> list[int]:
    """Arrange each register so its in-memory bytes are big-endian."""
    if sys.byteorder == "little":
        return swap_registers_byte_order(registers)
    return list(registers)


def to_float32(high_register: int, low_register: int, swap_bytes: bool = False) -> float:
    """Reinterpret two registers, most significant first, as a 32-bit float."""
    registers = [high_register, low_register]
    if swap_bytes:
        registers = swap_registers_byte_order(registers)
    bits = registers_to_int32(registers, False) & 0xFFFFFFFF
    return struct.unpack(">f", struct.pack(">I", bits))[0]


class DataConverter:
    """Converts between modbus register values and MQTT values.

    Subclasses override the directions they support; the base class
    rejects both.
    """

    def __init__(self) -> None:
        self.args: tuple[str, ...] = ()

    def set_args(self, args: Sequence[str]) -> None:
        """Store the converter arguments."""
        self.args = tuple(args)

    def to_mqtt(self, data: ModbusRegisters) -> MqttValue:
        raise TypeError(
            f"{type(self).__name__}: conversion to mqtt value is not implemented"
        )

    def to_modbus(self, value: MqttValue, register_count: int) -> ModbusRegisters:
        raise TypeError(
            f"{type(self).__name__}: conversion to modbus register values is not implemented"
        )


class ConverterPlugin(abc.ABC):
    """A named collection of converters."""

    @abc.abstractmethod
    def name(self) -> str:
        """Return the plugin name used as converter prefix."""

    @abc.abstractmethod
    def get_converter(self, name: str) -> DataConverter | None:
        """Return a new converter with the given name, or None."""