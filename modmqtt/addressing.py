"""Modbus register addresses and register value messages."""

from __future__ import annotations

import enum
import time
from typing import Iterable

from modmqtt.registers import ModbusRegisters


class RegisterType(enum.IntEnum):
    """Modbus register tables."""

    COIL = 1
    BIT = 2
    HOLDING = 3
    INPUT = 4


class AddressRange:
    """A run of consecutive registers of one type."""

    def __init__(self, register: int, register_type: RegisterType, count: int = 1):
        self.register = register
        self.register_type = RegisterType(register_type)
        self.count = count

    def last_register(self) -> int:
        return self.register + self.count - 1

    def overlaps(self, other: "AddressRange") -> bool:
        """True if both ranges share at least one register of the same type."""
        if self.register_type != other.register_type:
            return False
        return self.register <= other.last_register() and other.register <= self.last_register()

    def _key(self) -> tuple:
        return (self.register, self.register_type, self.count)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash((type(self).__name__,) + self._key())

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(register={self.register}, "
            f"type={self.register_type.name}, count={self.count})"
        )


class SlaveAddressRange(AddressRange):
    """An address range on a specific modbus slave."""

    def __init__(
        self,
        slave_id: int,
        register: int,
        register_type: RegisterType,
        count: int = 1,
    ):
        super().__init__(register, register_type, count)
        self.slave_id = slave_id

    def _key(self) -> tuple:
        return (self.slave_id,) + super()._key()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(slave={self.slave_id}, register={self.register}, "
            f"type={self.register_type.name}, count={self.count})"
        )


class RegisterValues(SlaveAddressRange):
    """Values read from, or to be written to, a run of slave registers."""

    def __init__(
        self,
        slave_id: int,
        register: int,
        register_type: RegisterType,
        registers: ModbusRegisters | Iterable[int],
        command_id: int | None = None,
    ):
        if not isinstance(registers, ModbusRegisters):
            registers = ModbusRegisters(registers)
        super().__init__(slave_id, register, register_type, len(registers))
        self.registers = registers
        self.command_id = command_id
        self.created_at = time.monotonic()

    def has_command_id(self) -> bool:
        return self.command_id is not None

    def _key(self) -> tuple:
        return super()._key() + (tuple(self.registers), self.command_id)