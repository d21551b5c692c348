"""Register read and write commands executed by modbus threads."""

from __future__ import annotations

import abc
import time
from typing import Sequence

from modmqtt.addressing import AddressRange, RegisterType, RegisterValues
from modmqtt.exceptions import PublishMode
from modmqtt.registers import ModbusRegisters


class RegisterCommand(AddressRange, abc.ABC):
    """A modbus operation on a register range of one slave.

    Delays are in seconds.
    """

    def __init__(self, slave_id: int, register: int, register_type: RegisterType, count: int):
        super().__init__(register, register_type, count)
        self.slave_id = slave_id
        self.max_read_retry_count = 0
        self.max_write_retry_count = 0
        self.delay_before_first_command = 0.0
        self.delay_before_command = 0.0

    @property
    @abc.abstractmethod
    def values(self) -> list[int]:
        """Register values of the last read, or values to write."""

    @property
    @abc.abstractmethod
    def executed_ok(self) -> bool:
        """True if the last execution succeeded."""

    @property
    def has_delay_before_first_command(self) -> bool:
        return self.delay_before_first_command != 0

    @property
    def has_delay_before_command(self) -> bool:
        return self.delay_before_command != 0

    def has_delay(self) -> bool:
        return self.has_delay_before_command or self.has_delay_before_first_command

    def set_max_retry_counts(self, max_read: int, max_write: int, force: bool = False) -> None:
        """Set retry limits; zero leaves a limit unchanged unless forced."""
        if max_read != 0 or force:
            self.max_read_retry_count = max_read
        if max_write != 0 or force:
            self.max_write_retry_count = max_write


class RegisterPoll(RegisterCommand):
    """A register range polled periodically; refresh is in seconds."""

    DURATION_BETWEEN_LOG_ERROR = 5 * 60.0
    DEFAULT_READ_ERROR_COUNT = 3

    def __init__(
        self,
        slave_id: int,
        register: int,
        register_type: RegisterType,
        count: int,
        refresh: float,
        publish_mode: PublishMode = PublishMode.ON_CHANGE,
    ):
        super().__init__(slave_id, register, register_type, count)
        now = time.monotonic()
        self.refresh = refresh
        self.publish_mode = PublishMode(publish_mode)
        self.last_read_ok = False
        self.last_read = now - 24 * 3600.0
        self.read_errors = 0
        self.first_error_time = now
        self._last_values = [0] * count

    @property
    def values(self) -> list[int]:
        return list(self._last_values)

    @property
    def executed_ok(self) -> bool:
        return self.last_read_ok

    def update(self, new_values: Sequence[int]) -> None:
        self._last_values = list(new_values)
        self.count = len(self._last_values)


class RegisterWrite(RegisterCommand):
    """Values to be written to a register range."""

    def __init__(
        self,
        slave_id: int,
        register: int,
        register_type: RegisterType,
        values: ModbusRegisters,
        creation_time: float | None = None,
    ):
        if not isinstance(values, ModbusRegisters):
            values = ModbusRegisters(values)
        super().__init__(slave_id, register, register_type, len(values))
        self.register_values = values
        self.last_write_ok = False
        self.creation_time = time.monotonic() if creation_time is None else creation_time
        self.return_message: RegisterValues | None = None

    @classmethod
    def from_message(cls, msg: RegisterValues) -> "RegisterWrite":
        return cls(
            msg.slave_id,
            msg.register,
            msg.register_type,
            ModbusRegisters(msg.registers),
            msg.created_at,
        )

    @property
    def values(self) -> list[int]:
        return self.register_values.values()

    @property
    def executed_ok(self) -> bool:
        return self.last_write_ok