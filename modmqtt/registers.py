"""A list of 16-bit modbus register values."""

from __future__ import annotations

from typing import Iterable, Iterator


def _checked(value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 0xFFFF:
        raise ValueError(f"register value {value!r} out of range")
    return value


class ModbusRegisters:
    """Ordered register values, each an unsigned 16-bit integer."""

    __slots__ = ("_registers",)

    def __init__(self, values: int | Iterable[int] = ()):
        if isinstance(values, int):
            values = (values,)
        self._registers = [_checked(v) for v in values]

    def append(self, value: int) -> None:
        self._registers.append(_checked(value))

    def prepend(self, value: int) -> None:
        self._registers.insert(0, _checked(value))

    def values(self) -> list[int]:
        return list(self._registers)

    def __len__(self) -> int:
        return len(self._registers)

    def __iter__(self) -> Iterator[int]:
        return iter(self._registers)

    def __getitem__(self, index):
        return self._registers[index]

    def __setitem__(self, index: int, value: int) -> None:
        self._registers[index] = _checked(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModbusRegisters):
            return NotImplemented
        return self._registers == other._registers

    def __repr__(self) -> str:
        return f"ModbusRegisters({self._registers!r})"