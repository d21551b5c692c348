"""Commands that write MQTT payloads to modbus registers."""

from __future__ import annotations

import enum

from modmqtt.addressing import RegisterType, SlaveAddressRange
from modmqtt.converter import DataConverter


class PayloadType(enum.IntEnum):
    STRING = 1


class MqttObjectCommand(SlaveAddressRange):
    """A command topic bound to a register range on a modbus network."""

    def __init__(
        self,
        command_id: int,
        topic: str,
        payload_type: PayloadType,
        network_name: str,
        slave_id: int,
        register_type: RegisterType,
        register: int,
        count: int = 1,
    ):
        super().__init__(slave_id, register, register_type, count)
        self.command_id = command_id
        self.topic = topic
        self.payload_type = PayloadType(payload_type)
        self.network_name = network_name
        self.converter: DataConverter | None = None

    def has_converter(self) -> bool:
        return self.converter is not None

    def __repr__(self) -> str:
        return (
            f"MqttObjectCommand(id={self.command_id}, topic={self.topic!r}, "
            f"network={self.network_name!r}, slave={self.slave_id}, "
            f"register={self.register}, count={self.count})"
        )