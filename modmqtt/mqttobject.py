"""MQTT objects: topics whose state is built from modbus register values."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable

from modmqtt.addressing import AddressRange, RegisterType, RegisterValues, SlaveAddressRange
from modmqtt.converter import DataConverter
from modmqtt.exceptions import ProgramError, PublishMode
from modmqtt.mqttvalue import MqttValue
from modmqtt.registers import ModbusRegisters


class AvailableFlag(enum.IntEnum):
    """Availability of an object's state."""

    NOT_SET = -1
    FALSE = 0
    TRUE = 1


@dataclass(frozen=True, order=True)
class RegisterIdent:
    """Identifies a single register on a modbus network."""

    network_name: str
    slave_id: int
    register_number: int
    register_type: RegisterType

    @classmethod
    def from_range(cls, network: str, slave_range: SlaveAddressRange) -> "RegisterIdent":
        """Identify the first register of a slave address range."""
        return cls(network, slave_range.slave_id, slave_range.register, slave_range.register_type)

    def as_address_range(self) -> AddressRange:
        return AddressRange(self.register_number, self.register_type, 1)


class RegisterValue:
    """Last known value of a register and whether it is being read."""

    __slots__ = ("raw_value", "has_value", "is_polling")

    def __init__(self):
        self.raw_value = 0
        self.has_value = False
        self.is_polling = True

    def set_value(self, value: int) -> bool:
        """Store a value; True if it changed or is the first one."""
        had_value = self.has_value
        self.has_value = True
        if self.raw_value != value:
            self.raw_value = value
            return True
        return not had_value

    def clear_value(self) -> None:
        self.has_value = False

    def set_read_error(self, flag: bool) -> None:
        self.is_polling = not flag


class DataNodeList(list):
    """Data nodes, remembering whether they must be published as a list."""

    def __init__(self, nodes: Iterable["DataNode"] = ()):
        super().__init__(nodes)
        self.force_list_output = False

    @property
    def output_as_list(self) -> bool:
        return self.force_list_output


class DataNode:
    """A scalar register value or a composite of child nodes.

    A composite node is published as an object when its children are
    named, as a list when they are unnamed, or as a single value when
    the node has a converter.
    """

    def __init__(self, name: str = "", converter: DataConverter | None = None):
        self.name = name
        self.converter = converter
        self.ident: RegisterIdent | None = None
        self._nodes = DataNodeList()
        self._value = RegisterValue()

    @property
    def child_nodes(self) -> DataNodeList:
        return self._nodes

    @property
    def register_value(self) -> RegisterValue:
        return self._value

    def _matches(self, network_name: str, slave_range: SlaveAddressRange) -> bool:
        ident = self._require_ident()
        return (
            slave_range.slave_id == ident.slave_id
            and slave_range.register_type == ident.register_type
            and network_name == ident.network_name
        )

    def _require_ident(self) -> RegisterIdent:
        if self.ident is None:
            raise ProgramError("Scalar data node has no register set")
        return self.ident

    def update_register_values(self, network_name: str, slave_data: RegisterValues) -> bool:
        if not self.is_scalar():
            changed = [n.update_register_values(network_name, slave_data) for n in self._nodes]
            return any(changed)
        if not self._matches(network_name, slave_data):
            return False
        number = self.ident.register_number
        if slave_data.register <= number <= slave_data.last_register():
            changed = self._value.set_value(slave_data.registers[number - slave_data.register])
            self._value.set_read_error(False)
            return changed
        return False

    def update_registers_read_failed(
        self, network_name: str, slave_data: SlaveAddressRange
    ) -> bool:
        if not self.is_scalar():
            changed = [
                n.update_registers_read_failed(network_name, slave_data) for n in self._nodes
            ]
            return any(changed)
        if not self._matches(network_name, slave_data):
            return False
        if abs(self.ident.register_number - slave_data.register) < slave_data.count:
            self._value.set_read_error(True)
            return True
        return False

    def set_modbus_network_state(self, network_name: str, is_up: bool) -> bool:
        if not self.is_scalar():
            changed = [n.set_modbus_network_state(network_name, is_up) for n in self._nodes]
            return any(changed)
        if network_name == self._require_ident().network_name and self._value.is_polling != is_up:
            self._value.set_read_error(not is_up)
            return True
        return False

    def has_register_in(self, network_name: str, address_range: SlaveAddressRange) -> bool:
        if not self.is_scalar():
            return any(n.has_register_in(network_name, address_range) for n in self._nodes)
        ident = self._require_ident()
        return (
            ident.slave_id == address_range.slave_id
            and address_range.overlaps(ident.as_address_range())
            and ident.network_name == network_name
        )

    def has_all_values(self) -> bool:
        if self.is_scalar():
            self._require_ident()
            return self._value.has_value
        return all(n.has_all_values() for n in self._nodes)

    def is_polling(self) -> bool:
        if self.is_scalar():
            return self._value.is_polling
        return all(n.is_polling() for n in self._nodes)

    def is_unnamed(self) -> bool:
        return not self.name

    def has_converter(self) -> bool:
        return self.converter is not None

    def is_scalar(self) -> bool:
        return not self._nodes

    def add_child_node(self, node: "DataNode", force_list: bool = False) -> None:
        self._nodes.append(node)
        self._nodes.force_list_output = force_list or len(self._nodes) > 1

    def set_scalar_node(self, ident: RegisterIdent) -> None:
        self.ident = ident

    def converted_value(self) -> MqttValue:
        """The node value, passed through the converter if there is one."""
        if self.converter is None:
            return MqttValue.from_int(self._value.raw_value)
        if self.is_scalar():
            data = ModbusRegisters([self.raw_value()])
        else:
            data = ModbusRegisters(n.raw_value() for n in self._nodes)
        return self.converter.to_mqtt(data)

    def raw_value(self) -> int:
        if not self.is_scalar():
            raise ProgramError("Raw value requested from a composite data node")
        return self._value.raw_value

    def __repr__(self) -> str:
        if self.is_scalar():
            return f"DataNode(name={self.name!r}, ident={self.ident!r})"
        return f"DataNode(name={self.name!r}, children={len(self._nodes)})"


class ObjectState:
    """The data nodes that make up an object's published state."""

    def __init__(self):
        self.nodes = DataNodeList()

    def has_register_in(self, network_name: str, address_range: SlaveAddressRange) -> bool:
        return any(n.has_register_in(network_name, address_range) for n in self.nodes)

    def update_register_values(self, network_name: str, slave_data: RegisterValues) -> bool:
        return any([n.update_register_values(network_name, slave_data) for n in self.nodes])

    def update_registers_read_failed(
        self, network_name: str, slave_data: SlaveAddressRange
    ) -> bool:
        return any([n.update_registers_read_failed(network_name, slave_data) for n in self.nodes])

    def set_modbus_network_state(self, network_name: str, is_up: bool) -> bool:
        return any([n.set_modbus_network_state(network_name, is_up) for n in self.nodes])

    def has_all_values(self) -> bool:
        return all(n.has_all_values() for n in self.nodes)

    def is_polling(self) -> bool:
        return all(n.is_polling() for n in self.nodes)

    def add_data_node(self, node: DataNode, force_list: bool = False) -> None:
        self.nodes.append(node)
        self.nodes.force_list_output = force_list or len(self.nodes) > 1


class ObjectAvailability(ObjectState):
    """Registers deciding whether an object's state is available."""

    def __init__(self):
        super().__init__()
        self.available_value = MqttValue(1)

    def available_flag(self) -> AvailableFlag:
        if not self.nodes:
            return AvailableFlag.TRUE
        if not self.has_all_values() or not self.is_polling():
            return AvailableFlag.NOT_SET
        if self.nodes[0].converted_value().as_int() != self.available_value.as_int():
            return AvailableFlag.FALSE
        return AvailableFlag.TRUE


class MqttObject:
    """A topic with state built from registers and an availability flag."""

    def __init__(self, topic: str):
        self.topic = topic
        self.state_topic = topic
        self.availability_topic = topic + "/availability"
        self.state = ObjectState()
        self._availability = ObjectAvailability()
        self._available = AvailableFlag.NOT_SET
        self.retain = True
        self.publish_mode = PublishMode.ON_CHANGE
        self.last_published_payload = ""
        self._last_publish_time: float | None = None
        self._every_poll_period = 0.0

    @property
    def available_flag(self) -> AvailableFlag:
        return self._available

    def has_register_in(self, network_name: str, address_range: SlaveAddressRange) -> bool:
        return self.state.has_register_in(
            network_name, address_range
        ) or self._availability.has_register_in(network_name, address_range)

    def update_register_values(self, network_name: str, slave_data: RegisterValues) -> None:
        state_changed = self.state.update_register_values(network_name, slave_data)
        avail_changed = self._availability.update_register_values(network_name, slave_data)
        if state_changed or avail_changed or self._available == AvailableFlag.FALSE:
            self._update_available_flag()

    def update_registers_read_failed(
        self, network_name: str, slave_data: SlaveAddressRange
    ) -> None:
        state_changed = self.state.update_registers_read_failed(network_name, slave_data)
        avail_changed = self._availability.update_registers_read_failed(network_name, slave_data)
        if state_changed or avail_changed:
            self._update_available_flag()

    def set_modbus_network_state(self, network_name: str, is_up: bool) -> bool:
        state_changed = self.state.set_modbus_network_state(network_name, is_up)
        avail_changed = self._availability.set_modbus_network_state(network_name, is_up)
        if state_changed or avail_changed:
            self._update_available_flag()
            return True
        return False

    def add_availability_node(self, node: DataNode) -> None:
        self._availability.add_data_node(node)

    def set_available_value(self, value: MqttValue) -> None:
        self._availability.available_value = value

    def set_last_published_payload(self, payload: str) -> None:
        self.last_published_payload = payload
        self._last_publish_time = time.monotonic()

    def set_publish_mode(self, mode: PublishMode, every_poll_refresh: float | timedelta) -> None:
        """Set the publish mode; the refresh period is in seconds."""
        if isinstance(every_poll_refresh, timedelta):
            every_poll_refresh = every_poll_refresh.total_seconds()
        self.publish_mode = PublishMode(mode)
        self._every_poll_period = float(every_poll_refresh)

    def need_state_republish(self) -> bool:
        """True if unchanged state should be published again now."""
        if self.publish_mode == PublishMode.ON_CHANGE:
            return False
        if self._last_publish_time is None:
            return True
        return self._last_publish_time + self._every_poll_period <= time.monotonic()

    def _update_available_flag(self) -> None:
        if not self._availability.is_polling() or not self.state.is_polling():
            self._available = AvailableFlag.FALSE
        elif not self._availability.has_all_values() or not self.state.has_all_values():
            self._available = AvailableFlag.NOT_SET
        else:
            self._available = self._availability.available_flag()

    def __repr__(self) -> str:
        return f"MqttObject({self.topic!r})"