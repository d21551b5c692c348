"""MQTT side of the gateway: publishes object state and forwards commands."""

from __future__ import annotations

import abc
import enum
import logging
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping, Protocol

from modmqtt import mqttpayload
from modmqtt.addressing import RegisterValues, SlaveAddressRange
from modmqtt.converter import DataConverter
from modmqtt.exceptions import (
    CommandNotFoundError,
    MosquittoError,
    PayloadConversionError,
    ProgramError,
    PublishMode,
)
from modmqtt.mqttcommand import MqttObjectCommand, PayloadType
from modmqtt.mqttobject import AvailableFlag, MqttObject, RegisterIdent
from modmqtt.mqttvalue import ConvError, MqttValue
from modmqtt.registers import ModbusRegisters

log = logging.getLogger(__name__)


class MqttImpl(abc.ABC):
    """Interface of an MQTT communication library used by MqttClient."""

    @abc.abstractmethod
    def init(self, owner: "MqttClient", client_id: str) -> None:
        """Bind to the owning client and set the client id."""

    @abc.abstractmethod
    def connect(self, config: Any) -> None:
        """Start connecting to the broker described by config."""

    @abc.abstractmethod
    def reconnect(self) -> None:
        """Reconnect to the broker."""

    @abc.abstractmethod
    def disconnect(self) -> None:
        """Request a clean disconnect."""

    @abc.abstractmethod
    def stop(self) -> None:
        """Stop the network loop."""

    @abc.abstractmethod
    def subscribe(self, topic: str) -> None:
        """Subscribe to a topic."""

    @abc.abstractmethod
    def publish(self, topic: str, payload: bytes, retain: bool) -> None:
        """Publish a payload on a topic."""

    @abc.abstractmethod
    def on_disconnect(self, rc: int) -> None:
        """Called by the library when the connection is closed."""

    @abc.abstractmethod
    def on_connect(self, rc: int) -> None:
        """Called by the library when the connection is established."""

    @abc.abstractmethod
    def on_log(self, level: int, message: str) -> None:
        """Called by the library with log messages."""


class ModbusClientLike(Protocol):
    """What MqttClient needs from a modbus network client."""

    network_name: str

    def send_mqtt_network_is_up(self, is_up: bool) -> None: ...

    def send_command(self, command: MqttObjectCommand, values: ModbusRegisters) -> None: ...


class ConnectionState(enum.Enum):
    DISCONNECTED = enum.auto()
    CONNECTING = enum.auto()
    CONNECTED = enum.auto()
    DISCONNECTING = enum.auto()


def _create_mqtt_value(command: MqttObjectCommand, payload: bytes) -> MqttValue:
    if command.payload_type == PayloadType.STRING:
        return MqttValue.from_binary(payload)
    raise PayloadConversionError(
        f"Conversion failed, unknown payload type{int(command.payload_type)}"
    )


class MqttClient:
    """Keeps MQTT objects in sync with modbus data and routes command topics.

    ``objects`` maps the first register of each poll group to the objects
    using it; ``command_objects`` maps command ids to the objects that
    poll the registers a command writes.
    """

    def __init__(
        self,
        mqtt_impl: MqttImpl,
        default_converter: DataConverter | None = None,
        on_stopped: Callable[[], None] | None = None,
    ):
        self.mqtt_impl = mqtt_impl
        self.default_converter = default_converter
        self._on_stopped = on_stopped
        self._broker_config: Any = None
        self.modbus_clients: list[ModbusClientLike] = []
        self.objects: dict[RegisterIdent, list[MqttObject]] = {}
        self.command_objects: dict[int, list[MqttObject]] = {}
        self._commands: dict[str, MqttObjectCommand] = {}
        self._state = ConnectionState.DISCONNECTED
        self._is_started = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._is_started

    @property
    def broker_config(self) -> Any:
        return self._broker_config

    @property
    def commands(self) -> Mapping[str, MqttObjectCommand]:
        return MappingProxyType(self._commands)

    def set_client_id(self, client_id: str) -> None:
        if self._is_started:
            raise MosquittoError("Cannot change client id when started")
        self.mqtt_impl.init(self, client_id)

    def set_broker_config(self, config: Any) -> None:
        if self._broker_config != config:
            self._broker_config = config

    def start(self) -> None:
        if self._state is ConnectionState.CONNECTED:
            return
        self._is_started = True
        self._state = ConnectionState.CONNECTING
        self.mqtt_impl.connect(self._broker_config)

    def shutdown(self) -> None:
        # modbus clients are already stopped, do not queue anything for them
        self.modbus_clients = []
        if self._state is ConnectionState.CONNECTED:
            log.info("Disconnecting from mqtt broker")
            self._state = ConnectionState.DISCONNECTING
            self.mqtt_impl.disconnect()
        elif self._state is ConnectionState.CONNECTING:
            log.info("Cancelling connection request")
            self._is_started = False
        elif self._state is ConnectionState.DISCONNECTING:
            log.info("Shutdown already in progress, waiting for clean disconnect")
        else:
            self._is_started = False
            self._state = ConnectionState.DISCONNECTED

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def reconnect(self) -> None:
        self.mqtt_impl.reconnect()

    def add_command(self, command: MqttObjectCommand) -> None:
        self._commands.setdefault(command.topic, command)

    def _find_command(self, topic: str) -> MqttObjectCommand:
        try:
            return self._commands[topic]
        except KeyError:
            raise CommandNotFoundError(topic) from None

    def _unique_objects(self, network_name: str | None = None) -> Iterator[MqttObject]:
        seen: set[int] = set()
        for ident in sorted(self.objects):
            if network_name is not None and ident.network_name != network_name:
                continue
            for obj in self.objects[ident]:
                if id(obj) not in seen:
                    seen.add(id(obj))
                    yield obj

    def publish_all(self) -> None:
        """Publish state and availability of every object."""
        for obj in self._unique_objects():
            if obj.available_flag == AvailableFlag.TRUE:
                self.publish_state(obj, True)
            self.publish_availability_change(obj)

    def publish_state(self, obj: MqttObject, force: bool = False) -> None:
        if obj.available_flag != AvailableFlag.TRUE:
            return
        payload = mqttpayload.generate(obj)
        if payload != obj.last_published_payload or force:
            log.debug("Publish on topic %s: %s", obj.state_topic, payload)
            self.mqtt_impl.publish(
                obj.state_topic, payload.encode("utf-8", "surrogateescape"), obj.retain
            )
            obj.set_last_published_payload(payload)

    def publish_availability_change(self, obj: MqttObject) -> None:
        flag = obj.available_flag
        if flag == AvailableFlag.NOT_SET:
            return
        payload = b"1" if flag == AvailableFlag.TRUE else b"0"
        self.mqtt_impl.publish(obj.availability_topic, payload, True)

    def process_register_values(self, network_name: str, values: RegisterValues) -> None:
        if not self.is_connected():
            # retained messages keep the last known value on the broker
            log.debug("Mqtt broker not connected, dropping register values")
            return

        if values.has_command_id():
            affected = self.command_objects.get(values.command_id)
        else:
            ident = RegisterIdent.from_range(network_name, values)
            affected = self.objects.get(ident)
            if affected is None:
                raise ProgramError(f"No objects registered for {ident}")

        if affected is None:
            log.debug("No affected objects for received register values")
            return

        for obj in affected:
            old_avail = obj.available_flag
            obj.update_register_values(network_name, values)
            new_avail = obj.available_flag

            if old_avail != new_avail:
                if new_avail == AvailableFlag.TRUE:
                    if obj.retain:
                        self.publish_state(obj, True)
                    else:
                        if old_avail == AvailableFlag.NOT_SET:
                            # drop any retained message left on the broker
                            self.mqtt_impl.publish(obj.state_topic, b"", True)
                            obj.set_last_published_payload(mqttpayload.generate(obj))
                        if obj.publish_mode == PublishMode.EVERY_POLL:
                            self.publish_state(obj, True)
                self.publish_availability_change(obj)
            else:
                self.publish_state(obj, obj.need_state_republish())

    def process_registers_operation_failed(
        self, network_name: str, address_range: SlaveAddressRange
    ) -> None:
        ident = RegisterIdent.from_range(network_name, address_range)
        affected = self.objects.get(ident)
        # failed writes may not relate to any polled object
        if affected is None:
            return
        for obj in affected:
            old_avail = obj.available_flag
            obj.update_registers_read_failed(network_name, address_range)
            self.publish_state(obj)
            if old_avail != obj.available_flag:
                self.publish_availability_change(obj)

    def process_modbus_network_state(self, network_name: str, is_up: bool) -> None:
        for obj in self._unique_objects(network_name):
            old_avail = obj.available_flag
            obj.set_modbus_network_state(network_name, is_up)
            if old_avail != obj.available_flag:
                self.publish_availability_change(obj)

    def on_disconnect(self) -> None:
        for client in self.modbus_clients:
            client.send_mqtt_network_is_up(False)
        if self._state in (ConnectionState.CONNECTED, ConnectionState.CONNECTING):
            log.info("reconnecting to mqtt broker")
            self.mqtt_impl.reconnect()
        elif self._state is ConnectionState.DISCONNECTING:
            log.info("Stopping mqtt message loop")
            self._state = ConnectionState.DISCONNECTED
            self.mqtt_impl.stop()
            self._is_started = False
            if self._on_stopped is not None:
                self._on_stopped()

    def on_connect(self) -> None:
        log.info("Mqtt connected, sending subscriptions")
        for topic in self._commands:
            self.mqtt_impl.subscribe(topic)
        self._state = ConnectionState.CONNECTED
        # a restarted broker has lost everything published before
        self.publish_all()
        for client in self.modbus_clients:
            client.send_mqtt_network_is_up(True)
        log.info("Mqtt ready to process messages")

    def on_message(self, topic: str, payload: bytes) -> None:
        try:
            command = self._find_command(topic)
            network = command.network_name
            client = next((c for c in self.modbus_clients if c.network_name == network), None)
            if client is None:
                log.error(
                    "Modbus network %s not found for command %s, dropping message",
                    network,
                    topic,
                )
                return
            value = _create_mqtt_value(command, bytes(payload))
            converter = command.converter if command.has_converter() else self.default_converter
            if converter is None:
                raise PayloadConversionError("Conversion failed, no converter for command")
            registers = converter.to_modbus(value, command.count)
            if len(registers) != command.count:
                raise PayloadConversionError(
                    f"Conversion failed, expecting {command.count} register values, "
                    f"got {len(registers)}"
                )
            client.send_command(command, registers)
        except ConvError as ex:
            log.error("Converter error for %s:%s", topic, ex)
        except PayloadConversionError as ex:
            log.error("Value error for %s:%s", topic, ex)
        except CommandNotFoundError:
            log.error("No command for topic %s, dropping message", topic)