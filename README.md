# modmqtt

The core of a gateway between Modbus devices and an MQTT broker: it turns
Modbus register values into MQTT topic state and availability messages, and
turns messages received on MQTT command topics into register values to be
written back.

## Modules

- `modmqtt.mqttvalue` – `MqttValue`, holding a 32-bit integer, a 64-bit
  integer, a float with optional precision, or raw bytes (`SourceType`), with
  `as_string`, `as_float`, `as_int`, `as_uint16`, `as_int64` and `as_bytes`.
  Failed conversions raise `ConvError`.
- `modmqtt.registers` – `ModbusRegisters`, an ordered list of unsigned 16-bit
  register values.
- `modmqtt.converter` – helpers for writing converters (`get_arg`,
  `get_int_arg`, `get_double_arg`, `get_hex16_arg`, `registers_to_int32`,
  `int32_to_registers`, `swap_byte_order`, `swap_registers_byte_order`,
  `to_network_byte_order`, `to_float32`) and the `DataConverter` and
  `ConverterPlugin` base classes.
- `modmqtt.exceptions` – `ModMqttError` and its subclasses, and `PublishMode`
  (`ON_CHANGE`, `EVERY_POLL`).
- `modmqtt.addressing` – `RegisterType`, `AddressRange`, `SlaveAddressRange`
  and `RegisterValues` (values read from, or to be written to, a slave).
- `modmqtt.register_poll` – `RegisterPoll` and `RegisterWrite` requests.
- `modmqtt.queue_item` – `QueueItem`, a single-use envelope for data passed
  between threads.
- `modmqtt.config_values` – parsers for configuration values:
  `parse_duration` (`"500ms"`, `"10s"`, `"2min"`), `parse_number_ranges`
  (`"1,2,4-6"`), `parse_string_list`, `parse_serial_mode`, `parse_rts_mode`;
  invalid input raises `ConfigurationError`.
- `modmqtt.mqttcommand` – `MqttObjectCommand`, a command topic bound to a
  register range.
- `modmqtt.mqttobject` – `MqttObject`, a topic whose state is a tree of
  `DataNode`s, with availability tracking (`AvailableFlag`).
- `modmqtt.mqttpayload` – `generate(obj)` renders an object's state as a
  plain value, or as a JSON list or map.
- `modmqtt.mqttclient` – `MqttClient`, which publishes state and availability
  changes and hands incoming command payloads to Modbus clients, and the
  `MqttImpl` interface for MQTT backends.
- `modmqtt.mosquitto` – `Mosquitto`, an `MqttImpl` built on paho-mqtt.

## Installation

    pip install .

To run the tests:

    pip install ".[test]"
    pytest

## Example

    from modmqtt.mqttvalue import MqttValue
    from modmqtt.converter import registers_to_int32

    print(MqttValue.from_double(3245.6, 1).as_string())   # 3245.6
    print(registers_to_int32([2, 1], False))               # 131073

Building an object from two registers and rendering its payload:

    from modmqtt import mqttpayload
    from modmqtt.addressing import RegisterType, RegisterValues
    from modmqtt.mqttobject import AvailableFlag, DataNode, MqttObject, RegisterIdent

    obj = MqttObject("test_state")
    for register in (2, 3):
        node = DataNode()
        node.set_scalar_node(RegisterIdent("tcptest", 1, register, RegisterType.INPUT))
        obj.state.add_data_node(node)

    obj.update_register_values("tcptest", RegisterValues(1, 2, RegisterType.INPUT, [1, 7]))
    assert obj.available_flag == AvailableFlag.TRUE
    print(mqttpayload.generate(obj))   # [1,7]

A single unnamed register is published as a plain value, several unnamed
registers as a JSON list, and named nodes as a JSON map.

## What this package does not do

- It does not talk to Modbus devices. `MqttClient` expects Modbus clients
  supplied by the caller, with `network_name`, `send_mqtt_network_is_up` and
  `send_command`.
- It does not read a gateway configuration file or build `MqttObject`s from
  one; objects, commands and broker settings are set up in code.
- It ships no ready-made data converters; converters are written by
  subclassing `DataConverter`.
- It provides no command-line program or daemon.