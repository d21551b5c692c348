import struct

import pytest

from modmqtt.converter import (
    ConverterPlugin,
    DataConverter,
    get_arg,
    get_double_arg,
    get_hex16_arg,
    get_int_arg,
    int32_to_registers,
    registers_to_int32,
    swap_byte_order,
    swap_registers_byte_order,
    to_double,
    to_float32,
    to_int,
    to_network_byte_order,
)
from modmqtt.mqttvalue import MqttValue
from modmqtt.registers import ModbusRegisters


def test_get_arg_missing():
    with pytest.raises(IndexError, match="Not enough arguments for converter"):
        get_arg(2, ["a", "b"])
    with pytest.raises(IndexError):
        get_arg(-1, ["a"])


def test_get_arg_present():
    assert get_arg(1, ["a", "b"]) == "b"


def test_get_int_and_double_args():
    args = ["10", "2.5"]
    assert get_int_arg(0, args) == 10
    assert get_double_arg(1, args) == 2.5


def test_to_int_ignores_trailing_text():
    assert to_int("12abc") == 12
    assert to_int("  -7") == -7


def test_to_int_invalid():
    with pytest.raises(ValueError):
        to_int("abc")


def test_to_int_out_of_range():
    with pytest.raises(ValueError, match="out of range"):
        to_int("2147483648")


def test_to_double_prefix():
    assert to_double(" 2.5x") == 2.5
    with pytest.raises(ValueError):
        to_double("x2.5")


def test_hex16_arg():
    assert get_hex16_arg(0, ["ff"]) == get_hex16_arg(0, ["0xFF"])
    assert get_hex16_arg(0, ["ffff"]) == 0xFFFF
    with pytest.raises(ValueError, match="value out of range"):
        get_hex16_arg(0, ["10000"])
    with pytest.raises(ValueError, match="value out of range"):
        get_hex16_arg(0, ["-1"])


def test_registers_to_int32():
    assert registers_to_int32([2, 1], False) == 131073
    assert registers_to_int32([1, 2], True) == 131073
    assert registers_to_int32([1, 1]) == 65537
    assert registers_to_int32(ModbusRegisters([2, 2])) == 131074


def test_single_register_is_unsigned():
    assert registers_to_int32([0xFFFF], False) == 0xFFFF


def test_int32_to_registers():
    assert int32_to_registers(131073, False, 2) == [2, 1]
    assert int32_to_registers(131073, True, 2) == [1, 2]
    assert int32_to_registers(131073, False, 1) == [1]


@pytest.mark.parametrize("value", [0, 1, -1, 131073, -(1 << 31), (1 << 31) - 1])
@pytest.mark.parametrize("low_first", [False, True])
def test_int32_round_trip(value, low_first):
    registers = int32_to_registers(value, low_first, 2)
    assert all(0 <= r <= 0xFFFF for r in registers)
    assert registers_to_int32(registers, low_first) == value


def test_swap_byte_order():
    assert swap_byte_order(0x1234) == 0x3412
    assert swap_byte_order(swap_byte_order(0xABCD)) == 0xABCD


def test_swap_registers_byte_order_is_involution():
    regs = [0x0102, 0xA0B0, 0]
    assert swap_registers_byte_order(swap_registers_byte_order(regs)) == regs


def test_network_byte_order():
    regs = [0x0102, 0xA0B0]
    out = to_network_byte_order(regs)
    for before, after in zip(regs, out):
        assert struct.pack("=H", after) == struct.pack(">H", before)


def test_to_float32():
    high, low = struct.unpack(">HH", struct.pack(">f", 1.5))
    assert to_float32(high, low) == 1.5
    assert to_float32(swap_byte_order(high), swap_byte_order(low), True) == 1.5


def test_base_converter_not_implemented():
    conv = DataConverter()
    with pytest.raises(NotImplementedError, match="mqtt value"):
        conv.to_mqtt(ModbusRegisters([1]))
    with pytest.raises(NotImplementedError, match="modbus register"):
        conv.to_modbus(MqttValue(1), 1)


class _Int32(DataConverter):
    def set_args(self, args):
        self.low_first = bool(args) and args[0] == "low_first"

    def to_mqtt(self, data):
        return MqttValue.from_int(registers_to_int32(data.values(), self.low_first))

    def to_modbus(self, value, register_count):
        return ModbusRegisters(int32_to_registers(value.as_int(), self.low_first, register_count))


class _Plugin(ConverterPlugin):
    def name(self):
        return "std"

    def get_converter(self, name):
        return _Int32() if name == "int32" else None


def test_plugin_and_converter_subclass():
    plugin = _Plugin()
    assert plugin.name() == "std"
    assert plugin.get_converter("missing") is None
    conv = plugin.get_converter("int32")
    conv.set_args([])
    assert conv.to_mqtt(ModbusRegisters([2, 1])).as_int() == 131073
    assert conv.to_modbus(MqttValue(131073), 2) == ModbusRegisters([2, 1])


def test_plugin_is_abstract():
    with pytest.raises(TypeError):
        ConverterPlugin()