import pytest

from modmqtt.registers import ModbusRegisters


def test_single_value_constructor():
    regs = ModbusRegisters(5)
    assert regs.values() == [5]
    assert len(regs) == 1


def test_append_and_prepend_order():
    regs = ModbusRegisters([2])
    regs.append(3)
    regs.prepend(1)
    assert regs.values() == [1, 2, 3]
    assert list(regs) == [1, 2, 3]


def test_values_returns_copy():
    regs = ModbusRegisters([1, 2])
    copy = regs.values()
    copy.append(9)
    assert regs.values() == [1, 2]


def test_set_item():
    regs = ModbusRegisters([1, 2])
    regs[1] = 0xFFFF
    assert regs[1] == 0xFFFF


def test_set_item_out_of_bounds():
    regs = ModbusRegisters([1])
    with pytest.raises(IndexError):
        regs[3] = 1
    assert regs.values() == [1]
    assert len(regs) == 1


@pytest.mark.parametrize("bad", [-1, 0x10000])
def test_out_of_range_values_rejected(bad):
    with pytest.raises(ValueError, match="out of range"):
        ModbusRegisters([bad])
    regs = ModbusRegisters()
    with pytest.raises(ValueError):
        regs.append(bad)
    assert len(regs) == 0


def test_equality():
    assert ModbusRegisters([1, 2]) == ModbusRegisters([1, 2])
    assert not ModbusRegisters([1, 2]) == ModbusRegisters([2, 1])