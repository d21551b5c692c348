import pytest

from modmqtt.addressing import RegisterType, SlaveAddressRange
from modmqtt.exceptions import ProgramError
from modmqtt.queue_item import QueueItem


def test_take_returns_data():
    rng = SlaveAddressRange(1, 2, RegisterType.INPUT)
    item = QueueItem(rng)
    assert item.take(SlaveAddressRange) is rng


def test_take_twice_raises():
    item = QueueItem("text")
    assert item.take(str) == "text"
    with pytest.raises(ProgramError, match="twice"):
        item.take(str)


def test_take_wrong_type_raises_and_keeps_data():
    item = QueueItem(5)
    with pytest.raises(ProgramError, match="str"):
        item.take(str)
    assert item.take(int) == 5


def test_is_same_as_is_exact_type():
    item = QueueItem(True)
    assert item.is_same_as(bool) is True
    assert item.is_same_as(int) is False


def test_is_same_as_survives_take():
    item = QueueItem([1])
    item.take(list)
    assert item.is_same_as(list) is True


def test_empty_item_cannot_be_taken():
    with pytest.raises(ProgramError):
        QueueItem().take(int)