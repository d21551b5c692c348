import pytest

from modmqtt.exceptions import (
    CommandNotFoundError,
    ConvNameParserError,
    ConvPluginNotFoundError,
    ModMqttError,
    MosquittoError,
    PayloadConversionError,
    ProgramError,
)


def test_default_message():
    assert str(ModMqttError()) == "Unknown error"


def test_command_not_found_message():
    err = CommandNotFoundError("dev/set")
    assert str(err) == "Command for topic dev/set not found"
    assert err.topic == "dev/set"


@pytest.mark.parametrize(
    "cls",
    [ProgramError, MosquittoError, PayloadConversionError, ConvNameParserError, ConvPluginNotFoundError],
)
def test_errors_caught_as_base(cls):
    with pytest.raises(ModMqttError) as excinfo:
        raise cls("boom")
    assert str(excinfo.value) == "boom"
    assert type(excinfo.value) is cls


def test_command_not_found_caught_as_base():
    err = CommandNotFoundError("x/y")
    caught = None
    try:
        raise err
    except ModMqttError as exc:
        caught = exc
    assert caught is err
    assert str(caught) == "Command for topic x/y not found"
    assert caught.topic == "x/y"