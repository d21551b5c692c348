"""Errors raised by the gateway, and shared enumerations."""

from __future__ import annotations

import enum


class PublishMode(enum.IntEnum):
    """When object state is published."""

    ON_CHANGE = 1
    EVERY_POLL = 2


class ModMqttError(Exception):
    """Base class for gateway errors."""

    def __init__(self, message: str = "Unknown error"):
        super().__init__(message)


class ProgramError(ModMqttError):
    """An internal error caused by wrong use of the program's own parts."""


class MosquittoError(ModMqttError):
    """An error reported by the MQTT client library."""


class CommandNotFoundError(ModMqttError):
    """No command is registered for a topic."""

    def __init__(self, topic: str):
        super().__init__(f"Command for topic {topic} not found")
        self.topic = topic


class PayloadConversionError(ModMqttError):
    """An MQTT payload could not be converted to register values."""


class ConvNameParserError(ModMqttError):
    """A converter specification could not be parsed."""


class ConvPluginNotFoundError(ModMqttError):
    """A requested converter plugin is not loaded."""