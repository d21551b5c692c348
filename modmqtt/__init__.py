"""Modbus to MQTT gateway core: values, converters, MQTT objects, payloads and client."""

__version__ = "1.0.0"