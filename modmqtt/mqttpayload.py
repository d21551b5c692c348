"""Rendering of an object's state as an MQTT payload."""

from __future__ import annotations

import json
import math
from decimal import Decimal

from modmqtt.exceptions import ProgramError
from modmqtt.mqttobject import DataNode, DataNodeList, MqttObject
from modmqtt.mqttvalue import NO_PRECISION, ConvError, MqttValue, SourceType

_DEFAULT_DECIMAL_PLACES = 6


def _format_double(value: float, places: int | None) -> str:
    if not math.isfinite(value):
        raise ConvError(f"Cannot write {value} as a JSON number")
    text = format(Decimal(repr(value)), "f")
    whole, _, fraction = text.partition(".")
    if places is not None:
        fraction = fraction[:places]
    fraction = fraction.rstrip("0") or "0"
    return f"{whole}.{fraction}"


def _json_value(value: MqttValue) -> str:
    kind = value.source_type
    if kind is SourceType.INT:
        return str(value.as_int())
    if kind is SourceType.INT64:
        return str(value.as_int64())
    if kind is SourceType.BINARY:
        return json.dumps(value.as_string(), ensure_ascii=False)
    precision = value.precision
    if precision == 0:
        return str(value.as_int64())
    if precision > 0:
        places = precision
    elif precision == NO_PRECISION:
        places = _DEFAULT_DECIMAL_PLACES
    else:
        places = None
    return _format_double(value.as_float(), places)


def _json_node(node: DataNode) -> str:
    if node.is_scalar() or node.has_converter():
        return _json_value(node.converted_value())
    return _json_nodes(node.child_nodes)


def _json_nodes(nodes: DataNodeList) -> str:
    if not nodes:
        raise ProgramError("No data nodes to publish")
    first = nodes[0]
    if not first.is_unnamed():
        items = (f"{json.dumps(n.name, ensure_ascii=False)}:{_json_node(n)}" for n in nodes)
        return "{" + ",".join(items) + "}"
    if nodes.output_as_list or len(nodes) > 1:
        return "[" + ",".join(_json_node(n) for n in nodes) + "]"
    return _json_value(first.converted_value())


def generate(obj: MqttObject) -> str:
    """Return the state payload: a plain value for a single unnamed node, JSON otherwise."""
    nodes = obj.state.nodes
    if not nodes:
        raise ProgramError(f"Object {obj.topic} has no state data")
    if not nodes.output_as_list:
        single = nodes[0]
        if single.is_unnamed() and (single.is_scalar() or single.has_converter()):
            return single.converted_value().as_string()
    return _json_nodes(nodes)