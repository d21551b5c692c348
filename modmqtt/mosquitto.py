"""MQTT communication through the paho MQTT client library."""

from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Protocol

import paho.mqtt.client as mqtt

from modmqtt.exceptions import MosquittoError
from modmqtt.mqttclient import MqttClient, MqttImpl

log = logging.getLogger(__name__)


class ReturnCode(enum.IntEnum):
    """Result codes of the MQTT client library."""

    CONN_PENDING = -1
    SUCCESS = 0
    NOMEM = 1
    PROTOCOL = 2
    INVAL = 3
    NO_CONN = 4
    CONN_REFUSED = 5
    NOT_FOUND = 6
    CONN_LOST = 7
    TLS = 8
    PAYLOAD_SIZE = 9
    NOT_SUPPORTED = 10
    AUTH = 11
    ACL_DENIED = 12
    UNKNOWN = 13
    ERRNO = 14
    EAI = 15
    PROXY = 16


_MESSAGES = {
    ReturnCode.CONN_PENDING: "Connection pending.",
    ReturnCode.SUCCESS: "No error.",
    ReturnCode.NOMEM: "Out of memory.",
    ReturnCode.PROTOCOL: "A network protocol error occurred when communicating with the broker.",
    ReturnCode.INVAL: "Invalid function arguments provided.",
    ReturnCode.NO_CONN: "The client is not currently connected.",
    ReturnCode.CONN_REFUSED: "The connection was refused.",
    ReturnCode.NOT_FOUND: "Message not found (internal error).",
    ReturnCode.CONN_LOST: "The connection was lost.",
    ReturnCode.TLS: "A TLS error occurred.",
    ReturnCode.PAYLOAD_SIZE: "Payload too large.",
    ReturnCode.NOT_SUPPORTED: "This feature is not supported.",
    ReturnCode.AUTH: "Authorisation failed.",
    ReturnCode.ACL_DENIED: "Access denied by ACL.",
    ReturnCode.UNKNOWN: "Unknown error.",
    ReturnCode.ERRNO: "Error defined by errno.",
    ReturnCode.EAI: "Lookup error.",
    ReturnCode.PROXY: "Proxy error.",
}

CRITICAL_CODES = frozenset(
    {
        ReturnCode.NOMEM,
        ReturnCode.PROTOCOL,
        ReturnCode.INVAL,
        ReturnCode.NOT_FOUND,
        ReturnCode.TLS,
        ReturnCode.PAYLOAD_SIZE,
        ReturnCode.NOT_SUPPORTED,
        ReturnCode.AUTH,
        ReturnCode.ACL_DENIED,
        ReturnCode.UNKNOWN,
        ReturnCode.EAI,
        ReturnCode.PROXY,
    }
)

# library log levels
LOG_INFO = 0x01
LOG_NOTICE = 0x02
LOG_WARNING = 0x04
LOG_ERR = 0x08
LOG_DEBUG = 0x10

_LOG_LEVELS = {
    LOG_INFO: logging.INFO,
    LOG_NOTICE: logging.INFO,
    LOG_WARNING: logging.WARNING,
    LOG_ERR: logging.ERROR,
    LOG_DEBUG: logging.DEBUG,
}

RECONNECT_MIN_DELAY = 3
RECONNECT_MAX_DELAY = 60


def return_code_to_str(code: int) -> str:
    """Describe a library result code."""
    try:
        return _MESSAGES[ReturnCode(code)]
    except ValueError:
        return "Unknown error."


def raise_on_critical_error(code: int) -> None:
    """Raise MosquittoError if code is one the client cannot recover from."""
    if code in CRITICAL_CODES:
        raise MosquittoError(return_code_to_str(code))


def _describe(rc: Any) -> str:
    if isinstance(rc, int):
        return return_code_to_str(rc)
    return str(rc)


class BrokerConfig(Protocol):
    """Broker settings used to connect."""

    host: str
    port: int
    keepalive: int
    username: str
    password: str
    tls: bool
    cafile: str


def _paho_client(client_id: str) -> Any:
    version = getattr(mqtt, "CallbackAPIVersion", None)
    if version is not None:
        return mqtt.Client(
            callback_api_version=version.VERSION2, client_id=client_id, clean_session=True
        )
    return mqtt.Client(client_id=client_id, clean_session=True)


class Mosquitto(MqttImpl):
    """MqttImpl backed by a paho MQTT client running its own network thread."""

    def __init__(self, client_factory: Callable[[str], Any] | None = None):
        self._client_factory = client_factory or _paho_client
        self._client = self._client_factory("")
        self._owner: MqttClient | None = None

    @property
    def client(self) -> Any:
        return self._client

    def init(self, owner: MqttClient, client_id: str) -> None:
        self._owner = owner
        self._client = self._client_factory(client_id)

    def connect(self, config: BrokerConfig) -> None:
        log.info("Connecting to %s:%s", config.host, config.port)
        try:
            if config.username:
                self._client.username_pw_set(config.username, config.password)
            if config.tls:
                self._client.tls_set(ca_certs=config.cafile or None)
            self._client.connect_async(config.host, config.port, config.keepalive)
        except (ValueError, OSError) as ex:
            raise MosquittoError(str(ex)) from ex

        self._client.reconnect_delay_set(RECONNECT_MIN_DELAY, RECONNECT_MAX_DELAY)
        self._client.on_connect = self._handle_connect
        self._client.on_disconnect = self._handle_disconnect
        self._client.on_message = self._handle_message
        self._client.on_log = self._handle_log

        log.debug("Waiting for connection event")
        rc = self._client.loop_start()
        if rc not in (None, ReturnCode.SUCCESS):
            log.error("Error processing network traffic: %s", _describe(rc))

    def reconnect(self) -> None:
        self._client.reconnect()

    def disconnect(self) -> None:
        self._client.disconnect()

    def stop(self) -> None:
        self._client.loop_stop()

    def subscribe(self, topic: str) -> None:
        self._client.subscribe(topic, 0)

    def publish(self, topic: str, payload: bytes, retain: bool) -> None:
        self._client.publish(topic, payload, qos=0, retain=retain)

    def on_disconnect(self, rc: Any) -> None:
        log.info("Disconnected from mqtt broker, code:%s", _describe(rc))
        self._owner.on_disconnect()

    def on_connect(self, rc: Any) -> None:
        log.info("Connection established")
        self._owner.on_connect()

    def on_log(self, level: int, message: str) -> None:
        py_level = _LOG_LEVELS.get(int(level))
        if py_level is not None:
            log.log(py_level, "%s", message)

    def on_message(self, topic: str, payload: bytes) -> None:
        self._owner.on_message(topic, payload)

    # library callback adapters; signatures differ between callback API versions

    def _handle_connect(self, client: Any, userdata: Any, flags: Any, rc: Any, *rest: Any) -> None:
        self.on_connect(rc)

    def _handle_disconnect(self, client: Any, userdata: Any, *args: Any) -> None:
        rc = args[1] if len(args) >= 3 else args[0]
        self.on_disconnect(rc)

    def _handle_message(self, client: Any, userdata: Any, message: Any) -> None:
        self.on_message(message.topic, message.payload)

    def _handle_log(self, client: Any, userdata: Any, level: int, message: str) -> None:
        self.on_log(level, message)