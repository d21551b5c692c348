import logging
from types import SimpleNamespace

import pytest

from modmqtt.exceptions import MosquittoError
from modmqtt.mosquitto import (
    CRITICAL_CODES,
    LOG_DEBUG,
    LOG_ERR,
    LOG_WARNING,
    Mosquitto,
    ReturnCode,
    raise_on_critical_error,
    return_code_to_str,
)
from modmqtt.mqttclient import MqttClient


class FakeClient:
    def __init__(self, client_id):
        self.client_id = client_id
        self.calls = []
        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None
        self.on_log = None
        self.fail_connect = False

    def username_pw_set(self, username, password):
        self.calls.append(("username_pw_set", username, password))

    def tls_set(self, ca_certs=None):
        self.calls.append(("tls_set", ca_certs))

    def connect_async(self, host, port, keepalive):
        if self.fail_connect:
            raise ValueError("Invalid host.")
        self.calls.append(("connect_async", host, port, keepalive))

    def reconnect_delay_set(self, min_delay, max_delay):
        self.calls.append(("reconnect_delay_set", min_delay, max_delay))

    def loop_start(self):
        self.calls.append(("loop_start",))
        return 0

    def loop_stop(self):
        self.calls.append(("loop_stop",))

    def reconnect(self):
        self.calls.append(("reconnect",))

    def disconnect(self):
        self.calls.append(("disconnect",))

    def subscribe(self, topic, qos):
        self.calls.append(("subscribe", topic, qos))

    def publish(self, topic, payload, qos=0, retain=False):
        self.calls.append(("publish", topic, payload, qos, retain))


class FakeOwner:
    def __init__(self):
        self.events = []

    def on_connect(self):
        self.events.append("connect")

    def on_disconnect(self):
        self.events.append("disconnect")

    def on_message(self, topic, payload):
        self.events.append(("message", topic, payload))


def make_config(**overrides):
    password = "password"
    values = dict(
        host="localhost",
        port=1883,
        keepalive=60,
        username="",
        password=password,
        tls=False,
        cafile="",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def impl():
    created = []

    def factory(client_id):
        client = FakeClient(client_id)
        created.append(client)
        return client

    mosq = Mosquitto(factory)
    owner = FakeOwner()
    mosq.init(owner, "mqtt_test")
    return mosq, owner, created


def test_return_code_strings():
    assert return_code_to_str(ReturnCode.SUCCESS) == "No error."
    assert return_code_to_str(ReturnCode.PAYLOAD_SIZE) == "Payload too large."
    assert return_code_to_str(ReturnCode.CONN_PENDING) == "Connection pending."


def test_unknown_return_code():
    assert return_code_to_str(999) == return_code_to_str(ReturnCode.UNKNOWN)


@pytest.mark.parametrize("code", sorted(CRITICAL_CODES))
def test_critical_codes_raise(code):
    with pytest.raises(MosquittoError) as info:
        raise_on_critical_error(code)
    assert str(info.value) == return_code_to_str(code)


@pytest.mark.parametrize(
    "code", [ReturnCode.SUCCESS, ReturnCode.NO_CONN, ReturnCode.CONN_LOST, ReturnCode.ERRNO]
)
def test_recoverable_codes_are_not_critical(code):
    assert code not in CRITICAL_CODES
    assert raise_on_critical_error(code) is None


def test_init_creates_client_with_id(impl):
    mosq, _, created = impl
    assert created[-1].client_id == "mqtt_test"
    assert mosq.client is created[-1]


def test_connect_plain(impl):
    mosq, _, _ = impl
    mosq.connect(make_config())
    calls = mosq.client.calls
    assert calls[0] == ("connect_async", "localhost", 1883, 60)
    assert ("reconnect_delay_set", 3, 60) in calls
    assert calls[-1] == ("loop_start",)
    assert not any(c[0] in ("username_pw_set", "tls_set") for c in calls)


def test_connect_with_credentials_and_tls(impl):
    mosq, _, _ = impl
    password = "password"
    mosq.connect(make_config(username="user", password=password, tls=True, port=8883))
    calls = mosq.client.calls
    assert calls[0] == ("username_pw_set", "user", password)
    assert calls[1] == ("tls_set", None)
    assert calls[2] == ("connect_async", "localhost", 8883, 60)


def test_connect_tls_with_cafile(impl):
    mosq, _, _ = impl
    mosq.connect(make_config(tls=True, cafile="/dev/null"))
    assert ("tls_set", "/dev/null") in mosq.client.calls


def test_connect_failure_raises(impl):
    mosq, _, _ = impl
    mosq.client.fail_connect = True
    with pytest.raises(MosquittoError, match="Invalid host"):
        mosq.connect(make_config())
    assert ("loop_start",) not in mosq.client.calls


def test_callbacks_reach_owner(impl):
    mosq, owner, _ = impl
    mosq.connect(make_config())
    client = mosq.client
    client.on_connect(client, None, {}, 0)
    client.on_disconnect(client, None, 7)
    client.on_disconnect(client, None, {}, 0, None)
    client.on_message(client, None, SimpleNamespace(topic="a/set", payload=b"12"))
    assert owner.events == ["connect", "disconnect", "disconnect", ("message", "a/set", b"12")]


def test_log_levels(impl, caplog):
    mosq, _, _ = impl
    with caplog.at_level(logging.DEBUG, logger="modmqtt.mosquitto"):
        mosq.on_log(LOG_ERR, "broken")
        mosq.on_log(LOG_WARNING, "careful")
        mosq.on_log(LOG_DEBUG, "details")
    levels = {r.getMessage(): r.levelno for r in caplog.records}
    assert levels["broken"] == logging.ERROR
    assert levels["careful"] == logging.WARNING
    assert levels["details"] == logging.DEBUG


def test_publish_and_subscribe(impl):
    mosq, _, _ = impl
    mosq.subscribe("topic/set")
    mosq.publish("topic", b"1", True)
    mosq.publish("other", b"", False)
    assert mosq.client.calls == [
        ("subscribe", "topic/set", 0),
        ("publish", "topic", b"1", 0, True),
        ("publish", "other", b"", 0, False),
    ]


def test_lifecycle_calls(impl):
    mosq, _, _ = impl
    mosq.reconnect()
    mosq.disconnect()
    mosq.stop()
    assert mosq.client.calls == [("reconnect",), ("disconnect",), ("loop_stop",)]


def test_mqtt_client_uses_impl():
    created = []

    def factory(client_id):
        client = FakeClient(client_id)
        created.append(client)
        return client

    mosq = Mosquitto(factory)
    mqtt_client = MqttClient(mosq)
    mqtt_client.set_client_id("gateway")
    mqtt_client.set_broker_config(make_config())
    mqtt_client.start()
    client = mosq.client
    assert client.client_id == "gateway"
    client.on_connect(client, None, {}, 0)
    assert mqtt_client.is_connected()