from __future__ import annotations

from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest

from vibrasense.exceptions import TransportError
from vibrasense.transport import mqtt as mqtt_source
from vibrasense.transport.mqtt import MqttLineSource, MqttSubscription, split_payload


class _FakeLoop:
    def __init__(self) -> None:
        self.calls: list[tuple[Callable[..., Any], tuple[Any, ...]]] = []

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        self.calls.append((callback, args))


class _FakeClient:
    instances: list[_FakeClient] = []
    refuse = False

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.subscribed: list[str] = []
        self.loop_started = False
        self.loop_stopped = False
        self.disconnected = False
        _FakeClient.instances.append(self)

    def enable_logger(self, _logger: Any) -> None:
        return None

    def username_pw_set(self, _username: str, _password: str | None) -> None:
        return None

    def tls_set(self) -> None:
        return None

    def connect(self, host: str, port: int, keepalive: int = 60) -> None:
        if _FakeClient.refuse:
            raise ConnectionRefusedError(111, "Connection refused")
        self.target = (host, port, keepalive)

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscribed.append(topic)

    def loop_start(self) -> None:
        self.loop_started = True

    def loop_stop(self) -> None:
        self.loop_stopped = True

    def disconnect(self) -> None:
        self.disconnected = True


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> type[_FakeClient]:
    _FakeClient.instances = []
    _FakeClient.refuse = False
    monkeypatch.setattr(mqtt_source.mqtt, "Client", _FakeClient)
    return _FakeClient


def test_split_payload_keeps_non_blank_lines() -> None:
    payload = b"TYPE=RESCUEE,ID=R1\r\n\n TYPE=RESCUER,ID=H1 \n"

    assert split_payload(payload) == ["TYPE=RESCUEE,ID=R1", "TYPE=RESCUER,ID=H1"]


def test_messages_are_handed_to_the_loop_line_by_line() -> None:
    loop = _FakeLoop()
    received: list[str] = []
    source = MqttLineSource(loop=loop, on_line=received.append)  # type: ignore[arg-type]

    message = SimpleNamespace(topic="vibrasense/lines", payload=b"TYPE=RESCUEE,ID=R1\nTYPE=RESCUEE,ID=R2")
    source._on_message(None, None, message)  # type: ignore[arg-type]  # noqa: SLF001

    for callback, args in loop.calls:
        callback(*args)
    assert received == ["TYPE=RESCUEE,ID=R1", "TYPE=RESCUEE,ID=R2"]


def test_start_subscribes_on_successful_connect(fake_client: type[_FakeClient]) -> None:
    source = MqttLineSource(loop=_FakeLoop(), on_line=lambda _line: None)  # type: ignore[arg-type]

    source.start(MqttSubscription(host="broker", port=1883, topic="field/lines"))
    client = fake_client.instances[-1]
    source._on_connect(client, None, None, SimpleNamespace(value=0), None)  # type: ignore[arg-type]  # noqa: SLF001

    assert source.is_running
    assert client.target == ("broker", 1883, 60)
    assert client.loop_started
    assert client.subscribed == ["field/lines"]

    source.stop()

    assert not source.is_running
    assert client.disconnected
    assert client.loop_stopped


def test_failed_connack_does_not_subscribe(fake_client: type[_FakeClient]) -> None:
    source = MqttLineSource(loop=_FakeLoop(), on_line=lambda _line: None)  # type: ignore[arg-type]

    source.start(MqttSubscription(host="broker", port=1883, topic="field/lines"))
    client = fake_client.instances[-1]
    source._on_connect(client, None, None, SimpleNamespace(value=5), None)  # type: ignore[arg-type]  # noqa: SLF001

    assert client.subscribed == []


def test_connect_failure_raises_transport_error(fake_client: type[_FakeClient]) -> None:
    fake_client.refuse = True
    source = MqttLineSource(loop=_FakeLoop(), on_line=lambda _line: None)  # type: ignore[arg-type]

    with pytest.raises(TransportError) as excinfo:
        source.start(MqttSubscription(host="broker", port=1883, topic="field/lines"))

    assert excinfo.value.endpoint == "broker:1883"
    assert not source.is_running
