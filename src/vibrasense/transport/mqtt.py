"""MQTT line source.

Gateways that publish telemetry over MQTT send one or more wire lines per
message. The paho network loop runs on its own thread; every line is handed
to the asyncio loop with ``call_soon_threadsafe`` so ingestion stays on a
single task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from vibrasense.exceptions import TransportError
from vibrasense.transport.stream import decode_line


@dataclass(frozen=True)
class MqttSubscription:
    """Broker and topic to read lines from."""

    host: str
    port: int
    topic: str
    client_id: str = ""
    username: str | None = None
    password: str | None = None
    tls: bool = False


def split_payload(payload: bytes) -> list[str]:
    """Split an MQTT payload into trimmed, non-blank lines."""
    lines: list[str] = []
    for raw in payload.split(b"\n"):
        line = decode_line(raw)
        if line:
            lines.append(line)
    return lines


class MqttLineSource:
    """Threaded paho-mqtt client that emits lines onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_line: Callable[[str], None],
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_line = on_line
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topic: str | None = None

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is active."""
        return self._running

    def start(self, subscription: MqttSubscription) -> None:
        """Connect and subscribe to *subscription*."""
        self.stop()
        self._logger.info(
            "MQTT line source start host=%s port=%s topic=%s",
            subscription.host,
            subscription.port,
            subscription.topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=subscription.client_id,
        )
        client.enable_logger(self._logger)
        if subscription.username is not None:
            client.username_pw_set(subscription.username, subscription.password)
        if subscription.tls:
            client.tls_set()

        self._topic = subscription.topic
        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        try:
            client.connect(subscription.host, subscription.port, keepalive=self._keepalive)
        except OSError as exc:
            raise TransportError(
                f"MQTT connect to {subscription.host}:{subscription.port} failed: {exc}",
                endpoint=f"{subscription.host}:{subscription.port}",
            ) from exc
        client.loop_start()

        self._client = client
        self._running = True

    def stop(self) -> None:
        """Stop and disconnect the current client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._topic = None

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.info("MQTT line source stopped")

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        if self._topic:
            self._logger.debug("MQTT subscribing topic=%s", self._topic)
            client.subscribe(self._topic, qos=0)

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            for line in split_payload(msg.payload):
                self._loop.call_soon_threadsafe(self._on_line, line)
        except RuntimeError:
            # Loop closed during shutdown.
            self._logger.debug("MQTT message dropped topic=%s", msg.topic, exc_info=True)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._running:
            self._logger.warning("MQTT disconnected: %s", reason_code)
