"""Runtime configuration for vibrasense."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from vibrasense.exceptions import VibrasenseConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value.strip())
    except ValueError as exc:
        raise VibrasenseConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SimulationProfile:
    """Shape of the synthetic load produced by the simulator.

    The defaults reproduce the field-test load: 2000 beacons reporting every
    three seconds, and 100 scanners each linked to every 25th beacon.
    """

    rescuees: int = 2000
    rescuers: int = 100
    link_stride: int = 25
    interval: float = 3.0
    emergency_probability: float = 0.01
    lost_contact_period: int = 20
    seed: int | None = None


@dataclasses.dataclass(frozen=True)
class VibrasenseConfig:
    """Service configuration.

    Parameters
    ----------
    host : str
        Interface the bridge and the line server bind to.
    http_port : int
        Port of the aiohttp bridge (health, websocket fan-out, snapshot, export).
    line_port : int
        Port of the raw TCP line server that field gateways write to.
        Set to ``0`` to disable the line server.
    mqtt_enabled : bool
        Subscribe to an MQTT topic carrying telemetry lines.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic : str
        Topic to subscribe to; every line of every payload is ingested.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    simulate : bool
        Run the synthetic load generator alongside the real sources.
    simulation : SimulationProfile
        Simulator shape.
    log_level : str
        Root logging level used by the CLI.
    """

    host: str = "0.0.0.0"
    http_port: int = 3001
    line_port: int = 3000
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "vibrasense/lines"
    mqtt_keepalive: int = 60
    simulate: bool = False
    simulation: SimulationProfile = dataclasses.field(default_factory=SimulationProfile)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, **overrides: Any) -> VibrasenseConfig:
        """Create configuration from environment variables.

        Reads optional ``VIBRASENSE_*`` variables. Explicit keyword arguments
        override environment values.

        Raises
        ------
        VibrasenseConfigError
            When a numeric variable cannot be parsed.
        """
        env = os.environ

        sim_kwargs: dict[str, Any] = {}
        _ENV_SIM_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "VIBRASENSE_SIM_RESCUEES": ("rescuees", int),
            "VIBRASENSE_SIM_RESCUERS": ("rescuers", int),
            "VIBRASENSE_SIM_LINK_STRIDE": ("link_stride", int),
            "VIBRASENSE_SIM_INTERVAL": ("interval", float),
            "VIBRASENSE_SIM_SEED": ("seed", int),
        }
        for env_key, (field_name, cast) in _ENV_SIM_MAP.items():
            val = env.get(env_key)
            if val is not None:
                sim_kwargs[field_name] = _env_number(env_key, val, cast)

        sim_overrides = overrides.pop("simulation", None)
        if isinstance(sim_overrides, dict):
            sim_kwargs.update(sim_overrides)
        elif isinstance(sim_overrides, SimulationProfile):
            sim_kwargs = dataclasses.asdict(sim_overrides)

        config_kwargs: dict[str, Any] = {"simulation": SimulationProfile(**sim_kwargs)}

        for env_key, field_name in (
            ("VIBRASENSE_HOST", "host"),
            ("VIBRASENSE_MQTT_HOST", "mqtt_host"),
            ("VIBRASENSE_MQTT_TOPIC", "mqtt_topic"),
            ("VIBRASENSE_LOG_LEVEL", "log_level"),
        ):
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in (
            ("VIBRASENSE_HTTP_PORT", "http_port"),
            ("VIBRASENSE_LINE_PORT", "line_port"),
            ("VIBRASENSE_MQTT_PORT", "mqtt_port"),
            ("VIBRASENSE_MQTT_KEEPALIVE", "mqtt_keepalive"),
        ):
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, int)

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("VIBRASENSE_MQTT_ENABLED"), False)
        if "simulate" not in overrides:
            config_kwargs["simulate"] = _env_bool(env.get("VIBRASENSE_SIMULATE"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
