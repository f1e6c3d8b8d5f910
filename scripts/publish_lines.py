#!/usr/bin/env python3
"""Publish telemetry lines to an MQTT topic.

Reads wire lines from a file (or stdin), or generates simulator ticks, and
publishes them to the topic a running ``vibrasense serve --mqtt`` instance
subscribes to. Useful for bench-testing without field hardware.
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
import time
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from vibrasense.config import SimulationProfile, VibrasenseConfig  # noqa: E402
from vibrasense.simulate import generate_tick  # noqa: E402

try:
    import paho.mqtt.client as mqtt
except ImportError as exc:  # pragma: no cover - environment/setup issue
    raise SystemExit(
        "Missing dependency 'paho-mqtt'. Install with: pip install paho-mqtt",
    ) from exc

_LOG = logging.getLogger("publish_lines")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Publish vibrasense wire lines to MQTT.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="File with one line per record, - for stdin. Omit with --simulate.",
    )
    parser.add_argument(
        "--simulate",
        type=int,
        default=0,
        help="Publish N simulator ticks instead of reading a file.",
    )
    parser.add_argument(
        "--batch",
        type=int,
        default=100,
        help="Lines per MQTT message.",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=0.0,
        help="Seconds to sleep between messages.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _read_lines(path: str) -> list[str]:
    if path == "-":
        return [line.strip() for line in sys.stdin if line.strip()]
    text = Path(path).read_text(encoding="ascii", errors="replace")
    return [line.strip() for line in text.splitlines() if line.strip()]


def _simulated_lines(ticks: int, profile: SimulationProfile) -> list[str]:
    rng = random.Random(profile.seed)
    lines: list[str] = []
    for tick in range(1, ticks + 1):
        lines.extend(generate_tick(tick, profile, rng))
    return lines


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = VibrasenseConfig.from_env()
    if args.simulate > 0:
        lines = _simulated_lines(args.simulate, config.simulation)
    elif args.path is not None:
        lines = _read_lines(args.path)
    else:
        print("[publish] Nothing to publish: give a path or --simulate N", file=sys.stderr)
        return 2

    client = mqtt.Client(callback_api_version=mqtt.CallbackAPIVersion.VERSION2)
    client.enable_logger(_LOG)
    try:
        client.connect(config.mqtt_host, config.mqtt_port, keepalive=config.mqtt_keepalive)
    except OSError as exc:
        print(f"[publish] MQTT connect failed: {exc}", file=sys.stderr)
        return 2
    client.loop_start()

    batch = max(1, args.batch)
    messages = 0
    try:
        for start in range(0, len(lines), batch):
            payload = "\n".join(lines[start : start + batch]) + "\n"
            client.publish(config.mqtt_topic, payload.encode("ascii"), qos=0).wait_for_publish()
            messages += 1
            if args.delay > 0:
                time.sleep(args.delay)
    finally:
        client.disconnect()
        client.loop_stop()

    print(f"[publish] {len(lines)} line(s) in {messages} message(s) to {config.mqtt_topic}")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
