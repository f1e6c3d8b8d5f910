"""Command-line entry point.

``vibrasense serve``  runs the bridge, the TCP line server and, optionally,
the MQTT source and the simulator, all feeding one ingestion engine.

``vibrasense ingest`` replays lines from a file (or stdin) and prints the
final snapshot as JSON or CSV.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from pathlib import Path
from typing import TextIO

from aiohttp import web

from vibrasense.bridge import create_app
from vibrasense.config import VibrasenseConfig
from vibrasense.engine import IngestionEngine
from vibrasense.exceptions import VibrasenseError
from vibrasense.export import export_csv
from vibrasense.simulate import Simulator
from vibrasense.transport.feed import LineFeed
from vibrasense.transport.mqtt import MqttLineSource, MqttSubscription
from vibrasense.transport.stream import LineServer

_logger = logging.getLogger("vibrasense")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vibrasense", description="Rescue telemetry ingestion service")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the bridge and line sources")
    serve.add_argument("--host", default=None)
    serve.add_argument("--http-port", type=int, default=None)
    serve.add_argument("--line-port", type=int, default=None, help="TCP line server port (0 disables)")
    serve.add_argument("--mqtt", action="store_true", help="Subscribe to the configured MQTT topic")
    serve.add_argument("--simulate", action="store_true", help="Generate synthetic load")

    ingest = sub.add_parser("ingest", help="Replay lines and print the final snapshot")
    ingest.add_argument("path", nargs="?", default="-", help="Input file, or - for stdin")
    ingest.add_argument("--format", choices=["json", "csv"], default="json")

    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> VibrasenseConfig:
    overrides: dict[str, object] = {}
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.command == "serve":
        for name in ("host", "http_port", "line_port"):
            value = getattr(args, name)
            if value is not None:
                overrides[name] = value
        if args.mqtt:
            overrides["mqtt_enabled"] = True
        if args.simulate:
            overrides["simulate"] = True
    return VibrasenseConfig.from_env(**overrides)


async def serve(config: VibrasenseConfig, *, stop: asyncio.Event | None = None) -> None:
    """Run every configured source until *stop* is set (or SIGINT/SIGTERM)."""
    loop = asyncio.get_running_loop()
    stop = stop or asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    engine = IngestionEngine()
    feed = LineFeed(engine)
    feed.start()

    runner = web.AppRunner(create_app(feed))
    await runner.setup()
    site = web.TCPSite(runner, config.host, config.http_port)
    await site.start()
    _logger.info("Bridge listening on http://%s:%s", config.host, config.http_port)

    line_server: LineServer | None = None
    mqtt_source: MqttLineSource | None = None
    simulator: Simulator | None = None
    try:
        if config.line_port:
            line_server = LineServer(feed.put, host=config.host, port=config.line_port)
            await line_server.start()

        if config.mqtt_enabled:
            mqtt_source = MqttLineSource(loop=loop, on_line=feed.put_nowait, keepalive=config.mqtt_keepalive)
            mqtt_source.start(
                MqttSubscription(host=config.mqtt_host, port=config.mqtt_port, topic=config.mqtt_topic)
            )

        if config.simulate:
            simulator = Simulator(feed.put, config.simulation)
            simulator.start()

        await stop.wait()
    finally:
        if simulator is not None:
            await simulator.stop()
        if mqtt_source is not None:
            mqtt_source.stop()
        if line_server is not None:
            await line_server.stop()
        await runner.cleanup()
        await feed.stop()
        stats = engine.stats
        _logger.info(
            "Shutdown lines=%d rescuee=%d rescuer=%d unknown=%d rejected=%d",
            stats.lines,
            stats.rescuee,
            stats.rescuer,
            stats.unknown,
            stats.rejected,
        )
        engine.store.clear()


def ingest(stream: TextIO, *, output_format: str = "json") -> str:
    engine = IngestionEngine()
    snapshot = engine.process_lines(stream)
    if output_format == "csv":
        return export_csv(snapshot)
    return json.dumps(snapshot.to_dict(), indent=2)


def _write(text: str) -> None:
    sys.stdout.write(text if text.endswith("\n") else f"{text}\n")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config = _config_from_args(args)
    except VibrasenseError as exc:
        print(f"vibrasense: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "serve":
            asyncio.run(serve(config))
        elif args.path == "-":
            _write(ingest(sys.stdin, output_format=args.format))
        else:
            with Path(args.path).open(encoding="ascii", errors="replace") as handle:
                _write(ingest(handle, output_format=args.format))
    except (VibrasenseError, OSError) as exc:
        print(f"vibrasense: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
