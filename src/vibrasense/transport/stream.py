"""Byte-stream line sources.

Gateways (a serial bridge, a field radio modem, ``nc``) write ``\\n``
terminated ASCII lines over a TCP connection. Chunk boundaries are arbitrary;
lines are re-assembled before they reach the feed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from vibrasense.exceptions import TransportError

_logger = logging.getLogger(__name__)

LineSink = Callable[[str], Awaitable[None]]


def decode_line(raw: bytes) -> str:
    """Decode one raw line; non-ASCII bytes are replaced, not fatal."""
    return raw.decode("ascii", errors="replace").strip()


async def pump_lines(reader: asyncio.StreamReader, sink: LineSink) -> int:
    """Forward every non-blank line from *reader* to *sink* until EOF.

    Returns the number of lines forwarded. A trailing line without a
    terminator is still forwarded at EOF.
    """
    count = 0
    while True:
        raw = await reader.readline()
        if not raw:
            return count
        line = decode_line(raw)
        if not line:
            continue
        await sink(line)
        count += 1


class LineServer:
    """TCP server that pumps every client's lines into one sink."""

    def __init__(self, sink: LineSink, *, host: str = "0.0.0.0", port: int = 3000) -> None:
        self._sink = sink
        self._host = host
        self._port = port
        self._server: asyncio.Server | None = None

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def port(self) -> int:
        """Bound port (useful when started with port ``0``)."""
        if self._server is None or not self._server.sockets:
            return self._port
        return int(self._server.sockets[0].getsockname()[1])

    async def start(self) -> None:
        try:
            self._server = await asyncio.start_server(self._handle_client, self._host, self._port)
        except OSError as exc:
            raise TransportError(
                f"Cannot listen on {self._host}:{self._port}: {exc}",
                endpoint=f"{self._host}:{self._port}",
            ) from exc
        _logger.info("Line server listening on %s:%s", self._host, self.port)

    async def stop(self) -> None:
        server = self._server
        self._server = None
        if server is None:
            return
        server.close()
        await server.wait_closed()
        _logger.info("Line server stopped")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        _logger.info("Line source connected peer=%s", peer)
        try:
            count = await pump_lines(reader, self._sink)
            _logger.info("Line source closed peer=%s lines=%d", peer, count)
        except (ConnectionError, ValueError):
            _logger.warning("Line source dropped peer=%s", peer, exc_info=True)
        finally:
            writer.close()
