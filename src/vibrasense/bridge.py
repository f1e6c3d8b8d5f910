"""aiohttp bridge: raw line fan-out plus read-only views of the live state.

Routes
------
``GET /``            health text.
``GET /ws``          websocket; every accepted raw line is sent to every subscriber.
``GET /snapshot``    latest snapshot as JSON.
``GET /export.csv``  latest snapshot as CSV.

Fan-out never blocks ingestion: each subscriber has a bounded queue, and a
subscriber whose queue is full or whose socket failed is dropped.
"""

from __future__ import annotations

import asyncio
import logging

from aiohttp import WSMsgType, web

from vibrasense.export import export_csv, export_filename
from vibrasense.transport.feed import LineFeed

_logger = logging.getLogger(__name__)

_CLOSED: None = None


class LineBroadcaster:
    """Fire-and-forget distribution of raw lines to websocket subscribers."""

    def __init__(self, *, queue_size: int = 10_000) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[str | None]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def register(self) -> asyncio.Queue[str | None]:
        queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        return queue

    def unregister(self, queue: asyncio.Queue[str | None]) -> None:
        self._subscribers.discard(queue)

    def broadcast(self, line: str) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(line)
            except asyncio.QueueFull:
                _logger.warning("Dropping slow websocket subscriber (queue full)")
                self._subscribers.discard(queue)
                self._close_queue(queue)

    def close(self) -> None:
        """Ask every subscriber to disconnect."""
        for queue in list(self._subscribers):
            self._close_queue(queue)
        self._subscribers.clear()

    @staticmethod
    def _close_queue(queue: asyncio.Queue[str | None]) -> None:
        # Make room so the close marker always fits.
        while queue.full():
            queue.get_nowait()
        queue.put_nowait(_CLOSED)


FEED_KEY: web.AppKey[LineFeed] = web.AppKey("feed", LineFeed)
BROADCASTER_KEY: web.AppKey[LineBroadcaster] = web.AppKey("broadcaster", LineBroadcaster)


async def _health(_request: web.Request) -> web.Response:
    return web.Response(text="vibrasense bridge running")


async def _send_lines(ws: web.WebSocketResponse, queue: asyncio.Queue[str | None]) -> None:
    while True:
        line = await queue.get()
        if line is _CLOSED:
            await ws.close()
            return
        await ws.send_str(line)


async def _websocket(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    broadcaster = request.app[BROADCASTER_KEY]
    queue = broadcaster.register()
    _logger.info("Websocket subscriber connected remote=%s", request.remote)
    sender = asyncio.create_task(_send_lines(ws, queue))
    try:
        async for msg in ws:
            # Subscribers are read-only; anything they send is ignored.
            if msg.type == WSMsgType.ERROR:
                _logger.debug("Websocket error remote=%s", request.remote, exc_info=ws.exception())
    finally:
        broadcaster.unregister(queue)
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception:
            _logger.debug("Websocket sender failed remote=%s", request.remote, exc_info=True)
        _logger.info("Websocket subscriber disconnected remote=%s", request.remote)
    return ws


async def _snapshot(request: web.Request) -> web.Response:
    snapshot = request.app[FEED_KEY].engine.snapshot
    return web.json_response(snapshot.to_dict())


async def _export(request: web.Request) -> web.Response:
    snapshot = request.app[FEED_KEY].engine.snapshot
    return web.Response(
        text=export_csv(snapshot),
        content_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


async def _on_shutdown(app: web.Application) -> None:
    app[BROADCASTER_KEY].close()


def create_app(feed: LineFeed, *, broadcaster: LineBroadcaster | None = None) -> web.Application:
    """Build the bridge application and hook fan-out onto *feed*."""
    broadcaster = broadcaster or LineBroadcaster()
    app = web.Application()
    app[FEED_KEY] = feed
    app[BROADCASTER_KEY] = broadcaster
    feed.add_listener(broadcaster.broadcast)

    app.router.add_get("/", _health)
    app.router.add_get("/ws", _websocket)
    app.router.add_get("/snapshot", _snapshot)
    app.router.add_get("/export.csv", _export)
    app.on_shutdown.append(_on_shutdown)
    return app
