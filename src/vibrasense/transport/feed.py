"""Serialized line feed.

Any number of producers (TCP connections, the MQTT thread, the simulator) may
push lines concurrently; a single consumer task drains them into the engine
strictly one at a time, in arrival order. The consumer hands control back to the
event loop every ``yield_every`` lines, so a large backlog does not starve
the sockets and the web handlers sharing the loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from vibrasense.engine import IngestionEngine

_logger = logging.getLogger(__name__)

LineListener = Callable[[str], None]

_STOP = object()


class LineFeed:
    """Queue in front of an :class:`IngestionEngine`.

    Usage::

        feed = LineFeed(engine)
        feed.start()
        feed.put_nowait("TYPE=RESCUEE,ID=R1,BPM=72")
        await feed.stop()
    """

    def __init__(self, engine: IngestionEngine, *, maxsize: int = 0, yield_every: int = 200) -> None:
        self._engine = engine
        self._yield_every = max(1, yield_every)
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._listeners: list[LineListener] = []
        self._task: asyncio.Task[None] | None = None
        self._processed = 0

    @property
    def engine(self) -> IngestionEngine:
        return self._engine

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def processed(self) -> int:
        """Lines handed to the engine so far (blank lines excluded)."""
        return self._processed

    def add_listener(self, listener: LineListener) -> Callable[[], None]:
        """Call *listener* with every accepted line before it is ingested."""
        self._listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._consume(), name="vibrasense-line-feed")

    async def stop(self) -> None:
        """Drain everything queued so far, then stop the consumer."""
        task = self._task
        if task is None:
            return
        await self._queue.put(_STOP)
        await task
        self._task = None

    def put_nowait(self, line: str) -> None:
        self._queue.put_nowait(line)

    async def put(self, line: str) -> None:
        await self._queue.put(line)

    async def join(self) -> None:
        """Wait until every queued line has been processed."""
        await self._queue.join()

    async def _consume(self) -> None:
        handled = 0
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    return
                self._handle(str(item))
            finally:
                self._queue.task_done()
            handled += 1
            if handled % self._yield_every == 0:
                # get() on a non-empty queue never suspends.
                await asyncio.sleep(0)

    def _handle(self, line: str) -> None:
        clean = line.strip()
        if not clean:
            return
        for listener in list(self._listeners):
            try:
                listener(clean)
            except Exception:
                _logger.debug("Line listener %r failed", listener, exc_info=True)
        self._engine.process_line(clean)
        self._processed += 1
