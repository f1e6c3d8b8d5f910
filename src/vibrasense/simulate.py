"""Synthetic telemetry load.

Produces wire lines exactly like the field devices do, so it can be fed into
the same line contract as any real source.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from vibrasense.config import SimulationProfile

_logger = logging.getLogger(__name__)


def rescuee_line(index: int, tick: int, profile: SimulationProfile, rng: random.Random) -> str:
    emergency = 1 if rng.random() < profile.emergency_probability else 0
    bpm = 60 + round(20 * rng.random())
    # One tick in every lost_contact_period reports LOST for all beacons.
    contact = "OK" if tick % profile.lost_contact_period < profile.lost_contact_period - 1 else "LOST"
    return f"TYPE=RESCUEE,ID=R{index},BPM={bpm},AVG=75,CONTACT={contact},EMERGENCY={emergency}"


def rescuer_line(rescuer: int, target: int, rng: random.Random) -> str:
    rssi = -60 - int(rng.random() * 20)
    return f"TYPE=RESCUER,ID=H{rescuer},TARGET=R{target},RSSI={rssi}"


def generate_tick(tick: int, profile: SimulationProfile, rng: random.Random) -> list[str]:
    """All lines for one simulation tick: rescuees first, then rescuer links."""
    lines = [rescuee_line(i, tick, profile, rng) for i in range(1, profile.rescuees + 1)]
    for rescuer in range(1, profile.rescuers + 1):
        for target in range(1, profile.rescuees + 1, profile.link_stride):
            lines.append(rescuer_line(rescuer, target, rng))
    return lines


class Simulator:
    """Periodically pushes a tick of synthetic lines into a sink."""

    def __init__(self, sink: Callable[[str], Awaitable[None]], profile: SimulationProfile | None = None) -> None:
        self._sink = sink
        self._profile = profile or SimulationProfile()
        self._rng = random.Random(self._profile.seed)
        self._tick = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def step(self) -> int:
        """Emit one tick; returns the number of lines emitted."""
        self._tick += 1
        lines = generate_tick(self._tick, self._profile, self._rng)
        for line in lines:
            await self._sink(line)
        _logger.debug("Simulation tick=%d lines=%d", self._tick, len(lines))
        return len(lines)

    def start(self) -> None:
        if self.is_running:
            return
        _logger.info(
            "Simulator started rescuees=%d rescuers=%d interval=%.1fs",
            self._profile.rescuees,
            self._profile.rescuers,
            self._profile.interval,
        )
        self._task = asyncio.get_running_loop().create_task(self._run(), name="vibrasense-simulator")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        _logger.info("Simulator stopped after tick=%d", self._tick)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._profile.interval)
            await self.step()
