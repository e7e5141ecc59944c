"""Solve timer with pause/resume accounting.

Elapsed time is always recomputed from wall-clock deltas, never from a tick
counter, so a persisted timer reads correctly after a restart, a suspended
laptop or a throttled event loop. Only the display cadence is approximate.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import AsyncIterator, Callable
from datetime import datetime

from ascent.tracker.models import CamelModel, utc_now
from ascent.tracker.phases import Phase, PhaseInfo, classify

Clock = Callable[[], datetime]


class TimerState(CamelModel):
    is_running: bool = False
    start_time: datetime | None = None
    accumulated_time: int = 0


def format_time(seconds: int) -> str:
    """``H:MM:SS`` from one hour up, ``MM:SS`` below."""
    seconds = max(0, int(seconds))
    hrs, rem = divmod(seconds, 3600)
    mins, secs = divmod(rem, 60)
    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins:02d}:{secs:02d}"


class TimerEngine:
    """Start/pause/reset/stop over a ``TimerState``.

    All operations are pure state transitions against the injected clock.
    Callers persist ``state`` themselves, keyed by problem id.
    """

    def __init__(self, state: TimerState | None = None, clock: Clock = utc_now) -> None:
        self.state = state.model_copy() if state else TimerState()
        self.clock = clock

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    def _running_seconds(self) -> int:
        if not self.state.is_running or self.state.start_time is None:
            return 0
        delta = (self.clock() - self.state.start_time).total_seconds()
        return max(0, math.floor(delta))

    @property
    def elapsed_seconds(self) -> int:
        return self.state.accumulated_time + self._running_seconds()

    @property
    def phase(self) -> Phase:
        return self.phase_info.phase

    @property
    def phase_info(self) -> PhaseInfo:
        return classify(self.elapsed_seconds)

    def start(self) -> None:
        if self.state.is_running:
            return
        self.state = self.state.model_copy(update={"is_running": True, "start_time": self.clock()})

    def pause(self) -> None:
        if not self.state.is_running:
            return
        session_seconds = self._running_seconds()
        self.state = TimerState(
            is_running=False,
            start_time=None,
            accumulated_time=self.state.accumulated_time + session_seconds,
        )

    def reset(self) -> None:
        self.state = TimerState()

    def stop(self) -> int:
        """Pause and return the final elapsed seconds."""
        self.pause()
        return self.elapsed_seconds

    def formatted(self) -> str:
        return format_time(self.elapsed_seconds)

    async def tick(self, interval: float = 1.0) -> AsyncIterator[tuple[int, PhaseInfo]]:
        """Yield ``(elapsed, phase_info)`` roughly every ``interval`` while running.

        Display refresh only: cancelling the iteration or missing ticks has no
        effect on the recorded time.
        """
        while self.state.is_running:
            elapsed = self.elapsed_seconds
            yield elapsed, classify(elapsed)
            await asyncio.sleep(interval)
