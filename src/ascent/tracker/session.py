"""One timed attempt at a problem: timer, phase cues, hints and completion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ascent.tracker.blackbook import build_entry
from ascent.tracker.errors import LLMError
from ascent.tracker.hints import (
    HintCache,
    HintData,
    HintService,
    HintUnlockState,
    next_unlock_in,
    should_fetch_hints,
    unlocked_hints,
    visible_hints,
)
from ascent.tracker.local_store import TimerRepository
from ascent.tracker.models import BlackBookEntry, utc_now
from ascent.tracker.phases import PhaseBoundaryNotifier, PhaseInfo, phase_progress
from ascent.tracker.plan import Problem
from ascent.tracker.progress import ProgressStore
from ascent.tracker.sounds import SoundBoard, SoundCue
from ascent.tracker.timer import Clock, TimerEngine, format_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionStatus:
    problem_id: str
    is_running: bool
    elapsed_seconds: int
    display: str
    phase: PhaseInfo
    phase_progress: float
    unlocks: HintUnlockState
    hints: list[str] = field(default_factory=list)
    next_hint_in: int | None = None
    hint_error: str | None = None


class SolveSession:
    """Drives a problem's timer and hands the finished solve to the progress store.

    Timer state is saved to the local store after every transition so the
    session can be picked up again by another process.
    """

    def __init__(
        self,
        problem: Problem,
        timers: TimerRepository,
        progress: ProgressStore,
        hint_cache: HintCache,
        hint_service: HintService | None = None,
        sounds: SoundBoard | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.problem = problem
        self.timers = timers
        self.progress = progress
        self.hint_cache = hint_cache
        self.hint_service = hint_service
        self.sounds = sounds or SoundBoard()
        self.engine = TimerEngine(timers.load(problem.id), clock=clock)
        self.notifier = PhaseBoundaryNotifier(self.sounds)
        self.hint_error: str | None = None
        self._hint_fetch_attempted = False
        # Cues for boundaries already behind a resumed timer were played earlier
        self.notifier.prime(self.engine.elapsed_seconds)

    def _save(self) -> None:
        self.timers.save(self.problem.id, self.engine.state)

    async def start(self) -> None:
        if self.engine.is_running:
            return
        if self.engine.elapsed_seconds == 0:
            self.sounds.play(SoundCue.TIMER_START)
        self.engine.start()
        self._save()
        await self.progress.start_problem(self.problem.id)

    def pause(self) -> None:
        self.engine.pause()
        self._save()

    def reset(self) -> None:
        self.engine.reset()
        self.notifier.reset()
        self._hint_fetch_attempted = False
        self.hint_error = None
        self._save()

    @property
    def cached_hints(self) -> HintData | None:
        return self.hint_cache.get(self.problem.id)

    async def tick(self) -> SessionStatus:
        """Refresh derived state: phase cues and the one-time hint fetch."""
        elapsed = self.engine.elapsed_seconds
        if self.engine.is_running:
            self.notifier.observe(elapsed)
            await self._maybe_fetch_hints(elapsed)
        return self.status()

    async def _maybe_fetch_hints(self, elapsed: int) -> None:
        if self.hint_service is None or self._hint_fetch_attempted:
            return
        if not should_fetch_hints(elapsed, self.engine.is_running, self.cached_hints):
            return

        self._hint_fetch_attempted = True
        try:
            await self.hint_service.get_hints(self.problem.id, self.problem.title, self.problem.url)
        except LLMError as exc:
            self.hint_error = str(exc)
            logger.warning("Hint generation for %s failed: %s", self.problem.id, exc)

    def status(self) -> SessionStatus:
        elapsed = self.engine.elapsed_seconds
        hints = self.cached_hints
        return SessionStatus(
            problem_id=self.problem.id,
            is_running=self.engine.is_running,
            elapsed_seconds=elapsed,
            display=format_time(elapsed),
            phase=self.engine.phase_info,
            phase_progress=phase_progress(elapsed),
            unlocks=unlocked_hints(elapsed, hints),
            hints=visible_hints(elapsed, hints),
            next_hint_in=next_unlock_in(elapsed),
            hint_error=self.hint_error,
        )

    async def complete(self, patterns: list[str], **fields: object) -> BlackBookEntry:
        """Stop the timer and record the solve as one atomic progress update.

        ``fields`` are the remaining ``build_entry`` keyword arguments. The
        stored timer is cleared only after the write is acknowledged, so a
        failed save can be retried without losing the time.
        """
        time_spent = self.engine.stop()
        self._save()
        entry = build_entry(self.problem.id, self.problem.title, time_spent, patterns, **fields)  # type: ignore[arg-type]

        await self.progress.complete_with_entry(entry)
        self.sounds.play(SoundCue.PROBLEM_SOLVED)
        self.engine.reset()
        self.notifier.reset()
        self._save()
        return entry
