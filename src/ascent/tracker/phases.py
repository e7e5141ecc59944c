"""Solve phases derived from elapsed time, and one-shot boundary cues."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ascent.tracker.sounds import SoundBoard, SoundCue

PHASE_1_DURATION = 20 * 60  # think on paper
PHASE_2_DURATION = 40 * 60  # coding, cumulative 60 min
PHASE_3_START = PHASE_1_DURATION + PHASE_2_DURATION


class Phase(StrEnum):
    PHASE1 = "phase1"
    PHASE2 = "phase2"
    PHASE3 = "phase3"

    @property
    def rank(self) -> int:
        return _PHASE_ORDER.index(self)


_PHASE_ORDER = (Phase.PHASE1, Phase.PHASE2, Phase.PHASE3)


@dataclass(frozen=True)
class PhaseInfo:
    phase: Phase
    label: str
    description: str
    max_time: int | None  # seconds spent in this phase at most; None is open-ended


PHASE_INFO: dict[Phase, PhaseInfo] = {
    Phase.PHASE1: PhaseInfo(
        Phase.PHASE1, "No Keyboard", "Think through the problem on paper", PHASE_1_DURATION
    ),
    Phase.PHASE2: PhaseInfo(
        Phase.PHASE2, "Keyboard Allowed", "Start coding your solution", PHASE_2_DURATION
    ),
    Phase.PHASE3: PhaseInfo(
        Phase.PHASE3, "Editorial OK", "You can check the editorial now", None
    ),
}


def get_phase(elapsed_seconds: float) -> Phase:
    """Map elapsed seconds to a phase. Boundaries are closed-open."""
    if elapsed_seconds < PHASE_1_DURATION:
        return Phase.PHASE1
    if elapsed_seconds < PHASE_3_START:
        return Phase.PHASE2
    return Phase.PHASE3


def classify(elapsed_seconds: float) -> PhaseInfo:
    """Phase plus its label and description. Negative input counts as zero."""
    return PHASE_INFO[get_phase(max(0, elapsed_seconds))]


# Boundary second -> cue fired when it is first reached
PHASE_BOUNDARIES: tuple[tuple[int, SoundCue], ...] = (
    (PHASE_1_DURATION, SoundCue.PHASE1_COMPLETE),
    (PHASE_3_START, SoundCue.PHASE2_COMPLETE),
)


class PhaseBoundaryNotifier:
    """Fires each phase-boundary cue at most once per session.

    Call ``observe`` on every tick. Resetting the timer (or observing zero
    elapsed time) re-arms all boundaries.
    """

    def __init__(self, sounds: SoundBoard | None = None) -> None:
        self.sounds = sounds or SoundBoard()
        self._fired: set[int] = set()

    def observe(self, elapsed_seconds: int) -> list[SoundCue]:
        if elapsed_seconds <= 0:
            self.reset()
            return []

        crossed = []
        for boundary, cue in PHASE_BOUNDARIES:
            if elapsed_seconds >= boundary and boundary not in self._fired:
                self._fired.add(boundary)
                self.sounds.play(cue)
                crossed.append(cue)
        return crossed

    def prime(self, elapsed_seconds: int) -> None:
        """Mark boundaries already behind ``elapsed_seconds`` as fired, silently."""
        self._fired = {b for b, _ in PHASE_BOUNDARIES if elapsed_seconds >= b}

    def has_fired(self, cue: SoundCue) -> bool:
        return any(c == cue and b in self._fired for b, c in PHASE_BOUNDARIES)

    def reset(self) -> None:
        self._fired.clear()


def phase_progress(elapsed_seconds: float) -> float:
    """Percent of the current phase used up, 100 once the editorial phase opens."""
    if elapsed_seconds <= PHASE_1_DURATION:
        return max(0.0, elapsed_seconds) / PHASE_1_DURATION * 100
    if elapsed_seconds <= PHASE_3_START:
        return (elapsed_seconds - PHASE_1_DURATION) / PHASE_2_DURATION * 100
    return 100.0
