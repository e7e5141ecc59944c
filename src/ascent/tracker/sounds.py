"""Sound cues for timer events, played through an injected sink."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)


class SoundCue(StrEnum):
    TIMER_START = "timerStart"
    PHASE1_COMPLETE = "phase1Complete"
    PHASE2_COMPLETE = "phase2Complete"
    PROBLEM_SOLVED = "problemSolved"


@dataclass(frozen=True)
class Tone:
    frequency: float  # Hz
    duration: float  # seconds
    delay: float  # seconds from cue start


# A4 = 440, C5 = 523.25, C#5 = 554.37, E5 = 659.25, G5 = 783.99, C6 = 1046.5
CUE_TONES: dict[SoundCue, tuple[Tone, ...]] = {
    SoundCue.TIMER_START: (
        Tone(440.0, 0.1, 0.0),
        Tone(523.25, 0.15, 0.1),
    ),
    SoundCue.PHASE1_COMPLETE: (
        Tone(523.25, 0.15, 0.0),
        Tone(659.25, 0.2, 0.15),
    ),
    SoundCue.PHASE2_COMPLETE: (
        Tone(440.0, 0.12, 0.0),
        Tone(554.37, 0.12, 0.12),
        Tone(659.25, 0.2, 0.24),
    ),
    SoundCue.PROBLEM_SOLVED: (
        Tone(523.25, 0.1, 0.0),
        Tone(659.25, 0.1, 0.1),
        Tone(783.99, 0.1, 0.2),
        Tone(1046.5, 0.3, 0.3),
    ),
}


class SoundSink(Protocol):
    def play(self, cue: SoundCue, tones: tuple[Tone, ...]) -> None: ...


class NullSoundSink:
    """Discards every cue."""

    def play(self, cue: SoundCue, tones: tuple[Tone, ...]) -> None:
        return None


class LoggingSoundSink:
    """Records cues in the log instead of making noise. Useful headless."""

    def __init__(self) -> None:
        self.played: list[SoundCue] = []

    def play(self, cue: SoundCue, tones: tuple[Tone, ...]) -> None:
        self.played.append(cue)
        logger.info("Sound cue %s (%d tones)", cue.value, len(tones))


class BellSoundSink:
    """Rings the terminal bell once per tone."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stderr

    def play(self, cue: SoundCue, tones: tuple[Tone, ...]) -> None:
        self.stream.write("\a" * len(tones))
        self.stream.flush()


class SoundBoard:
    """Plays cues when sounds are enabled. Sink failures never reach the caller."""

    def __init__(self, sink: SoundSink | None = None, enabled: bool = True) -> None:
        self.sink: SoundSink = sink or NullSoundSink()
        self.enabled = enabled

    def play(self, cue: SoundCue) -> bool:
        if not self.enabled:
            return False
        try:
            self.sink.play(cue, CUE_TONES[cue])
        except Exception:
            logger.warning("Sound playback failed for %s", cue.value, exc_info=True)
            return False
        return True
