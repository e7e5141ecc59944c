"""Phase classification and boundary cue tests."""

import pytest

from ascent.tracker.phases import (
    PHASE_INFO,
    Phase,
    PhaseBoundaryNotifier,
    classify,
    get_phase,
    phase_progress,
)
from ascent.tracker.sounds import LoggingSoundSink, SoundBoard, SoundCue


class TestClassify:
    @pytest.mark.parametrize(
        ("elapsed", "phase"),
        [
            (0, Phase.PHASE1),
            (1199, Phase.PHASE1),
            (1200, Phase.PHASE2),
            (3599, Phase.PHASE2),
            (3600, Phase.PHASE3),
            (10_000, Phase.PHASE3),
        ],
    )
    def test_boundaries(self, elapsed: int, phase: Phase) -> None:
        """Boundaries are closed-open at 1200 and 3600 seconds."""
        assert get_phase(elapsed) == phase
        assert classify(elapsed).phase == phase

    def test_negative_is_phase1(self) -> None:
        assert classify(-30).phase == Phase.PHASE1

    def test_monotonic(self) -> None:
        """The phase never goes backwards as time increases."""
        ranks = [get_phase(t).rank for t in range(0, 5000, 7)]
        assert ranks == sorted(ranks)

    def test_labels(self) -> None:
        assert classify(0).label == "No Keyboard"
        assert classify(1500).label == "Keyboard Allowed"
        assert classify(4000).label == "Editorial OK"
        assert PHASE_INFO[Phase.PHASE3].max_time is None


class TestPhaseProgress:
    def test_progress_within_phases(self) -> None:
        assert phase_progress(0) == 0.0
        assert phase_progress(600) == 50.0
        assert phase_progress(1200) == 100.0
        assert phase_progress(2400) == 50.0
        assert phase_progress(5000) == 100.0


class TestBoundaryNotifier:
    def test_each_boundary_fires_once(self) -> None:
        """Crossing a boundary plays its cue once, however many ticks follow."""
        sink = LoggingSoundSink()
        notifier = PhaseBoundaryNotifier(SoundBoard(sink))

        assert notifier.observe(1199) == []
        assert notifier.observe(1200) == [SoundCue.PHASE1_COMPLETE]
        assert notifier.observe(1300) == []
        assert notifier.observe(3600) == [SoundCue.PHASE2_COMPLETE]
        assert notifier.observe(9000) == []
        assert sink.played == [SoundCue.PHASE1_COMPLETE, SoundCue.PHASE2_COMPLETE]

    def test_skipped_ticks_fire_all_crossed(self) -> None:
        """A tick that jumps past both boundaries fires both, in order."""
        notifier = PhaseBoundaryNotifier()
        assert notifier.observe(4000) == [SoundCue.PHASE1_COMPLETE, SoundCue.PHASE2_COMPLETE]

    def test_zero_rearms(self) -> None:
        """Observing zero (a reset timer) re-arms every boundary."""
        notifier = PhaseBoundaryNotifier()
        notifier.observe(1300)
        assert notifier.observe(0) == []
        assert not notifier.has_fired(SoundCue.PHASE1_COMPLETE)
        assert notifier.observe(1200) == [SoundCue.PHASE1_COMPLETE]

    def test_prime_is_silent(self) -> None:
        """Priming marks past boundaries as fired without playing anything."""
        sink = LoggingSoundSink()
        notifier = PhaseBoundaryNotifier(SoundBoard(sink))
        notifier.prime(1500)

        assert notifier.has_fired(SoundCue.PHASE1_COMPLETE)
        assert not notifier.has_fired(SoundCue.PHASE2_COMPLETE)
        assert notifier.observe(1600) == []
        assert notifier.observe(3600) == [SoundCue.PHASE2_COMPLETE]
        assert sink.played == [SoundCue.PHASE2_COMPLETE]
