"""Solve session tests: timer persistence, cues, hint fetch and completion."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from ascent.tracker.errors import PersistError, RateLimitError
from ascent.tracker.hints import HintCache, HintService
from ascent.tracker.kv_client import StorageClient
from ascent.tracker.llm import GeminiClient
from ascent.tracker.local_store import LocalStore, TimerRepository
from ascent.tracker.models import ProblemStatus
from ascent.tracker.phases import Phase
from ascent.tracker.plan import Problem
from ascent.tracker.progress import ProgressStore
from ascent.tracker.session import SolveSession
from ascent.tracker.sounds import LoggingSoundSink, SoundBoard, SoundCue

PROBLEM = Problem(id="cses-1092", title="Two Sets", url="https://cses.fi/problemset/task/1092")
HINTS_JSON = '{"hint1": "Look at the total sum", "hint2": "Greedy from n down", "hint3": "Take the largest that fits"}'


def make_session(local_store, clock, sounds, progress=None, llm=None) -> SolveSession:
    cache = HintCache(local_store)
    return SolveSession(
        PROBLEM,
        TimerRepository(local_store),
        progress or ProgressStore(persist=False),
        cache,
        hint_service=HintService(cache, llm) if llm is not None else None,
        sounds=sounds,
        clock=clock,
    )


class TestTimerLifecycle:
    @pytest.mark.asyncio
    async def test_start_marks_in_progress(self, local_store, clock, sounds, sink) -> None:
        """Starting plays the start cue once, saves the timer and marks the problem."""
        session = make_session(local_store, clock, sounds)
        await session.start()

        assert session.engine.is_running
        assert sink.played == [SoundCue.TIMER_START]
        assert session.progress.status_of(PROBLEM.id) == ProblemStatus.IN_PROGRESS
        assert TimerRepository(local_store).load(PROBLEM.id).is_running

    @pytest.mark.asyncio
    async def test_resume_has_no_start_cue(self, local_store, clock, sounds, sink) -> None:
        session = make_session(local_store, clock, sounds)
        await session.start()
        clock.advance(60)
        session.pause()
        await session.start()
        assert sink.played == [SoundCue.TIMER_START]
        assert session.status().elapsed_seconds == 60

    @pytest.mark.asyncio
    async def test_state_survives_new_session(self, local_store, clock, sounds) -> None:
        """A later process picks the running timer up from the local store."""
        await make_session(local_store, clock, sounds).start()
        clock.advance(1500)

        resumed = make_session(local_store, clock, sounds)
        status = resumed.status()
        assert status.is_running
        assert status.elapsed_seconds == 1500
        assert status.phase.phase == Phase.PHASE2
        assert status.display == "25:00"

    @pytest.mark.asyncio
    async def test_resumed_session_does_not_replay_cues(self, local_store, clock, sounds, sink) -> None:
        await make_session(local_store, clock, sounds).start()
        clock.advance(1300)

        resumed = make_session(local_store, clock, sounds)
        await resumed.tick()
        assert SoundCue.PHASE1_COMPLETE not in sink.played

        clock.advance(2400)
        await resumed.tick()
        assert sink.played[-1] == SoundCue.PHASE2_COMPLETE

    @pytest.mark.asyncio
    async def test_phase_cue_once(self, local_store, clock, sounds, sink) -> None:
        session = make_session(local_store, clock, sounds)
        await session.start()
        clock.advance(1200)
        await session.tick()
        clock.advance(5)
        await session.tick()
        assert sink.played.count(SoundCue.PHASE1_COMPLETE) == 1

    @pytest.mark.asyncio
    async def test_reset(self, local_store, clock, sounds) -> None:
        session = make_session(local_store, clock, sounds)
        await session.start()
        clock.advance(4000)
        session.reset()
        status = session.status()
        assert (status.elapsed_seconds, status.is_running, status.phase.phase) == (0, False, Phase.PHASE1)
        assert TimerRepository(local_store).load(PROBLEM.id).accumulated_time == 0


class TestHints:
    @pytest.mark.asyncio
    async def test_fetch_once_then_unlock(self, local_store, clock, sounds) -> None:
        """Hints are generated at 15 minutes and revealed from 20 minutes."""
        llm = AsyncMock()
        llm.generate.return_value = HINTS_JSON
        session = make_session(local_store, clock, sounds, llm=llm)
        await session.start()

        clock.advance(899)
        await session.tick()
        llm.generate.assert_not_awaited()

        clock.advance(1)
        status = await session.tick()
        llm.generate.assert_awaited_once()
        assert status.hints == []
        assert status.unlocks.hint1_unlocked is False

        clock.advance(300)
        status = await session.tick()
        assert status.hints == ["Look at the total sum"]
        assert status.next_hint_in == 1200
        llm.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_paused_timer_does_not_fetch(self, local_store, clock, sounds) -> None:
        llm = AsyncMock()
        session = make_session(local_store, clock, sounds, llm=llm)
        await session.start()
        clock.advance(1000)
        session.pause()
        await session.tick()
        llm.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generation_error_reported(self, local_store, clock, sounds) -> None:
        """A failed generation is reported in the status and not retried this session."""
        llm = AsyncMock()
        llm.generate.side_effect = RateLimitError("Rate limit exceeded.")
        session = make_session(local_store, clock, sounds, llm=llm)
        await session.start()
        clock.advance(900)

        status = await session.tick()
        assert status.hint_error == "Rate limit exceeded."
        assert status.is_running

        clock.advance(10)
        await session.tick()
        llm.generate.assert_awaited_once()


    @pytest.mark.asyncio
    async def test_unreadable_reply_reported(self, local_store, clock, sounds) -> None:
        """A proxy page in place of a model reply surfaces as a hint error."""
        llm = GeminiClient(
            "AIzaTestKey", transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>proxy</html>"))
        )
        session = make_session(local_store, clock, sounds, llm=llm)
        await session.start()
        clock.advance(900)

        status = await session.tick()
        assert status.hint_error == "Unexpected response from Gemini. Please try again."
        assert status.is_running


class TestComplete:
    @pytest.mark.asyncio
    async def test_complete_records_entry(self, local_store, clock, sounds, sink) -> None:
        progress = ProgressStore(persist=False)
        session = make_session(local_store, clock, sounds, progress=progress)
        await session.start()
        clock.advance(1830)

        entry = await session.complete(["Math", "Greedy"], key_observation="Sum must be even")

        assert entry.time_spent == 1830
        assert entry.problem == "Two Sets"
        assert entry.type_pattern == "Math, Greedy"
        assert progress.progress.entries == [entry]
        assert progress.status_of(PROBLEM.id) == ProblemStatus.COMPLETED
        assert sink.played[-1] == SoundCue.PROBLEM_SOLVED
        assert TimerRepository(local_store).load(PROBLEM.id).accumulated_time == 0

    @pytest.mark.asyncio
    async def test_failed_save_keeps_time(self, fake_storage, storage_client: StorageClient, local_store, clock, sounds, sink) -> None:
        """When the write is rejected the stopped time stays for a retry."""
        progress = ProgressStore(storage_client)
        await progress.load()
        session = make_session(local_store, clock, sounds, progress=progress)
        await session.start()
        clock.advance(700)

        fake_storage.fail_posts = True
        with pytest.raises(PersistError):
            await session.complete(["Math"])

        saved = TimerRepository(local_store).load(PROBLEM.id)
        assert saved.accumulated_time == 700
        assert not saved.is_running
        assert SoundCue.PROBLEM_SOLVED not in sink.played
        assert progress.progress.entries == []

    @pytest.mark.asyncio
    async def test_pattern_required(self, local_store: LocalStore, clock, sounds) -> None:
        session = make_session(local_store, clock, sounds)
        await session.start()
        with pytest.raises(ValueError):
            await session.complete([])
