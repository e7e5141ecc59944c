"""Progress aggregate tests."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest
import pytest_asyncio

from ascent.tracker.blackbook import build_entry
from ascent.tracker.errors import PersistError
from ascent.tracker.kv_client import StorageClient
from ascent.tracker.models import ProblemStatus, UserProgress, utc_now
from ascent.tracker.plan import Problem
from ascent.tracker.progress import PROGRESS_KEY, ProgressStore


def _entry(problem_id: str = "cf-1352A", time_spent: int = 1800):
    return build_entry(
        problem_id,
        "Sum of Round Numbers",
        time_spent,
        ["Implementation", "Math"],
        key_observation="Each non-zero digit is its own round number",
        mistake_i_made="Forgot the zero case",
    )


@pytest_asyncio.fixture
async def store(storage_client: StorageClient) -> ProgressStore:
    progress = ProgressStore(storage_client)
    await progress.load()
    return progress


class TestLoad:
    @pytest.mark.asyncio
    async def test_empty_store_gives_default(self, store: ProgressStore) -> None:
        """A fresh key loads as an empty aggregate starting now."""
        assert store.progress.entries == []
        assert store.progress.problem_states == {}
        assert abs(utc_now() - store.progress.start_date) < timedelta(seconds=5)
        assert store.is_loading is False

    @pytest.mark.asyncio
    async def test_loads_camel_case_document(self, fake_storage, storage_client: StorageClient) -> None:
        fake_storage.data[PROGRESS_KEY] = {
            "startDate": "2026-01-01T00:00:00Z",
            "problemStates": {"p1": {"problemId": "p1", "status": "completed", "elapsedTime": 600}},
            "entries": [],
            "version": 1,
        }
        store = ProgressStore(storage_client)
        await store.load()
        assert store.status_of("p1") == ProblemStatus.COMPLETED
        assert store.progress.start_date.year == 2026


class TestCompleteWithEntry:
    @pytest.mark.asyncio
    async def test_single_atomic_update(self, fake_storage, store: ProgressStore) -> None:
        """Entry append and status change land in one write and one notification."""
        notifications: list[UserProgress] = []
        store.persistent.subscribe(notifications.append)
        before = len(store.progress.entries)

        await store.complete_with_entry(_entry())

        assert len(store.progress.entries) == before + 1
        assert store.status_of("cf-1352A") == ProblemStatus.COMPLETED
        assert store.progress.problem_states["cf-1352A"].elapsed_time == 1800
        assert len(notifications) == 1
        assert len(fake_storage.posts) == 1

    @pytest.mark.asyncio
    async def test_persisted_document_shape(self, fake_storage, store: ProgressStore) -> None:
        """The stored document uses the camelCase field names."""
        await store.complete_with_entry(_entry())
        document = fake_storage.data[PROGRESS_KEY]
        entry = document["entries"][0]
        assert entry["problemId"] == "cf-1352A"
        assert entry["typePattern"] == "Implementation, Math"
        assert entry["mistakeIMade"] == "Forgot the zero case"
        assert entry["solvedWithoutEditorial"] is True
        assert document["problemStates"]["cf-1352A"]["status"] == "completed"

    @pytest.mark.asyncio
    async def test_resolve_appends_second_entry(self, store: ProgressStore) -> None:
        """Solving the same problem again keeps both entries."""
        await store.complete_with_entry(_entry(time_spent=1800))
        await store.complete_with_entry(_entry(time_spent=600))
        assert [e.time_spent for e in store.progress.entries] == [1800, 600]
        assert store.progress.problem_states["cf-1352A"].elapsed_time == 600

    @pytest.mark.asyncio
    async def test_failed_write_reverts(self, fake_storage, store: ProgressStore) -> None:
        """On a rejected write the aggregate returns to the server's copy."""
        await store.complete_with_entry(_entry("p1"))
        saved = store.progress

        fake_storage.fail_posts = True
        with pytest.raises(PersistError, match=PROGRESS_KEY):
            await store.complete_with_entry(_entry("p2"))

        assert store.progress == saved
        assert store.status_of("p2") == ProblemStatus.NOT_STARTED


class TestProblemState:
    @pytest.mark.asyncio
    async def test_start_problem(self, store: ProgressStore) -> None:
        await store.start_problem("p1")
        state = store.progress.problem_states["p1"]
        assert state.status == ProblemStatus.IN_PROGRESS
        assert state.timer_started is not None

    @pytest.mark.asyncio
    async def test_start_keeps_completed(self, fake_storage, store: ProgressStore) -> None:
        """Starting a completed problem does not reopen it or write anything."""
        await store.complete_with_entry(_entry("p1"))
        posts = len(fake_storage.posts)
        await store.start_problem("p1")
        assert store.status_of("p1") == ProblemStatus.COMPLETED
        assert len(fake_storage.posts) == posts

    @pytest.mark.asyncio
    async def test_partial_update_merges(self, store: ProgressStore) -> None:
        await store.update_problem_state("p1", elapsed_time=120)
        await store.update_problem_state("p1", status=ProblemStatus.IN_PROGRESS)
        state = store.progress.problem_states["p1"]
        assert (state.elapsed_time, state.status) == (120, ProblemStatus.IN_PROGRESS)

    @pytest.mark.asyncio
    async def test_add_entry_leaves_status(self, store: ProgressStore) -> None:
        await store.add_entry(_entry("p1"))
        assert len(store.progress.entries) == 1
        assert store.status_of("p1") == ProblemStatus.NOT_STARTED


class TestDayProgress:
    def test_empty_day(self) -> None:
        """No problems means zero percent, not a division error."""
        result = ProgressStore(persist=False).get_day_progress(1, [])
        assert (result.completed, result.total, result.percentage) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_counts_completed(self) -> None:
        store = ProgressStore(persist=False)
        problems = [Problem(id=f"p{i}", title=f"P{i}") for i in range(3)]
        before = store.get_day_progress(4, problems)

        await store.complete_with_entry(_entry("p1"))
        after = store.get_day_progress(4, problems)

        assert before.percentage == 0
        assert (after.completed, after.total, after.percentage) == (1, 3, 33)


class TestResetAndExport:
    @pytest.mark.asyncio
    async def test_reset_progress(self, fake_storage, store: ProgressStore) -> None:
        """Reset wipes entries and states and restarts the plan now."""
        await store.complete_with_entry(_entry())
        await store.reset_progress()

        assert store.progress.entries == []
        assert store.progress.problem_states == {}
        assert abs(utc_now() - store.progress.start_date) < timedelta(seconds=1)
        assert fake_storage.data[PROGRESS_KEY]["entries"] == []

    @pytest.mark.asyncio
    async def test_export(self, store: ProgressStore) -> None:
        await store.complete_with_entry(_entry())
        exported = json.loads(store.export())
        assert set(exported) == {"startDate", "problemStates", "entries", "version"}
        assert exported["entries"][0]["problem"] == "Sum of Round Numbers"
