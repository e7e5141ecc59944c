"""The progress aggregate: problem states and Black Book entries in one document."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from ascent.tracker.kv_client import StorageClient
from ascent.tracker.models import (
    BlackBookEntry,
    ProblemState,
    ProblemStatus,
    UserProgress,
    utc_now,
)
from ascent.tracker.persistent import PersistentValue
from ascent.tracker.plan import Problem

logger = logging.getLogger(__name__)

PROGRESS_KEY = "dsa-tracker-progress"


@dataclass(frozen=True)
class DayProgress:
    completed: int
    total: int
    percentage: int


def _with_problem_state(progress: UserProgress, problem_id: str, **partial: Any) -> UserProgress:  # noqa: ANN401
    existing = progress.problem_states.get(problem_id) or ProblemState(problem_id=problem_id)
    merged = existing.model_copy(update=partial)
    states = {**progress.problem_states, problem_id: merged}
    return progress.model_copy(update={"problem_states": states})


def _with_entry(progress: UserProgress, entry: BlackBookEntry) -> UserProgress:
    return progress.model_copy(update={"entries": [*progress.entries, entry]})


def default_progress() -> UserProgress:
    return UserProgress(start_date=utc_now())


class ProgressStore:
    """Owns the single ``PersistentValue`` holding the user's ``UserProgress``.

    The whole document round-trips on every mutation, so no two fields can
    race each other. A finished solve must go through ``complete_with_entry``:
    separate ``add_entry`` and ``update_problem_state`` calls are two writes
    and can lose one another.
    """

    def __init__(
        self,
        client: StorageClient | None = None,
        key: str = PROGRESS_KEY,
        *,
        persist: bool = True,
    ) -> None:
        self._value: PersistentValue[UserProgress] = PersistentValue(
            key,
            default_progress(),
            client,
            persist=persist,
            parse=UserProgress.model_validate,
            dump=lambda progress: progress.to_document(),
        )

    @property
    def progress(self) -> UserProgress:
        return self._value.value

    @property
    def is_loading(self) -> bool:
        return self._value.is_loading

    @property
    def persistent(self) -> PersistentValue[UserProgress]:
        return self._value

    async def load(self) -> UserProgress:
        return await self._value.load()

    async def update_problem_state(self, problem_id: str, **partial: Any) -> UserProgress:  # noqa: ANN401
        """Merge ``partial`` fields into the problem's state, creating it if needed."""
        return await self._value.set(lambda p: _with_problem_state(p, problem_id, **partial))

    async def start_problem(self, problem_id: str) -> UserProgress:
        """Mark a problem in progress. Completed problems stay completed."""
        state = self.progress.problem_states.get(problem_id)
        if state is not None and state.status != ProblemStatus.NOT_STARTED:
            return self.progress
        return await self.update_problem_state(
            problem_id, status=ProblemStatus.IN_PROGRESS, timer_started=utc_now()
        )

    async def add_entry(self, entry: BlackBookEntry) -> UserProgress:
        return await self._value.set(lambda p: _with_entry(p, entry))

    async def complete_with_entry(self, entry: BlackBookEntry) -> UserProgress:
        """Append ``entry`` and mark its problem completed in one write."""

        def complete(progress: UserProgress) -> UserProgress:
            updated = _with_entry(progress, entry)
            return _with_problem_state(
                updated,
                entry.problem_id,
                status=ProblemStatus.COMPLETED,
                elapsed_time=entry.time_spent,
            )

        result = await self._value.set(complete)
        logger.info("Completed %s in %ds", entry.problem_id, entry.time_spent)
        return result

    def status_of(self, problem_id: str) -> ProblemStatus:
        state = self.progress.problem_states.get(problem_id)
        return state.status if state else ProblemStatus.NOT_STARTED

    def get_day_progress(self, day: int, problems: list[Problem]) -> DayProgress:
        """Completion of ``problems`` (the problems of ``day``)."""
        total = len(problems)
        completed = sum(1 for p in problems if self.status_of(p.id) == ProblemStatus.COMPLETED)
        percentage = round(completed / total * 100) if total > 0 else 0
        return DayProgress(completed=completed, total=total, percentage=percentage)

    async def reset_progress(self) -> UserProgress:
        """Replace everything with a fresh aggregate starting now. Irreversible."""
        logger.warning("Resetting all progress for %r", self._value.key)
        return await self._value.set(default_progress())

    def export(self) -> str:
        """The aggregate as pretty-printed JSON."""
        return json.dumps(self.progress.to_document(), indent=2)
