"""Domain records shared by the tracker and persisted as camelCase JSON."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ascent.tracker.phases import Phase

PROGRESS_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Serialises with camelCase aliases and accepts either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ProblemStatus(StrEnum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class ProblemState(CamelModel):
    problem_id: str
    status: ProblemStatus = ProblemStatus.NOT_STARTED
    elapsed_time: int = 0
    timer_phase: Phase = Phase.PHASE1
    timer_started: datetime | None = None


class BlackBookEntry(CamelModel):
    """Retrospective recorded once per solve. Never edited afterwards."""

    model_config = ConfigDict(frozen=True)

    problem_id: str
    problem: str
    type_pattern: str = ""
    key_observation: str = ""
    invariant: str = ""
    why_brute_fails: str = ""
    final_approach: str = ""
    mistake_i_made: str = Field(default="", alias="mistakeIMade")
    solved_without_editorial: bool = False
    time_spent: int = 0
    completed_at: datetime = Field(default_factory=utc_now)

    @property
    def patterns(self) -> list[str]:
        """Tags from the comma-joined ``type_pattern``."""
        return [p.strip() for p in self.type_pattern.split(",") if p.strip()]

    @property
    def primary_pattern(self) -> str:
        return self.type_pattern.split(",")[0].strip()


class UserProgress(CamelModel):
    """The aggregate document: everything about one user's plan."""

    start_date: datetime = Field(default_factory=utc_now)
    problem_states: dict[str, ProblemState] = Field(default_factory=dict)
    entries: list[BlackBookEntry] = Field(default_factory=list)
    version: int = PROGRESS_VERSION
