"""Study plan model and the rating-threshold rules that size each day."""

from __future__ import annotations

import json
import math
from datetime import datetime
from enum import StrEnum
from pathlib import Path

from pydantic import TypeAdapter

from ascent.tracker.models import CamelModel, utc_now

PLAN_LENGTH_DAYS = 120
BASE_RATING_THRESHOLD = 1500
MONTHLY_RATING_INCREASE = 100


class Platform(StrEnum):
    CSES = "CSES"
    CODEFORCES = "CodeForces"
    ATCODER = "AtCoder"
    LEETCODE = "LeetCode"


class Problem(CamelModel):
    id: str
    title: str
    url: str = ""
    platform: Platform | None = None
    rating: int | None = None
    is_optional: bool = False


class DayData(CamelModel):
    day: int
    is_weekend: bool = False
    focus: str = ""
    duration: str = ""
    problems: list[Problem] = []


_plan_adapter = TypeAdapter(list[DayData])


def load_plan(path: Path) -> list[DayData]:
    """Read a plan from a JSON array of day objects."""
    return _plan_adapter.validate_python(json.loads(path.read_text(encoding="utf-8")))


def find_day(plan: list[DayData], day: int) -> DayData:
    """The requested day, or the first day when it is not in the plan."""
    for item in plan:
        if item.day == day:
            return item
    if not plan:
        raise ValueError("Plan is empty")
    return plan[0]


def find_problem(plan: list[DayData], problem_id: str) -> Problem | None:
    for item in plan:
        for problem in item.problems:
            if problem.id == problem_id:
                return problem
    return None


def get_current_day(start_date: datetime, now: datetime | None = None) -> int:
    """1-based plan day for ``now``, capped at the plan length."""
    now = now or utc_now()
    diff_days = math.floor(abs((now - start_date).total_seconds()) / 86400)
    return min(diff_days + 1, PLAN_LENGTH_DAYS)


def get_rating_threshold(
    days_elapsed: int,
    base: int = BASE_RATING_THRESHOLD,
    monthly_increase: int = MONTHLY_RATING_INCREASE,
) -> int:
    """Threshold rises by ``monthly_increase`` every whole 30 days."""
    return base + (days_elapsed // 30) * monthly_increase


def get_required_problems(is_weekend: bool, current_rating: int, threshold: int) -> int:
    """Below threshold: 2 weekday / 4 weekend. At or above: 1 / 2."""
    if current_rating < threshold:
        return 4 if is_weekend else 2
    return 2 if is_weekend else 1
