"""Study plan loading and rating threshold tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from ascent.tracker.plan import (
    Platform,
    find_day,
    find_problem,
    get_current_day,
    get_rating_threshold,
    get_required_problems,
    load_plan,
)

PLAN = [
    {
        "day": 1,
        "isWeekend": False,
        "focus": "Sorting basics",
        "duration": "2h",
        "problems": [
            {"id": "cses-1090", "title": "Ferris Wheel", "url": "https://cses.fi/problemset/task/1090", "platform": "CSES"},
            {"id": "cf-1352A", "title": "Sum of Round Numbers", "platform": "CodeForces", "rating": 800, "isOptional": True},
        ],
    },
    {"day": 2, "isWeekend": True, "focus": "Two pointers", "problems": []},
]


@pytest.fixture
def plan_file(tmp_path: Path) -> Path:
    path = tmp_path / "plan.json"
    path.write_text(json.dumps(PLAN), encoding="utf-8")
    return path


class TestLoadPlan:
    def test_camel_case_fields(self, plan_file: Path) -> None:
        plan = load_plan(plan_file)
        assert [d.day for d in plan] == [1, 2]
        assert plan[1].is_weekend is True
        optional = plan[0].problems[1]
        assert optional.is_optional is True
        assert optional.rating == 800
        assert optional.platform == Platform.CODEFORCES

    def test_find_day_falls_back_to_first(self, plan_file: Path) -> None:
        plan = load_plan(plan_file)
        assert find_day(plan, 2).focus == "Two pointers"
        assert find_day(plan, 99).day == 1

    def test_find_day_empty_plan(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            find_day([], 1)

    def test_find_problem(self, plan_file: Path) -> None:
        plan = load_plan(plan_file)
        assert find_problem(plan, "cses-1090").title == "Ferris Wheel"
        assert find_problem(plan, "missing") is None


class TestCurrentDay:
    def test_first_day(self) -> None:
        start = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
        assert get_current_day(start, start) == 1
        assert get_current_day(start, start + timedelta(hours=23)) == 1
        assert get_current_day(start, start + timedelta(days=1)) == 2

    def test_capped_at_plan_length(self) -> None:
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert get_current_day(start, start + timedelta(days=119)) == 120
        assert get_current_day(start, start + timedelta(days=500)) == 120


class TestThresholds:
    @pytest.mark.parametrize(("days", "threshold"), [(0, 1500), (29, 1500), (30, 1600), (95, 1800)])
    def test_rating_threshold(self, days: int, threshold: int) -> None:
        assert get_rating_threshold(days) == threshold

    def test_custom_increase(self) -> None:
        assert get_rating_threshold(60, base=1200, monthly_increase=50) == 1300

    @pytest.mark.parametrize(
        ("is_weekend", "rating", "required"),
        [(False, 1400, 2), (True, 1400, 4), (False, 1500, 1), (True, 1600, 2)],
    )
    def test_required_problems(self, is_weekend: bool, rating: int, required: int) -> None:
        assert get_required_problems(is_weekend, rating, 1500) == required
