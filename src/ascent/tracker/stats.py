"""Derived statistics over Black Book entries: streaks, weekly totals, patterns."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from ascent.tracker.models import BlackBookEntry, utc_now

STREAK_HORIZON_DAYS = 120
TOP_PATTERNS = 5


def _as_aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _local_date(dt: datetime, tz: tzinfo) -> date:
    return _as_aware(dt).astimezone(tz).date()


def sort_entries(entries: Iterable[BlackBookEntry]) -> list[BlackBookEntry]:
    """Newest first."""
    return sorted(entries, key=lambda e: e.completed_at, reverse=True)


def compute_streak(
    entries: Iterable[BlackBookEntry],
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
    horizon: int = STREAK_HORIZON_DAYS,
) -> int:
    """Consecutive calendar days with at least one entry, counting back from today.

    An empty today does not break a streak that ran through yesterday; any
    other empty day ends it.
    """
    today = _local_date(now or utc_now(), tz)
    active_days = {_local_date(e.completed_at, tz) for e in entries}

    count = 0
    for offset in range(horizon):
        if today - timedelta(days=offset) in active_days:
            count += 1
        elif offset > 0:
            break
    return count


def week_start(now: datetime | None = None, tz: tzinfo = timezone.utc) -> datetime:
    """Sunday 00:00 of the week containing ``now``, in ``tz``."""
    local_now = _as_aware(now or utc_now()).astimezone(tz)
    days_since_sunday = (local_now.weekday() + 1) % 7
    sunday = local_now.date() - timedelta(days=days_since_sunday)
    return datetime.combine(sunday, time.min, tzinfo=tz)


def this_week_entries(
    entries: Iterable[BlackBookEntry],
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
) -> list[BlackBookEntry]:
    start = week_start(now, tz)
    return [e for e in entries if _as_aware(e.completed_at) >= start]


def pattern_breakdown(entries: Iterable[BlackBookEntry], limit: int = TOP_PATTERNS) -> list[tuple[str, int]]:
    """Most frequent primary patterns (first tag of each entry), highest first."""
    counts = Counter(e.primary_pattern for e in entries if e.primary_pattern)
    return counts.most_common(limit)


def days_since_start(start_date: datetime, now: datetime | None = None) -> int:
    """1 on the start day itself."""
    elapsed = _as_aware(now or utc_now()) - _as_aware(start_date)
    return elapsed // timedelta(days=1) + 1


@dataclass(frozen=True)
class StatsSummary:
    total_solved: int
    average_minutes: int
    without_editorial_percentage: int
    day: int
    streak: int
    weekly_solved: int
    weekly_target: int
    top_patterns: list[tuple[str, int]] = field(default_factory=list)


def summarize(
    entries: list[BlackBookEntry],
    start_date: datetime,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
    weekly_target: int = 10,
) -> StatsSummary:
    now = now or utc_now()
    total = len(entries)
    total_time = sum(e.time_spent for e in entries)
    without_editorial = sum(1 for e in entries if e.solved_without_editorial)

    return StatsSummary(
        total_solved=total,
        average_minutes=total_time // total // 60 if total else 0,
        without_editorial_percentage=round(without_editorial / total * 100) if total else 0,
        day=days_since_start(start_date, now),
        streak=compute_streak(entries, now, tz),
        weekly_solved=len(this_week_entries(entries, now, tz)),
        weekly_target=weekly_target,
        top_patterns=pattern_breakdown(entries),
    )
