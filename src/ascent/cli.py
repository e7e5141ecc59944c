"""Command-line front end for the tracker and the storage service.

Usage: ascent <command> [options]   (``ascent --help`` lists commands)
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from ascent.config import Settings, get_settings
from ascent.middleware.logging import setup_logging
from ascent.tracker.analysis import analyze_week
from ascent.tracker.blackbook import PATTERN_TAGS
from ascent.tracker.errors import StorageError, TrackerError
from ascent.tracker.hints import HintCache, HintService
from ascent.tracker.kv_client import StorageClient
from ascent.tracker.llm import GeminiClient
from ascent.tracker.local_store import (
    LocalStore,
    TimerRepository,
    TimerSettings,
    get_api_key,
    load_timer_settings,
    save_api_key,
    save_timer_settings,
)
from ascent.tracker.plan import (
    DayData,
    Problem,
    find_day,
    find_problem,
    get_current_day,
    get_rating_threshold,
    get_required_problems,
    load_plan,
)
from ascent.tracker.progress import ProgressStore
from ascent.tracker.session import SessionStatus, SolveSession
from ascent.tracker.sounds import BellSoundSink, LoggingSoundSink, SoundBoard, SoundSink
from ascent.tracker.stats import compute_streak, sort_entries, summarize


def _sound_sink() -> SoundSink:
    return BellSoundSink() if sys.stderr.isatty() else LoggingSoundSink()


@dataclass
class Tracker:
    settings: Settings
    store: LocalStore
    progress: ProgressStore
    preferences: TimerSettings
    plan: list[DayData]

    def api_key(self) -> str:
        return get_api_key(self.store) or self.settings.gemini_api_key

    def llm(self) -> GeminiClient:
        return GeminiClient(
            self.api_key(),
            model=self.settings.gemini_model,
            base_url=self.settings.gemini_base_url,
            timeout=self.settings.llm_timeout_seconds,
        )

    def problem(self, problem_id: str, title: str | None = None) -> Problem:
        found = find_problem(self.plan, problem_id)
        if found is not None:
            return found
        return Problem(id=problem_id, title=title or problem_id)

    def session(self, problem: Problem, with_hints: bool = True) -> SolveSession:
        hint_cache = HintCache(self.store)
        hint_service = HintService(hint_cache, self.llm()) if with_hints and self.api_key() and problem.url else None
        return SolveSession(
            problem,
            TimerRepository(self.store),
            self.progress,
            hint_cache,
            hint_service=hint_service,
            sounds=SoundBoard(_sound_sink(), enabled=self.preferences.sounds_enabled),
        )


def default_preferences(settings: Settings) -> TimerSettings:
    return TimerSettings(
        base_threshold=settings.base_rating_threshold,
        monthly_increase=settings.monthly_rating_increase,
        sounds_enabled=settings.sounds_enabled,
        hide_ratings=settings.hide_ratings,
    )


@asynccontextmanager
async def open_tracker(settings: Settings, plan_path: Path | None = None) -> AsyncGenerator[Tracker, None]:
    """Load local preferences and the remote progress aggregate."""
    store = LocalStore(settings.data_dir)
    defaults = default_preferences(settings)
    path = plan_path or settings.plan_path
    plan = load_plan(path) if path else []

    async with StorageClient(settings.storage_base_url, timeout=settings.storage_timeout_seconds) as client:
        progress = ProgressStore(client, settings.progress_key)
        await progress.load()
        yield Tracker(settings, store, progress, load_timer_settings(store, defaults), plan)


def _print_status(status: SessionStatus, end: str = "\n") -> None:
    state = "running" if status.is_running else "paused"
    line = f"{status.problem_id}  {status.display}  [{status.phase.label}] {state}"
    if status.next_hint_in is not None:
        line += f"  next hint in {status.next_hint_in // 60}m"
    print(line, end=end, flush=True)


def _print_hints(status: SessionStatus) -> None:
    for number, text in enumerate(status.hints, start=1):
        print(f"  Hint {number}: {text}")
    if status.hint_error:
        print(f"  Hints unavailable: {status.hint_error}")


# --- Commands ---


async def cmd_start(tracker: Tracker, args: argparse.Namespace) -> int:
    session = tracker.session(tracker.problem(args.problem_id))
    await session.start()
    _print_status(session.status())
    return 0


async def cmd_pause(tracker: Tracker, args: argparse.Namespace) -> int:
    session = tracker.session(tracker.problem(args.problem_id), with_hints=False)
    session.pause()
    _print_status(session.status())
    return 0


async def cmd_reset_timer(tracker: Tracker, args: argparse.Namespace) -> int:
    session = tracker.session(tracker.problem(args.problem_id), with_hints=False)
    session.reset()
    _print_status(session.status())
    return 0


async def cmd_status(tracker: Tracker, args: argparse.Namespace) -> int:
    session = tracker.session(tracker.problem(args.problem_id))
    if not args.watch:
        status = await session.tick()
        _print_status(status)
        _print_hints(status)
        return 0

    shown_hints = 0
    async for _ in session.engine.tick(args.interval):
        status = await session.tick()
        _print_status(status, end="\r")
        if len(status.hints) > shown_hints:
            print()
            _print_hints(status)
            shown_hints = len(status.hints)
    print()
    return 0


async def cmd_complete(tracker: Tracker, args: argparse.Namespace) -> int:
    session = tracker.session(tracker.problem(args.problem_id, args.title), with_hints=False)
    entry = await session.complete(
        args.pattern,
        key_observation=args.observation,
        invariant=args.invariant,
        why_brute_fails=args.why_brute_fails,
        final_approach=args.approach,
        mistake_i_made=args.mistake,
        solved_without_editorial=not args.used_editorial,
    )
    print(f"Problem solved! Entry added to Black Book ({entry.time_spent // 60}m, {entry.type_pattern}).")
    return 0


async def cmd_day(tracker: Tracker, args: argparse.Namespace) -> int:
    if not tracker.plan:
        print("No study plan loaded. Pass --plan or set ASCENT_PLAN_PATH.", file=sys.stderr)
        return 1
    day_number = args.day or get_current_day(tracker.progress.progress.start_date)
    day = find_day(tracker.plan, day_number)
    result = tracker.progress.get_day_progress(day.day, day.problems)
    print(f"Day {day.day}: {day.focus}  {result.completed}/{result.total} ({result.percentage}%)")
    if args.rating is not None:
        prefs = tracker.preferences
        threshold = get_rating_threshold(day.day - 1, prefs.base_threshold, prefs.monthly_increase)
        required = get_required_problems(day.is_weekend, args.rating, threshold)
        print(f"  Target: {required} problems (rating threshold {threshold})")
    for problem in day.problems:
        rating = "" if tracker.preferences.hide_ratings or problem.rating is None else f" ({problem.rating})"
        optional = " [optional]" if problem.is_optional else ""
        print(f"  {tracker.progress.status_of(problem.id):<12} {problem.id}  {problem.title}{rating}{optional}")
    return 0


async def cmd_stats(tracker: Tracker, args: argparse.Namespace) -> int:
    progress = tracker.progress.progress
    summary = summarize(progress.entries, progress.start_date, weekly_target=tracker.settings.weekly_target)
    print(f"Total solved:    {summary.total_solved}")
    print(f"Streak:          {summary.streak} days")
    print(f"This week:       {summary.weekly_solved}/{summary.weekly_target}")
    print(f"Avg time:        {summary.average_minutes}m")
    print(f"No editorial:    {summary.without_editorial_percentage}%")
    print(f"Day:             {summary.day}")
    for pattern, count in summary.top_patterns:
        print(f"  {pattern:<24} {count}")
    if args.recent:
        print("Recent:")
        for entry in sort_entries(progress.entries)[: args.recent]:
            print(f"  {entry.completed_at:%Y-%m-%d}  {entry.problem}  ({entry.type_pattern})")
    return 0


async def cmd_streak(tracker: Tracker, _args: argparse.Namespace) -> int:
    print(f"{compute_streak(tracker.progress.progress.entries)} day streak")
    return 0


async def cmd_export(tracker: Tracker, args: argparse.Namespace) -> int:
    data = tracker.progress.export()
    if args.output:
        Path(args.output).write_text(data, encoding="utf-8")
        print(f"Exported to {args.output}")
    else:
        print(data)
    return 0


async def cmd_reset_progress(tracker: Tracker, args: argparse.Namespace) -> int:
    if not args.yes:
        print("This wipes every entry and problem state. Re-run with --yes to confirm.", file=sys.stderr)
        return 1
    await tracker.progress.reset_progress()
    print("Progress reset.")
    return 0


async def cmd_hints(tracker: Tracker, args: argparse.Namespace) -> int:
    problem = tracker.problem(args.problem_id)
    if not problem.url:
        print(f"Problem {problem.id} is not in the plan; hints need its URL.", file=sys.stderr)
        return 1
    service = HintService(HintCache(tracker.store), tracker.llm())
    await service.get_hints(problem.id, problem.title, problem.url)
    session = tracker.session(problem, with_hints=False)
    status = session.status()
    _print_status(status)
    if not status.hints:
        print("  Hints are ready and unlock at 20, 40 and 60 minutes.")
    _print_hints(status)
    return 0


async def cmd_analyze(tracker: Tracker, _args: argparse.Namespace) -> int:
    report = await analyze_week(tracker.llm(), tracker.progress.progress.entries)
    for title, items in (
        ("Weak areas", report.weak_areas),
        ("Strengths", report.strengths),
        ("Suggestions", report.suggestions),
    ):
        print(f"{title}:")
        for item in items:
            print(f"  - {item}")
    print(f"\n{report.insights}")
    return 0


COMMANDS = {
    "start": cmd_start,
    "pause": cmd_pause,
    "reset-timer": cmd_reset_timer,
    "status": cmd_status,
    "complete": cmd_complete,
    "day": cmd_day,
    "stats": cmd_stats,
    "streak": cmd_streak,
    "export": cmd_export,
    "reset-progress": cmd_reset_progress,
    "hints": cmd_hints,
    "analyze": cmd_analyze,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ascent", description="Competitive-programming study tracker")
    parser.add_argument("--plan", type=Path, help="study plan JSON (defaults to ASCENT_PLAN_PATH)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log at INFO level")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the storage service")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    for name in ("start", "pause", "reset-timer", "hints"):
        sub.add_parser(name).add_argument("problem_id")

    status = sub.add_parser("status", help="elapsed time, phase and unlocked hints")
    status.add_argument("problem_id")
    status.add_argument("--watch", action="store_true", help="refresh until paused or interrupted")
    status.add_argument("--interval", type=float, default=1.0)

    complete = sub.add_parser("complete", help="stop the timer and record a Black Book entry")
    complete.add_argument("problem_id")
    complete.add_argument("--title", help="problem title when it is not in the plan")
    complete.add_argument(
        "--pattern", action="append", required=True, choices=PATTERN_TAGS, metavar="TAG", help="pattern tag (repeatable)"
    )
    complete.add_argument("--observation", default="")
    complete.add_argument("--invariant", default="")
    complete.add_argument("--why-brute-fails", default="")
    complete.add_argument("--approach", default="")
    complete.add_argument("--mistake", default="")
    complete.add_argument("--used-editorial", action="store_true")

    day = sub.add_parser("day", help="progress on one plan day (today by default)")
    day.add_argument("day", type=int, nargs="?")
    day.add_argument("--rating", type=int, help="current rating, to size the day's target")
    sub.add_parser("stats").add_argument("--recent", type=int, default=0, help="also list the N latest entries")
    sub.add_parser("streak")
    sub.add_parser("export").add_argument("--output", "-o")
    sub.add_parser("reset-progress").add_argument("--yes", action="store_true")
    sub.add_parser("analyze", help="LLM coaching report for this week")
    sub.add_parser("set-key", help="store a Gemini API key locally").add_argument("key")

    prefs = sub.add_parser("settings", help="show or change local timer preferences")
    prefs.add_argument("--sounds", action=argparse.BooleanOptionalAction, default=None)
    prefs.add_argument("--hide-ratings", action=argparse.BooleanOptionalAction, default=None)
    prefs.add_argument("--base-threshold", type=int)
    prefs.add_argument("--monthly-increase", type=int)
    return parser


def update_preferences(settings: Settings, args: argparse.Namespace) -> int:
    """Apply any given preference flags, then print the stored preferences."""
    store = LocalStore(settings.data_dir)
    prefs = load_timer_settings(store, default_preferences(settings))
    changes = {
        field: value
        for field, value in (
            ("sounds_enabled", args.sounds),
            ("hide_ratings", args.hide_ratings),
            ("base_threshold", args.base_threshold),
            ("monthly_increase", args.monthly_increase),
        )
        if value is not None
    }
    if changes:
        prefs = prefs.model_copy(update=changes)
        save_timer_settings(store, prefs)
    for field, value in prefs.model_dump().items():
        print(f"{field}: {value}")
    return 0


# Commands that write the aggregate must not run on top of a fallback default
MUTATING_COMMANDS = frozenset({"start", "complete", "reset-progress"})


async def _run(settings: Settings, args: argparse.Namespace) -> int:
    async with open_tracker(settings, args.plan) as tracker:
        load_error = tracker.progress.persistent.load_error
        if load_error is not None and args.command in MUTATING_COMMANDS:
            raise StorageError(f"Progress could not be loaded, refusing to overwrite it: {load_error}")
        return await COMMANDS[args.command](tracker, args)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.model_copy(update={"log_level": "INFO" if args.verbose else "WARNING"}), cli=True)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("ascent.main:create_app", factory=True, host=args.host, port=args.port)
        return 0

    if args.command == "set-key":
        try:
            save_api_key(LocalStore(settings.data_dir), args.key)
        except TrackerError as exc:
            print(exc, file=sys.stderr)
            return 1
        print("API key saved.")
        return 0

    if args.command == "settings":
        return update_preferences(settings, args)

    try:
        return asyncio.run(_run(settings, args))
    except TrackerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print()
        return 130


if __name__ == "__main__":
    sys.exit(main())
