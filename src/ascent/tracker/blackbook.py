"""Black Book entries: building a retrospective from a finished solve."""

from __future__ import annotations

from datetime import datetime

from ascent.tracker.models import BlackBookEntry, utc_now

# Fixed tag vocabulary so the pattern breakdown groups consistently
PATTERN_TAGS: tuple[str, ...] = (
    "Game Theory",
    "Greedy",
    "DP",
    "Binary Search",
    "Two Pointers",
    "Sliding Window",
    "Graph - BFS",
    "Graph - DFS",
    "Graph - Dijkstra",
    "Graph - MST",
    "Graph - Topological Sort",
    "Segment Tree",
    "Fenwick Tree",
    "Union Find",
    "Math",
    "Number Theory",
    "Combinatorics",
    "String - Hashing",
    "String - KMP",
    "String - Z-function",
    "Trie",
    "Stack",
    "Queue",
    "Heap",
    "Sorting",
    "Prefix Sum",
    "Difference Array",
    "Bit Manipulation",
    "Divide & Conquer",
    "Meet in the Middle",
    "Constructive",
    "Implementation",
    "Simulation",
    "Ad Hoc",
)

PATTERN_SEPARATOR = ", "


def build_entry(
    problem_id: str,
    problem_title: str,
    time_spent: int,
    patterns: list[str],
    *,
    key_observation: str = "",
    invariant: str = "",
    why_brute_fails: str = "",
    final_approach: str = "",
    mistake_i_made: str = "",
    solved_without_editorial: bool = True,
    completed_at: datetime | None = None,
) -> BlackBookEntry:
    """Seal a solve into an entry. At least one pattern tag is required."""
    tags = [p.strip() for p in patterns if p.strip()]
    if not tags:
        raise ValueError("At least one pattern is required")

    return BlackBookEntry(
        problem_id=problem_id,
        problem=problem_title,
        type_pattern=PATTERN_SEPARATOR.join(dict.fromkeys(tags)),
        key_observation=key_observation,
        invariant=invariant,
        why_brute_fails=why_brute_fails,
        final_approach=final_approach,
        mistake_i_made=mistake_i_made,
        solved_without_editorial=solved_without_editorial,
        time_spent=time_spent,
        completed_at=completed_at or utc_now(),
    )
