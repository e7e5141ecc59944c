"""Progressive hints: time-gated unlocks over hints generated once per problem."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from ascent.tracker.llm import GeminiClient, GenerationConfig, parse_json_response
from ascent.tracker.local_store import LocalStore
from ascent.tracker.models import CamelModel
from ascent.tracker.prompts import HintsResponse, hints_prompt, validate_response

logger = logging.getLogger(__name__)

HINT_FETCH_TIME = 15 * 60
HINT1_UNLOCK_TIME = 20 * 60
HINT2_UNLOCK_TIME = 40 * 60
HINT3_UNLOCK_TIME = 60 * 60

CACHE_PREFIX = "problem_hints_"

HINT_GENERATION = GenerationConfig(temperature=0.7, max_output_tokens=1024)


class HintData(CamelModel):
    hint1: str
    hint2: str
    hint3: str
    generated_at: int  # epoch milliseconds


@dataclass(frozen=True)
class HintUnlockState:
    hint1_unlocked: bool
    hint2_unlocked: bool
    hint3_unlocked: bool


def unlocked_hints(elapsed_seconds: float, hints: HintData | None) -> HintUnlockState:
    """Each hint unlocks at its own threshold, and only once hints exist."""
    available = hints is not None
    return HintUnlockState(
        hint1_unlocked=available and elapsed_seconds >= HINT1_UNLOCK_TIME,
        hint2_unlocked=available and elapsed_seconds >= HINT2_UNLOCK_TIME,
        hint3_unlocked=available and elapsed_seconds >= HINT3_UNLOCK_TIME,
    )


def visible_hints(elapsed_seconds: float, hints: HintData | None) -> list[str]:
    if hints is None:
        return []
    state = unlocked_hints(elapsed_seconds, hints)
    flags = (state.hint1_unlocked, state.hint2_unlocked, state.hint3_unlocked)
    texts = (hints.hint1, hints.hint2, hints.hint3)
    return [text for text, unlocked in zip(texts, flags) if unlocked]


def next_unlock_in(elapsed_seconds: float) -> int | None:
    """Seconds until the next hint threshold, None once all have passed."""
    for threshold in (HINT1_UNLOCK_TIME, HINT2_UNLOCK_TIME, HINT3_UNLOCK_TIME):
        if elapsed_seconds < threshold:
            return int(threshold - elapsed_seconds)
    return None


def should_fetch_hints(elapsed_seconds: float, is_running: bool, cached: HintData | None) -> bool:
    """Generation starts at the fetch threshold, while running, and never twice."""
    return is_running and cached is None and elapsed_seconds >= HINT_FETCH_TIME


class HintCache:
    """Hints keyed by problem id in the local store. Entries are never replaced."""

    def __init__(self, store: LocalStore) -> None:
        self.store = store

    @staticmethod
    def key(problem_id: str) -> str:
        return f"{CACHE_PREFIX}{problem_id}"

    def get(self, problem_id: str) -> HintData | None:
        raw = self.store.get(self.key(problem_id))
        if raw is None:
            return None
        try:
            return HintData.model_validate(raw)
        except ValueError:
            logger.warning("Failed to parse cached hints for %s", problem_id)
            return None

    def put(self, problem_id: str, hints: HintData) -> HintData:
        existing = self.get(problem_id)
        if existing is not None:
            return existing
        self.store.set(self.key(problem_id), hints.to_document())
        return hints


class HintService:
    def __init__(self, cache: HintCache, llm: GeminiClient) -> None:
        self.cache = cache
        self.llm = llm

    async def get_hints(self, problem_id: str, problem_title: str, problem_url: str) -> HintData:
        """Cached hints, generating and caching them on first use.

        Raises ``LLMError`` (including ``InvalidResponseError``) when the
        model reply cannot be turned into three hints; nothing is cached then.
        """
        cached = self.cache.get(problem_id)
        if cached is not None:
            return cached

        text = await self.llm.generate(hints_prompt(problem_title, problem_url), HINT_GENERATION)
        parsed: HintsResponse = validate_response(HintsResponse, parse_json_response(text))

        hints = HintData(
            hint1=parsed.hint1,
            hint2=parsed.hint2,
            hint3=parsed.hint3,
            generated_at=int(time.time() * 1000),
        )
        logger.info("Generated hints for %s", problem_id)
        return self.cache.put(problem_id, hints)
