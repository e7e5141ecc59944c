"""Client-local key-value files: timer state, hint cache, preferences, API key.

These never go to the remote store. Each key is one JSON file under the data
directory, replaced atomically on write.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from ascent.tracker.errors import InvalidApiKeyError
from ascent.tracker.llm import is_valid_api_key
from ascent.tracker.models import CamelModel
from ascent.tracker.timer import TimerState

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")

TIMER_PREFIX = "timer_"
SETTINGS_KEY = "timer_settings"
API_KEY_KEY = "gemini_api_key"


class LocalStore:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get(self, key: str) -> Any:  # noqa: ANN401
        """Stored value, or None when missing or unreadable."""
        path = self._path(key)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable local key %r: %s", key, exc)
            return None

    def set(self, key: str, value: Any) -> None:  # noqa: ANN401
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(value, fh)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class TimerRepository:
    """Timer state per problem id; a fresh zeroed state on first access."""

    def __init__(self, store: LocalStore) -> None:
        self.store = store

    @staticmethod
    def key(problem_id: str) -> str:
        return f"{TIMER_PREFIX}{problem_id}"

    def load(self, problem_id: str) -> TimerState:
        raw = self.store.get(self.key(problem_id))
        if raw is None:
            return TimerState()
        try:
            return TimerState.model_validate(raw)
        except ValueError:
            logger.warning("Discarding corrupt timer state for %s", problem_id)
            return TimerState()

    def save(self, problem_id: str, state: TimerState) -> None:
        self.store.set(self.key(problem_id), state.to_document())


class TimerSettings(CamelModel):
    base_threshold: int = 1500
    monthly_increase: int = 100
    sounds_enabled: bool = True
    hide_ratings: bool = False


def load_timer_settings(store: LocalStore, defaults: TimerSettings | None = None) -> TimerSettings:
    raw = store.get(SETTINGS_KEY)
    if raw is None:
        return defaults or TimerSettings()
    try:
        return TimerSettings.model_validate(raw)
    except ValueError:
        return defaults or TimerSettings()


def save_timer_settings(store: LocalStore, settings: TimerSettings) -> None:
    store.set(SETTINGS_KEY, settings.to_document())


def get_api_key(store: LocalStore) -> str | None:
    value = store.get(API_KEY_KEY)
    return value if isinstance(value, str) and value else None


def save_api_key(store: LocalStore, key: str) -> None:
    """Store a Gemini API key after a format check."""
    key = key.strip()
    if not is_valid_api_key(key):
        raise InvalidApiKeyError("That does not look like a Gemini API key (expected it to start with 'AIza').")
    store.set(API_KEY_KEY, key)
