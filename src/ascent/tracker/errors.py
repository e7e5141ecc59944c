"""Tracker exception hierarchy."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for tracker failures. ``str(exc)`` is user-facing."""


class StorageError(TrackerError):
    """The key-value store could not be read or written."""


class PersistError(StorageError):
    """A write failed and the local value was reverted to the canonical one."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f'Could not save "{key}": {message}')
        self.key = key


class InvalidTransitionError(ValueError):
    """A sync state machine was asked to make an illegal move."""


class LLMError(TrackerError):
    """The text-completion service failed. Usually retryable."""


class InvalidApiKeyError(LLMError):
    """The API key is missing, malformed, or rejected by the service."""


class RateLimitError(LLMError):
    """The service is throttling requests."""


class SafetyBlockedError(LLMError):
    """The response was withheld by the service's content filters."""


class InvalidResponseError(LLMError):
    """The response text did not contain the expected JSON fields."""


class NoEntriesThisWeekError(TrackerError):
    """Nothing solved since the start of the week."""
