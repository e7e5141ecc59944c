"""A value mirrored to the key-value store with optimistic writes.

Sync state machine, per key:

    IDLE -> PENDING                  write issued (value applied locally)
    PENDING -> PENDING               another write issued before the ack
    PENDING -> IDLE                  last in-flight write acknowledged
    PENDING -> REVERTING             a write failed
    REVERTING -> IDLE | PENDING      canonical value restored

A failure that arrives while another revert is running joins REVERTING.
A revert never overwrites a write issued after its fetch started.

Writes are not serialised against each other. Updates that span
several logical fields must go through one ``set`` call on the whole value.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Generic, TypeVar

from ascent.tracker.errors import InvalidTransitionError, PersistError, StorageError
from ascent.tracker.kv_client import StorageClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

Updater = Callable[[T], T]
Listener = Callable[[T], None]


class SyncState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    REVERTING = "reverting"


VALID_SYNC_TRANSITIONS: dict[SyncState, tuple[SyncState, ...]] = {
    SyncState.IDLE: (SyncState.PENDING,),
    SyncState.PENDING: (SyncState.PENDING, SyncState.IDLE, SyncState.REVERTING),
    SyncState.REVERTING: (SyncState.IDLE, SyncState.PENDING),
}


def validate_sync_transition(current: SyncState, target: SyncState) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if target not in VALID_SYNC_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Invalid sync transition: {current} -> {target}. "
            f"Valid transitions: {[s.value for s in VALID_SYNC_TRANSITIONS[current]]}"
        )


def _identity(value: Any) -> Any:  # noqa: ANN401
    return value


class PersistentValue(Generic[T]):
    """In-memory value bound to ``key`` in the remote store.

    With ``persist=False`` it is plain in-memory state: no network calls and
    ``is_loading`` is false from the start.

    ``parse`` turns a stored payload into ``T`` and ``dump`` does the reverse;
    both default to identity for JSON-native values.
    """

    def __init__(
        self,
        key: str,
        initial: T,
        client: StorageClient | None = None,
        *,
        persist: bool = True,
        parse: Callable[[Any], T] | None = None,
        dump: Callable[[T], Any] | None = None,
    ) -> None:
        if persist and client is None:
            raise ValueError("A StorageClient is required when persist=True")
        self.key = key
        self.initial = initial
        self.client = client
        self.persist = persist
        self._parse = parse or _identity
        self._dump = dump or _identity

        self._value: T = initial
        self.is_loading = persist
        self.load_error: Exception | None = None
        self.sync_state = SyncState.IDLE
        self.pending_previous: T | None = None
        self._in_flight = 0
        self._reverting = 0
        self._writes = 0
        self._listeners: list[Listener[T]] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """Call ``listener`` with every new value. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _apply(self, value: T) -> None:
        self._value = value
        for listener in list(self._listeners):
            listener(value)

    def _transition(self, target: SyncState) -> None:
        validate_sync_transition(self.sync_state, target)
        self.sync_state = target

    async def _fetch(self) -> T | None:
        """Canonical remote value, or None when the key is empty."""
        assert self.client is not None
        payload = await self.client.get(self.key)
        if payload is None:
            return None
        return self._parse(payload)

    async def load(self) -> T:
        """Adopt the remote value, falling back to ``initial`` on any failure.

        A local write made while loading wins over the fetched value.
        """
        if not self.persist:
            self.is_loading = False
            return self._value

        self.is_loading = True
        self.load_error = None
        writes_before = self._writes
        try:
            remote = await self._fetch()
        except Exception as exc:  # StorageError or a payload that fails to parse
            self.load_error = exc
            logger.warning("Error fetching key %r, using initial value: %s", self.key, exc)
            remote = None
        finally:
            self.is_loading = False

        if remote is not None and self._writes == writes_before:
            self._apply(remote)
        return self._value

    def resolve(self, next_value: T | Updater[T]) -> T:
        """Resolve an updater against the latest value at call time."""
        if callable(next_value):
            return next_value(self._value)
        return next_value

    async def set(self, next_value: T | Updater[T]) -> T:
        """Apply ``next_value`` locally now, then persist it.

        On a failed write the value is reverted to the canonical remote value
        (or to the pre-write value if that cannot be fetched either) and
        ``PersistError`` is raised. Any other error also reverts before it
        propagates.
        """
        previous = self._value
        resolved = self.resolve(next_value)
        self._writes += 1
        self._apply(resolved)

        if not self.persist:
            return resolved

        if self._in_flight == 0:
            self.pending_previous = previous
        self._transition(SyncState.PENDING)
        self._in_flight += 1

        try:
            try:
                assert self.client is not None
                await self.client.set(self.key, self._dump(resolved))
            finally:
                self._in_flight -= 1
        except StorageError as exc:
            await self._revert(previous)
            raise PersistError(self.key, str(exc)) from exc
        except Exception:
            await self._revert(previous)
            raise

        self._settle()
        return resolved

    def _settle(self) -> None:
        """Move to the state implied by the outstanding writes and reverts."""
        if self._in_flight:
            target = SyncState.PENDING
        elif self._reverting:
            target = SyncState.REVERTING
        else:
            target = SyncState.IDLE
            self.pending_previous = None
        if target != self.sync_state or target == SyncState.PENDING:
            self._transition(target)

    async def _revert(self, fallback: T) -> None:
        """Restore the canonical value unless a newer local write has landed.

        Failures that overlap share the ``REVERTING`` state; the last revert
        to finish settles the state machine.
        """
        self._reverting += 1
        if self.sync_state != SyncState.REVERTING:
            self._transition(SyncState.REVERTING)
        writes_before = self._writes
        try:
            try:
                canonical = await self._fetch()
            except Exception as exc:
                logger.warning("Revert fetch for %r failed, restoring pre-write value: %s", self.key, exc)
                canonical = fallback
            else:
                if canonical is None:
                    canonical = self.initial

            if self._writes == writes_before:
                self._apply(canonical)
                logger.info("Reverted %r to canonical value after failed write", self.key)
            else:
                logger.info("Kept newer local write for %r over revert", self.key)
        finally:
            self._reverting -= 1
            self._settle()
