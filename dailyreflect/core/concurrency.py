"""
Per-user serialization and bounded optimistic retries.

Writers for the same user run one at a time inside a process; across
processes the version-checked upsert in the record store catches the rest.
"""

import threading
import weakref
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from dailyreflect.core.config import settings
from dailyreflect.core.errors import ConflictError, StoreUnavailableError
from dailyreflect.core.logging import log_event

T = TypeVar("T")


class UserLockRegistry:
    """Hands out one re-entrant lock per user id."""

    def __init__(self, timeout_seconds: Optional[float] = None):
        self._timeout = timeout_seconds
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.RLock]" = weakref.WeakValueDictionary()

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else settings.STORE_TIMEOUT_SECONDS

    def _lock_for(self, user_id: str):
        with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[user_id] = lock
            return lock

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        lock = self._lock_for(user_id)
        if not lock.acquire(timeout=self.timeout):
            log_event("warning", "user_lock.timeout", user_id=user_id, error_code="store_unavailable")
            raise StoreUnavailableError(f"Timed out waiting for consistency record of {user_id}")
        try:
            yield
        finally:
            lock.release()


def retry_on_conflict(operation: Callable[[], T], *, user_id: str, max_retries: Optional[int] = None) -> T:
    """Run `operation`, re-reading and retrying when a version check fails."""
    retries = settings.CONFLICT_MAX_RETRIES if max_retries is None else max_retries
    attempt = 0
    while True:
        try:
            return operation()
        except ConflictError as exc:
            attempt += 1
            log_event(
                "warning",
                "consistency_record.conflict",
                user_id=user_id,
                error_code=exc.code,
                extra={"attempt": attempt, "max_retries": retries},
            )
            if attempt > retries:
                raise StoreUnavailableError(
                    f"Consistency record for {user_id} kept changing; giving up after {retries} retries"
                ) from exc
