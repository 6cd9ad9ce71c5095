"""Transaction and lock scope for ledger operations.

Synopsis:
Every mutating ledger operation runs inside ``ledger_transaction``: per-variant
process locks are taken first (sorted, bounded wait), then the database
transaction runs and is committed or rolled back as a whole. On PostgreSQL the
transaction also sets ``lock_timeout`` so a blocked ``FOR UPDATE`` fails fast
instead of hanging a worker.

Glossary:
- Variant lock: in-process mutex serializing writers of one variant's lots.
  SQLite has no row locks, so this is what serializes allocators there.
  Variants share a fixed pool of stripes, so memory does not grow with ids.
- Lock failure: any database error meaning "could not get the lock in time"
  (lock_not_available, deadlock_detected, query_canceled).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterable, List

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError

from ...models.db_dialect import is_postgres
from .exceptions import LockTimeoutError

logger = logging.getLogger(__name__)

_LOCK_FAILURE_PGCODES = frozenset({"55P03", "40P01", "57014"})
DEFAULT_LOCK_STRIPES = 1024


class VariantLockRegistry:
    """Maps variant ids onto a fixed pool of mutexes (lock striping)."""

    def __init__(self, stripes: int = DEFAULT_LOCK_STRIPES):
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks: List[Lock] = [Lock() for _ in range(stripes)]

    @property
    def stripes(self) -> int:
        return len(self._locks)

    def _stripe_for(self, variant_id: int) -> int:
        return variant_id % len(self._locks)

    def acquire(self, variant_ids: Iterable[int], timeout: float) -> List[Lock]:
        """Lock the stripes of every variant in ascending stripe order, or none of them."""
        # Two variants on one stripe must take it once, not twice
        stripes: Dict[int, int] = {}
        for variant_id in sorted(set(variant_ids)):
            stripes.setdefault(self._stripe_for(variant_id), variant_id)

        held: List[Lock] = []
        for stripe in sorted(stripes):
            lock = self._locks[stripe]
            if not lock.acquire(timeout=timeout if timeout and timeout > 0 else -1):
                self.release(held)
                raise LockTimeoutError(
                    "timed out waiting for stock lock",
                    variant_id=stripes[stripe],
                )
            held.append(lock)
        return held

    @staticmethod
    def release(held: List[Lock]) -> None:
        for lock in reversed(held):
            lock.release()


variant_locks = VariantLockRegistry()


def is_lock_failure(error: DBAPIError) -> bool:
    orig = getattr(error, "orig", None)
    pgcode = getattr(orig, "pgcode", None)
    if pgcode in _LOCK_FAILURE_PGCODES:
        return True
    # SQLite reports contention as "database is locked"
    return "database is locked" in str(orig or error).lower()


def _apply_lock_timeout(session, timeout: float) -> None:
    if not timeout or timeout <= 0 or not is_postgres(session):
        return
    millis = max(1, int(timeout * 1000))
    session.execute(text(f"SET LOCAL lock_timeout = '{millis}ms'"))


@contextmanager
def ledger_transaction(session, variant_ids: Iterable[int] = (), *, lock_timeout: float = 10.0):
    """Run the block as one transaction holding the given variants' locks."""
    held = variant_locks.acquire(variant_ids, lock_timeout)
    try:
        try:
            _apply_lock_timeout(session, lock_timeout)
            yield session
            session.commit()
        except (OperationalError, DBAPIError) as exc:
            session.rollback()
            if is_lock_failure(exc):
                logger.warning("LEDGER: lock not acquired, transaction rolled back: %s", exc)
                raise LockTimeoutError("timed out waiting for stock lock") from exc
            raise
        except BaseException:
            session.rollback()
            raise
    finally:
        variant_locks.release(held)
