"""
AccountLockRegistry -- in-process serialization of writers per account.

Responsibility:
    Two appends touching the same account must not interleave their
    read-project-validate-insert sequences, otherwise both can pass the
    funds check against the same balance.  The registry hands out one lock
    per account handle; callers hold the locks of every account they touch
    for the whole validate + append + commit.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Used by
    RecordAppender, RetractionService and CatalogService.

Invariants enforced:
    - Locks are acquired in sorted handle order, so two writers touching the
      same pair of accounts can never deadlock on each other.
    - No acquisition blocks indefinitely: expiry raises AccountBusyError and
      releases whatever was already held.

Non-goals:
    - Cross-process serialization.  Under PostgreSQL the services also lock
      the account rows with SELECT ... FOR UPDATE inside the unit of work.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ledger_kernel.exceptions import AccountBusyError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.account_locks")


class AccountLockRegistry:
    """Lazily created per-handle locks with a bounded wait."""

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    @property
    def timeout(self) -> float:
        return self._timeout

    def _lock_for(self, handle: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(handle)
            if lock is None:
                lock = self._locks[handle] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *handles: str | None) -> Iterator[None]:
        """
        Hold the locks of ``handles`` (None entries ignored) for the block.

        Raises:
            AccountBusyError: A lock was not acquired within the timeout.
        """
        acquired: list[threading.Lock] = []
        try:
            for handle in sorted({h for h in handles if h is not None}):
                lock = self._lock_for(handle)
                if not lock.acquire(timeout=self._timeout):
                    logger.warning(
                        "account_lock_timeout",
                        extra={"account": handle, "timeout": self._timeout},
                    )
                    raise AccountBusyError(handle, self._timeout)
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
