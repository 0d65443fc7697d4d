"""Per-ingress mutual exclusion.

A ``NamedLock`` is a table of independent locks keyed by ``namespace/name``.
Entries are created on first use and never removed; the set of ingresses is
bounded by the cluster.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

logger = structlog.get_logger()


def ingress_key(namespace: str, name: str) -> str:
    """Build the lock-table key for an ingress."""
    return f"{namespace}/{name}"


class NamedLock:
    """Registry of named locks with a blocking and a non-blocking acquire.

    Each key has at most one holder. Unlocking a key the calling thread does
    not hold is a no-op.

    Example:
        >>> locks = NamedLock()
        >>> locks.try_lock("default/web")
        True
        >>> locks.unlock("default/web")
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}
        self._log = logger.bind(entity="named_lock")

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def lock(self, key: str) -> None:
        """Block until the calling thread holds ``key``."""
        self._lock_for(key).acquire()
        with self._guard:
            self._holders[key] = threading.get_ident()

    def try_lock(self, key: str) -> bool:
        """Acquire ``key`` if it is free.

        Returns:
            True if the calling thread now holds the key, False if another
            holder has it. Never blocks.
        """
        if not self._lock_for(key).acquire(blocking=False):
            return False
        with self._guard:
            self._holders[key] = threading.get_ident()
        return True

    def unlock(self, key: str) -> None:
        """Release ``key`` if the calling thread holds it."""
        with self._guard:
            holder = self._holders.get(key)
            if holder is None or holder != threading.get_ident():
                self._log.debug("unlock_not_held", key=key)
                return
            del self._holders[key]
            self._locks[key].release()

    def is_locked(self, key: str) -> bool:
        """Whether ``key`` currently has a holder. Advisory only."""
        with self._guard:
            return key in self._holders

    @contextmanager
    def held(self, key: str) -> Iterator[None]:
        """Hold ``key`` (blocking) for the duration of the block."""
        self.lock(key)
        try:
            yield
        finally:
            self.unlock(key)
