"""In-process exclusive access to boxes and put-aside items.

Every mutating engine operation holds the lock of the records it writes for
the whole unit of work, including the commit. Multi-key operations acquire
their keys in sorted order so two callers can never wait on each other.
"""

import threading
from contextlib import contextmanager


class KeyedLocks:
    """A lazily created re-entrant lock per key, dropped when unused."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}
        self._users = {}

    def _checkout(self, key):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key):
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, *keys):
        ordered = sorted({str(key) for key in keys if key is not None})
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                lock.acquire()
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def __len__(self):
        with self._guard:
            return len(self._locks)


def box_key(box_id):
    return f"box:{box_id}"


def item_key(item_id):
    return f"put-aside:{item_id}"


def session_key(session_id):
    return f"check-session:{session_id}"


_locks = KeyedLocks()


def get_locks():
    return _locks


def reset_locks():
    """Drop every lock (useful for testing)."""
    global _locks
    _locks = KeyedLocks()
