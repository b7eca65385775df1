"""Process-local keyed locks.

Row locks (SELECT ... FOR UPDATE) serialize writers across processes on
PostgreSQL; SQLite ignores them, so writers in one process also take the
keyed lock for the same identity.
"""
import threading
from contextlib import contextmanager


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.RLock()
        self.holders = 0


class KeyedLock:
    """One re-entrant lock per key, alive only while someone holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _acquire_entry(self, key: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.holders += 1
            return entry

    def _release_entry(self, key: str, entry: _Entry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, key):
        key = str(key)
        entry = self._acquire_entry(key)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(key, entry)


event_locks = KeyedLock()
attendee_locks = KeyedLock()
contribution_locks = KeyedLock()
