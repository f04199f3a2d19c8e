"""
Per-entity mutual exclusion for the snapshot write path.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Tuple

EntityKey = Tuple[str, str]


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        # Threads holding or waiting for the lock.
        self.holders = 0


class EntityLocks:
    """
    One lock per (entity_type_name, entity_id).

    Serializes writers of the same entity inside this process. Writers in
    other processes are caught by the provider's monotonic upsert instead.

    Entries are reference counted and removed once no thread holds or waits
    for them, so the table only contains entities being written right now.
    """

    def __init__(self) -> None:
        self._entries: Dict[EntityKey, _Entry] = {}
        self._guard = threading.Lock()

    def _acquire_entry(self, key: EntityKey) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.holders += 1
            return entry

    def _release_entry(self, key: EntityKey, entry: _Entry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, entity_type_name: str, entity_id: str) -> Generator[None, None, None]:
        key = (entity_type_name, entity_id)
        entry = self._acquire_entry(key)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(key, entry)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
