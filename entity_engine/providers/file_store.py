"""
File-based provider.

Layout under the root directory, one folder per entity:
    {root}/{entity_type}/{entity_id}/events.jsonl   append-only event log
    {root}/{entity_type}/{entity_id}/snapshot.json  latest snapshot (upserted)

Path segments are percent-encoded so any entity ID is a valid directory name.
"""

import json
import os
from typing import Iterator, List, Optional, Sequence
from urllib.parse import quote

from ..core.canonical import canonical_json_str
from ..core.envelope import EventEnvelope
from ..core.errors import ProviderError
from .base import Provider, StoreResult, supersedes

try:
    import fcntl
except ImportError:  # Windows or unsupported platform
    fcntl = None


class FileProvider(Provider):
    """
    File-based event and snapshot storage.

    Guarantees:
    - Event log is append-only, fsync after each append
    - Snapshot replaced atomically (write temp file, then os.replace)
    - Snapshot upsert is serialized by an exclusive lock per entity
    """

    EVENTS_FILE = "events.jsonl"
    SNAPSHOT_FILE = "snapshot.json"
    LOCK_FILE = ".lock"

    def __init__(self, root: str) -> None:
        """
        Initialize file provider.

        Args:
            root: Root data directory (created if missing)
        """
        self.root = root
        os.makedirs(root, exist_ok=True)

    def _entity_dir(self, entity_type_name: str, entity_id: str) -> str:
        return os.path.join(self.root, quote(entity_type_name, safe=""), quote(entity_id, safe=""))

    def _lock(self, f) -> None:
        if fcntl:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)

    def _unlock(self, f) -> None:
        if fcntl:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def _read_snapshot(self, entity_dir: str) -> Optional[EventEnvelope]:
        path = os.path.join(entity_dir, self.SNAPSHOT_FILE)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return EventEnvelope.from_dict(json.load(f))

    def _iter_events(self, entity_dir: str) -> Iterator[EventEnvelope]:
        path = os.path.join(entity_dir, self.EVENTS_FILE)
        if not os.path.exists(path):
            return
        with open(path, "rb") as f:
            for line in f:
                if not line.strip():
                    continue
                yield EventEnvelope.from_dict(json.loads(line))

    def load_latest_snapshot(
        self, entity_type_name: str, entity_id: str, at: Optional[str] = None
    ) -> Optional[EventEnvelope]:
        try:
            snapshot = self._read_snapshot(self._entity_dir(entity_type_name, entity_id))
        except (OSError, ValueError, KeyError) as ex:
            raise ProviderError(f"cannot read snapshot for {entity_type_name}/{entity_id}: {ex}") from ex
        if snapshot is None:
            return None
        if at is not None and (snapshot.snapshotted_event_created_at or "") > at:
            return None
        return snapshot

    def load_events_since(
        self,
        entity_type_name: str,
        entity_id: str,
        since: str,
        until: Optional[str] = None,
    ) -> List[EventEnvelope]:
        try:
            events = [
                e
                for e in self._iter_events(self._entity_dir(entity_type_name, entity_id))
                if e.created_at > since and (until is None or e.created_at <= until)
            ]
        except (OSError, ValueError, KeyError) as ex:
            raise ProviderError(f"cannot read events for {entity_type_name}/{entity_id}: {ex}") from ex
        # Stable: equal timestamps keep log order.
        events.sort(key=lambda e: e.created_at)
        return events

    def store_snapshot(self, snapshot: EventEnvelope) -> StoreResult:
        """
        Upsert snapshot under an exclusive lock.

        Raises:
            ProviderError: If the envelope is not a snapshot or I/O fails
        """
        if not snapshot.is_snapshot:
            raise ProviderError(f"expected a snapshot envelope, got kind={snapshot.kind}")
        entity_dir = self._entity_dir(snapshot.entity_type_name, snapshot.entity_id)
        try:
            os.makedirs(entity_dir, exist_ok=True)
            with open(os.path.join(entity_dir, self.LOCK_FILE), "a+b") as lock_f:
                self._lock(lock_f)
                try:
                    current = self._read_snapshot(entity_dir)
                    observed = current.snapshotted_event_created_at if current else None
                    if not supersedes(snapshot, current):
                        return StoreResult(
                            snapshot=snapshot, committed=False, conflict=True, observed_cursor=observed
                        )

                    path = os.path.join(entity_dir, self.SNAPSHOT_FILE)
                    tmp_path = f"{path}.tmp"
                    with open(tmp_path, "wb") as f:
                        f.write(canonical_json_str(snapshot.to_dict()).encode("utf-8"))
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, path)
                finally:
                    self._unlock(lock_f)
        except (OSError, ValueError) as ex:
            raise ProviderError(str(ex)) from ex

        return StoreResult(snapshot=snapshot, committed=True, conflict=False, observed_cursor=observed)

    def store_events(self, events: Sequence[EventEnvelope]) -> List[EventEnvelope]:
        """
        Append events to their entity logs.

        Raises:
            ProviderError: If an envelope is not an event or I/O fails
        """
        for event in events:
            if not event.is_event:
                raise ProviderError(f"expected an event envelope, got kind={event.kind}")
        try:
            for event in events:
                entity_dir = self._entity_dir(event.entity_type_name, event.entity_id)
                os.makedirs(entity_dir, exist_ok=True)
                line = canonical_json_str(event.to_dict()) + "\n"
                with open(os.path.join(entity_dir, self.EVENTS_FILE), "ab") as f:
                    self._lock(f)
                    try:
                        f.write(line.encode("utf-8"))
                        f.flush()
                        os.fsync(f.fileno())
                    finally:
                        self._unlock(f)
        except (OSError, TypeError, ValueError) as ex:
            raise ProviderError(str(ex)) from ex
        return list(events)
