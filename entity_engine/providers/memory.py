"""
In-memory provider for tests and embedded use.
"""

import threading
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.envelope import EventEnvelope
from ..core.errors import ProviderError
from .base import Provider, StoreResult, supersedes

EntityKey = Tuple[str, str]


class InMemoryProvider(Provider):
    """Dict-backed provider. Thread-safe; not durable."""

    def __init__(self) -> None:
        self._events: Dict[EntityKey, List[EventEnvelope]] = {}
        self._snapshots: Dict[EntityKey, EventEnvelope] = {}
        self._lock = threading.Lock()
        self.store_calls = 0

    def load_latest_snapshot(
        self, entity_type_name: str, entity_id: str, at: Optional[str] = None
    ) -> Optional[EventEnvelope]:
        with self._lock:
            snapshot = self._snapshots.get((entity_type_name, entity_id))
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
        with self._lock:
            stream = list(self._events.get((entity_type_name, entity_id), []))
        return [
            e for e in stream
            if e.created_at > since and (until is None or e.created_at <= until)
        ]

    def store_snapshot(self, snapshot: EventEnvelope) -> StoreResult:
        if not snapshot.is_snapshot:
            raise ProviderError(f"expected a snapshot envelope, got kind={snapshot.kind}")
        key = (snapshot.entity_type_name, snapshot.entity_id)
        with self._lock:
            self.store_calls += 1
            current = self._snapshots.get(key)
            if not supersedes(snapshot, current):
                return StoreResult(
                    snapshot=snapshot,
                    committed=False,
                    conflict=True,
                    observed_cursor=current.snapshotted_event_created_at if current else None,
                )
            self._snapshots[key] = snapshot
        return StoreResult(
            snapshot=snapshot,
            committed=True,
            conflict=False,
            observed_cursor=current.snapshotted_event_created_at if current else None,
        )

    def store_events(self, events: Sequence[EventEnvelope]) -> List[EventEnvelope]:
        for event in events:
            if not event.is_event:
                raise ProviderError(f"expected an event envelope, got kind={event.kind}")
        with self._lock:
            for event in events:
                stream = self._events.setdefault((event.entity_type_name, event.entity_id), [])
                stream.append(event)
                # Stable sort keeps arrival order among equal timestamps.
                stream.sort(key=lambda e: e.created_at)
        return list(events)
