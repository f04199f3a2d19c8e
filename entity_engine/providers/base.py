"""
Provider abstract interface.

Defines the persistence contract the snapshot store depends on.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..core.envelope import EventEnvelope


@dataclass(frozen=True)
class StoreResult:
    """
    Result of a snapshot upsert.

    When committed is False and conflict is True, a snapshot with a newer
    cursor was already stored and nothing was written.
    """

    snapshot: EventEnvelope
    committed: bool
    conflict: bool
    observed_cursor: Optional[str] = None


def supersedes(incoming: EventEnvelope, stored: Optional[EventEnvelope]) -> bool:
    """
    True if incoming may replace stored.

    Cursors compare first; at an equal cursor the snapshot that folded at least
    as many events stamped at that instant wins.
    """
    if stored is None:
        return True
    incoming_cursor = incoming.snapshotted_event_created_at or ""
    stored_cursor = stored.snapshotted_event_created_at or ""
    if incoming_cursor != stored_cursor:
        return incoming_cursor > stored_cursor
    return len(incoming.folded_at_cursor) >= len(stored.folded_at_cursor)


class Provider(ABC):
    """
    Abstract event/snapshot persistence.

    All implementations must guarantee:
    - Events are append-only and returned in created_at order, ties in storage order
    - load_events_since is total and stable for a given range
    - store_snapshot is an upsert that never replaces a newer snapshot
    - Operations succeed or fail atomically
    """

    @abstractmethod
    def load_latest_snapshot(
        self, entity_type_name: str, entity_id: str, at: Optional[str] = None
    ) -> Optional[EventEnvelope]:
        """
        Load latest stored snapshot for an entity.

        Args:
            entity_type_name: Entity type
            entity_id: Entity ID
            at: Only consider snapshots whose cursor is <= at (None = latest)

        Returns:
            Snapshot envelope or None
        """
        ...

    @abstractmethod
    def load_events_since(
        self,
        entity_type_name: str,
        entity_id: str,
        since: str,
        until: Optional[str] = None,
    ) -> List[EventEnvelope]:
        """
        Load events recorded strictly after since.

        Args:
            since: Exclusive lower bound (ISO-8601)
            until: Inclusive upper bound (None = no bound)

        Returns:
            Events in creation order
        """
        ...

    @abstractmethod
    def store_snapshot(self, snapshot: EventEnvelope) -> StoreResult:
        """
        Upsert snapshot as the latest for its entity.

        Returns:
            StoreResult with commit/conflict info
        """
        ...

    @abstractmethod
    def store_events(self, events: Sequence[EventEnvelope]) -> List[EventEnvelope]:
        """
        Append event envelopes.

        Returns:
            The stored envelopes
        """
        ...
