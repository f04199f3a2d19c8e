"""
Snapshot store: fetch and materialize entity snapshots.

Reads take the latest stored snapshot, load the events recorded after its
cursor and fold them through the reducer registry. Writes fold a caller
supplied list of pending events and upsert the result through the provider.

Provider errors pass through unchanged and are never retried here; providers
are expected to succeed or fail atomically.
"""

from typing import List, Optional, Sequence

from ..core.clock import ORIGIN_OF_TIME, SystemClock, Timestamp, previous_instant, to_iso
from ..core.config import AppConfig
from ..core.envelope import KIND_SNAPSHOT, EventEnvelope
from ..core.errors import MissingReducerError, ReducerExecutionError
from ..core.registry import ReducerRegistry
from ..logging_config import get_logger
from .. import metrics
from ..providers.base import Provider
from .locks import EntityLocks


def unfolded_events(
    snapshot: Optional[EventEnvelope], events: Sequence[EventEnvelope]
) -> List[EventEnvelope]:
    """
    Drop events the snapshot already incorporates.

    Events before the cursor are folded. Events stamped exactly at the
    cursor are folded only if their digest is recorded in the snapshot;
    each recorded digest accounts for one event.
    """
    cursor = snapshot.snapshotted_event_created_at if snapshot is not None else None
    if cursor is None:
        return list(events)
    if not snapshot.folded_at_cursor:
        # Snapshot written without digests: treat the whole cursor instant as folded.
        return [e for e in events if e.created_at > cursor]

    remaining = list(snapshot.folded_at_cursor)
    result = []
    for event in events:
        if event.created_at < cursor:
            continue
        if event.created_at == cursor:
            digest = event.digest()
            if digest in remaining:
                remaining.remove(digest)
                continue
        result.append(event)
    return result


class SnapshotStore:
    """
    Entity snapshot orchestration.

    Usage:
        store = SnapshotStore(config, FileProvider("/var/lib/entities"))
        cart = store.fetch_entity_snapshot("Cart", "cart-42")
        store.calculate_and_store_entity_snapshot("Cart", "cart-42", new_events)
    """

    def __init__(
        self,
        config: AppConfig,
        provider: Provider,
        registry: Optional[ReducerRegistry] = None,
        clock=None,
        locks: Optional[EntityLocks] = None,
    ) -> None:
        """
        Initialize snapshot store.

        Args:
            config: Application metadata (reducers, entity versions)
            provider: Event/snapshot persistence
            registry: Prebuilt registry (default: ReducerRegistry.from_config(config))
            clock: Object with now() -> ISO string (default: SystemClock)
            locks: Shared per-entity locks (default: private table)

        Raises:
            ReducerResolutionError, MissingReducerError: If config is inconsistent
        """
        self.config = config
        self.provider = provider
        self.registry = registry if registry is not None else ReducerRegistry.from_config(config)
        self.clock = clock or SystemClock()
        self.locks = locks or EntityLocks()

    def fetch_entity_snapshot(
        self, entity_type_name: str, entity_id: str, at: Optional[Timestamp] = None
    ) -> Optional[EventEnvelope]:
        """
        Compute the current snapshot without persisting it.

        Args:
            entity_type_name: Entity type
            entity_id: Entity ID
            at: Point in time; only snapshots and events at or before it are used

        Returns:
            Snapshot envelope, or None if the entity has no snapshot and no events
        """
        log = get_logger(__name__, entity_id=entity_id)
        cutoff = to_iso(at) if at is not None else None
        log.debug("Fetching snapshot for entity %s with ID %s", entity_type_name, entity_id)

        with metrics.track_duration("fetch"):
            snapshot = self.provider.load_latest_snapshot(entity_type_name, entity_id, at=cutoff)
            cursor = snapshot.snapshotted_event_created_at if snapshot else None
            # Events stamped at the cursor may not all be folded yet.
            since = previous_instant(cursor) if cursor else ORIGIN_OF_TIME

            log.debug(
                "Loading pending events for entity %s with ID %s since %s",
                entity_type_name,
                entity_id,
                since,
            )
            loaded = self.provider.load_events_since(entity_type_name, entity_id, since, until=cutoff)
            pending = unfolded_events(snapshot, loaded)

            if not pending:
                return snapshot

            result = self._fold(entity_type_name, entity_id, snapshot, pending)
            log.debug(
                "Reduced new snapshot for entity %s with ID %s from %d events",
                entity_type_name,
                entity_id,
                len(pending),
            )
            return result

    def calculate_and_store_entity_snapshot(
        self,
        entity_type_name: str,
        entity_id: str,
        pending_events: Sequence[EventEnvelope],
    ) -> Optional[EventEnvelope]:
        """
        Fold pending events into the latest snapshot and persist the result.

        Events already covered by the stored snapshot (before its cursor, or
        at the cursor with a recorded digest) are skipped, so repeating a call
        does not re-persist. Distinct events sharing the cursor instant are
        still folded.

        Args:
            entity_type_name: Entity type
            entity_id: Entity ID
            pending_events: New events in creation order

        Returns:
            The stored snapshot, or the unchanged prior snapshot (possibly None)
            when there was nothing to fold
        """
        log = get_logger(__name__, entity_id=entity_id)
        log.debug(
            "Processing %d events for entity %s with ID %s",
            len(pending_events),
            entity_type_name,
            entity_id,
        )

        with self.locks.hold(entity_type_name, entity_id), metrics.track_duration("store"):
            latest = self.provider.load_latest_snapshot(entity_type_name, entity_id)
            events = unfolded_events(latest, pending_events)
            if len(events) < len(pending_events):
                log.debug(
                    "Skipping %d events already in snapshot (cursor %s)",
                    len(pending_events) - len(events),
                    latest.snapshotted_event_created_at if latest else None,
                )

            new_snapshot = self._fold(entity_type_name, entity_id, latest, events)
            if new_snapshot is None or new_snapshot is latest:
                log.debug("New entity snapshot is unchanged. Returning old one (which can also be None)")
                return latest

            result = self.provider.store_snapshot(new_snapshot)
            if result.conflict:
                log.warning(
                    "Snapshot for entity %s with ID %s not stored: newer snapshot exists (cursor %s)",
                    entity_type_name,
                    entity_id,
                    result.observed_cursor,
                )
                return self.provider.load_latest_snapshot(entity_type_name, entity_id) or new_snapshot

            metrics.track_stored(entity_type_name)
            log.debug("Stored snapshot for entity %s with ID %s", entity_type_name, entity_id)
            return new_snapshot

    def _fold(
        self,
        entity_type_name: str,
        entity_id: str,
        snapshot: Optional[EventEnvelope],
        events: List[EventEnvelope],
    ) -> Optional[EventEnvelope]:
        """Left fold of events over snapshot. Returns snapshot itself when events is empty."""
        acc = snapshot
        for event in events:
            acc = self._reduce(entity_type_name, entity_id, acc, event)
        metrics.track_folded(entity_type_name, len(events))
        return acc

    def _reduce(
        self,
        entity_type_name: str,
        entity_id: str,
        latest: Optional[EventEnvelope],
        event: EventEnvelope,
    ) -> EventEnvelope:
        log = get_logger(__name__, entity_id=entity_id)
        try:
            reducer = self.registry.lookup(event.type_name)
        except MissingReducerError:
            metrics.track_failure(entity_type_name, "missing_reducer")
            log.error(
                "No reducer for event %s on entity %s with ID %s: %s",
                event.type_name,
                entity_type_name,
                entity_id,
                event.to_dict(),
            )
            raise

        previous = latest.value if latest is not None else None
        carried = (
            latest.folded_at_cursor
            if latest is not None and latest.snapshotted_event_created_at == event.created_at
            else ()
        )
        try:
            new_value = reducer(event.value, previous)
        except Exception as ex:
            metrics.track_failure(entity_type_name, "execution")
            log.error(
                "Error when calling reducer for event %s on entity %s with ID %s: %s",
                event.type_name,
                entity_type_name,
                entity_id,
                event.to_dict(),
                exc_info=True,
            )
            raise ReducerExecutionError(entity_type_name, entity_id, event) from ex

        return EventEnvelope(
            entity_type_name=event.entity_type_name,
            entity_id=event.entity_id,
            type_name=event.entity_type_name,
            value=new_value,
            created_at=self.clock.now(),
            request_id=event.request_id,
            kind=KIND_SNAPSHOT,
            version=self.config.current_version_for(event.entity_type_name),
            snapshotted_event_created_at=event.created_at,
            folded_at_cursor=carried + (event.digest(),),
        )
