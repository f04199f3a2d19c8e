"""
Event envelope model.

An envelope wraps either an immutable event recorded for an entity, or a
snapshot computed by folding those events. Snapshots are typed as their entity
and carry the cursor (snapshotted_event_created_at) linking them to the log.
"""

import hashlib
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from .canonical import canonical_json_bytes
from .clock import Timestamp, to_iso, utc_now_iso

KIND_EVENT = "event"
KIND_SNAPSHOT = "snapshot"


@dataclass(frozen=True)
class EventEnvelope:
    """
    Immutable envelope record.

    Fields:
        entity_type_name: Declared entity type (e.g., "Cart")
        entity_id: Entity instance identifier
        type_name: Event type for events, entity type for snapshots
        value: Opaque domain payload
        created_at: ISO-8601 UTC timestamp (string-sortable)
        request_id: Request that produced the envelope
        kind: "event" or "snapshot"
        version: Entity schema version (snapshots)
        snapshotted_event_created_at: created_at of the last folded event (snapshots)
        folded_at_cursor: Digests of the folded events stamped exactly at the cursor (snapshots)

    Timestamps are normalized to millisecond UTC on construction.
    """
    entity_type_name: str
    entity_id: str
    type_name: str
    value: Any = None
    created_at: str = ""
    request_id: str = ""
    kind: str = KIND_EVENT
    version: int = 1
    snapshotted_event_created_at: Optional[str] = None
    folded_at_cursor: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.created_at:
            object.__setattr__(self, "created_at", to_iso(self.created_at))
        if self.snapshotted_event_created_at:
            object.__setattr__(
                self, "snapshotted_event_created_at", to_iso(self.snapshotted_event_created_at)
            )
        object.__setattr__(self, "folded_at_cursor", tuple(self.folded_at_cursor))

    @classmethod
    def event(
        cls,
        entity_type_name: str,
        entity_id: str,
        type_name: str,
        value: Any = None,
        request_id: str = "",
        created_at: Optional[Timestamp] = None,
    ) -> "EventEnvelope":
        """Build an event envelope, stamping created_at when not given."""
        return cls(
            entity_type_name=entity_type_name,
            entity_id=entity_id,
            type_name=type_name,
            value=value,
            created_at=created_at or utc_now_iso(),
            request_id=request_id,
            kind=KIND_EVENT,
        )

    @property
    def is_event(self) -> bool:
        return self.kind == KIND_EVENT

    @property
    def is_snapshot(self) -> bool:
        return self.kind == KIND_SNAPSHOT

    def with_created_at(self, created_at: Timestamp) -> "EventEnvelope":
        return replace(self, created_at=created_at)

    def digest(self) -> str:
        """SHA-256 of the canonical wire form; equal envelopes share a digest."""
        return hashlib.sha256(canonical_json_bytes(self.to_dict())).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the wire (camelCase) field names."""
        data: Dict[str, Any] = {
            "entityTypeName": self.entity_type_name,
            "entityID": self.entity_id,
            "typeName": self.type_name,
            "value": self.value,
            "createdAt": self.created_at,
            "requestID": self.request_id,
            "kind": self.kind,
            "version": self.version,
        }
        if self.snapshotted_event_created_at is not None:
            data["snapshottedEventCreatedAt"] = self.snapshotted_event_created_at
        if self.folded_at_cursor:
            data["foldedAtCursor"] = list(self.folded_at_cursor)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventEnvelope":
        """Deserialize from wire field names."""
        return cls(
            entity_type_name=data["entityTypeName"],
            entity_id=data["entityID"],
            type_name=data["typeName"],
            value=data.get("value"),
            created_at=data.get("createdAt", ""),
            request_id=data.get("requestID", ""),
            kind=data.get("kind", KIND_EVENT),
            version=data.get("version", 1),
            snapshotted_event_created_at=data.get("snapshottedEventCreatedAt"),
            folded_at_cursor=tuple(data.get("foldedAtCursor", ())),
        )
