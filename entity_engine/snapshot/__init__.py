"""
Snapshot reconstruction and materialization.

Folding applies registered reducers to an entity's pending events, in
creation order, starting from its latest stored snapshot.
"""

from .locks import EntityLocks
from .store import SnapshotStore, unfolded_events

__all__ = [
    "EntityLocks",
    "SnapshotStore",
    "unfolded_events",
]
