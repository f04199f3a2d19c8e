"""
Entity Snapshot Engine

Event-sourced read side: rebuilds entity snapshots by folding immutable event
envelopes through registered reducers, and materializes them for reuse.
"""

__version__ = "0.1.0"
