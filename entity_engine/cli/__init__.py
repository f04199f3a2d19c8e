"""
entity-engine CLI - inspect and materialize entity snapshots

Commands:
- entity-engine snapshot fetch/materialize - Snapshot operations
- entity-engine events list/append - Event log operations
- entity-engine version
"""
