"""
Event and snapshot persistence providers.

This module provides:
- Provider: Abstract interface the snapshot store depends on
- InMemoryProvider: Dict-backed storage for tests and embedding
- FileProvider: Append-only JSONL logs plus per-entity snapshot files
- S3Provider: One object per envelope with conditional writes
"""

from .base import Provider, StoreResult, supersedes
from .memory import InMemoryProvider
from .file_store import FileProvider
from .s3_store import S3Provider

__all__ = [
    "Provider",
    "StoreResult",
    "supersedes",
    "InMemoryProvider",
    "FileProvider",
    "S3Provider",
]
