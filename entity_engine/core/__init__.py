"""
Core primitives for entity snapshots.

This module provides:
- EventEnvelope: Immutable event or snapshot record
- ReducerRegistry: Event type name -> reducer dispatch
- AppConfig / Settings: Application metadata and runtime settings
- Canonical: Deterministic JSON serialization
- Clock: Timestamp sources
"""

from .envelope import EventEnvelope, KIND_EVENT, KIND_SNAPSHOT
from .registry import ReducerRegistry, ReducerReference, import_object
from .config import AppConfig, EntityMetadata, Settings, build_provider, load_app_config
from .canonical import canonicalize, canonical_json_bytes, canonical_json_str
from .clock import ORIGIN_OF_TIME, DeterministicClock, SystemClock, to_iso, utc_now_iso
from .errors import (
    ConfigError,
    EntityEngineError,
    MissingReducerError,
    ProviderError,
    ReducerExecutionError,
    ReducerResolutionError,
    RegistryFrozenError,
)

__all__ = [
    "EventEnvelope",
    "KIND_EVENT",
    "KIND_SNAPSHOT",
    "ReducerRegistry",
    "ReducerReference",
    "import_object",
    "AppConfig",
    "EntityMetadata",
    "Settings",
    "build_provider",
    "load_app_config",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "ORIGIN_OF_TIME",
    "DeterministicClock",
    "SystemClock",
    "to_iso",
    "utc_now_iso",
    "ConfigError",
    "EntityEngineError",
    "MissingReducerError",
    "ProviderError",
    "ReducerExecutionError",
    "ReducerResolutionError",
    "RegistryFrozenError",
]
