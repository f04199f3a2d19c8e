"""
Canonical JSON serialization for stored envelopes.

Providers write envelopes through these functions so identical envelopes
always produce identical bytes, whatever the key order of their values.
"""

import dataclasses
import json
from datetime import datetime
from typing import Any

from .clock import format_iso


def canonicalize(obj: Any) -> Any:
    """
    Convert nested values to canonical JSON-ready form.

    Rules:
    - dict keys sorted alphabetically
    - tuples and sets converted to lists (sets sorted)
    - dataclass instances converted to dicts
    - datetimes rendered as envelope timestamps
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return canonicalize(dataclasses.asdict(obj))
    if isinstance(obj, dict):
        return {k: canonicalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, (set, frozenset)):
        return [canonicalize(x) for x in sorted(obj)]
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    if isinstance(obj, datetime):
        return format_iso(obj)
    return obj


def canonical_json_str(obj: Any) -> str:
    """Deterministic compact JSON string."""
    return json.dumps(canonicalize(obj), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonical_json_bytes(obj: Any) -> bytes:
    """UTF-8 bytes of canonical_json_str(), used for digests."""
    return canonical_json_str(obj).encode("utf-8")
