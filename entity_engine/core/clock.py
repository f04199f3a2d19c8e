"""
Time sources and ISO-8601 timestamp helpers.

Envelope timestamps are UTC strings with millisecond precision and a trailing
"Z" (e.g. 2024-05-01T10:00:00.000Z), so lexical order equals time order.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

ORIGIN_OF_TIME = "1970-01-01T00:00:00.000Z"

Timestamp = Union[str, datetime]


def format_iso(dt: datetime) -> str:
    """Format datetime as a sortable UTC ISO-8601 string."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 string (accepts trailing "Z")."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso(value: Timestamp) -> str:
    """
    Normalize a datetime or ISO string to the envelope timestamp format.

    Raises:
        ValueError: If a string is not valid ISO-8601
    """
    if isinstance(value, datetime):
        return format_iso(value)
    return format_iso(parse_iso(value))


def previous_instant(value: str) -> str:
    """
    The envelope timestamp one millisecond before value.

    Loading events "since" this instant includes events stamped exactly at value.
    """
    return format_iso(parse_iso(value) - timedelta(milliseconds=1))


def utc_now_iso() -> str:
    return format_iso(datetime.now(timezone.utc))


class SystemClock:
    """Wall clock used for snapshot creation times."""

    def now(self) -> str:
        return utc_now_iso()


@dataclass(frozen=True)
class DeterministicClock:
    """
    Fixed time source for tests and replays.

    Since DeterministicClock is immutable, tick() returns a new instance.
    """
    current: str = ORIGIN_OF_TIME

    def now(self) -> str:
        """Get current timestamp without advancing."""
        return self.current

    def tick(self, milliseconds: int = 1) -> "DeterministicClock":
        advanced = parse_iso(self.current) + timedelta(milliseconds=milliseconds)
        return DeterministicClock(format_iso(advanced))
