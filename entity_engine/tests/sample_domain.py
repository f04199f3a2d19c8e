"""
Small counter domain used by the tests and CLI examples.

Counter events:
    CounterSet         {"n": int}  -> {"n": n}
    CounterIncremented {"by": int} -> {"n": previous n + by}
"""

from entity_engine.core.config import AppConfig, EntityMetadata
from entity_engine.core.envelope import EventEnvelope
from entity_engine.core.registry import ReducerReference

COUNTER = "Counter"
COUNTER_VERSION = 3


class CounterReducers:
    @staticmethod
    def set(event_value, previous):
        return {"n": event_value["n"]}

    @staticmethod
    def incremented(event_value, previous):
        current = (previous or {}).get("n", 0)
        return {"n": current + event_value["by"]}


def app_config() -> AppConfig:
    return AppConfig(
        reducers={
            "CounterSet": ReducerReference(CounterReducers, "set"),
            "CounterIncremented": ReducerReference(
                "entity_engine.tests.sample_domain:CounterReducers", "incremented"
            ),
        },
        entities={COUNTER: EntityMetadata(version=COUNTER_VERSION)},
        events=("CounterSet", "CounterIncremented"),
    )


def ts(second: int) -> str:
    return f"2024-01-01T00:00:{second:02d}.000Z"


def counter_event(event_type: str, value: dict, second: int, entity_id: str = "c-1") -> EventEnvelope:
    return EventEnvelope.event(
        COUNTER,
        entity_id,
        event_type,
        value,
        request_id=f"req-{second}",
        created_at=ts(second),
    )


def set_to(n: int, second: int, entity_id: str = "c-1") -> EventEnvelope:
    return counter_event("CounterSet", {"n": n}, second, entity_id)


def inc(by: int, second: int, entity_id: str = "c-1") -> EventEnvelope:
    return counter_event("CounterIncremented", {"by": by}, second, entity_id)
