"""
Exception types for the entity snapshot engine.
"""

from typing import Any, Optional


class EntityEngineError(Exception):
    """Base class for engine errors."""
    pass


class MissingReducerError(EntityEngineError):
    """Raised when no reducer is registered for an event type."""

    def __init__(self, event_type_name: str) -> None:
        self.event_type_name = event_type_name
        super().__init__(f"No reducer registered for event {event_type_name}")


class ReducerResolutionError(EntityEngineError):
    """Raised when a registered reducer reference does not resolve to a callable."""

    def __init__(self, event_type_name: str, reference: Any, reason: str = "") -> None:
        self.event_type_name = event_type_name
        self.reference = reference
        msg = f"Couldn't resolve reducer {reference!r} for event {event_type_name}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class ReducerExecutionError(EntityEngineError):
    """
    Raised when a reducer fails while folding an event.

    The original exception is available as __cause__.
    """

    def __init__(self, entity_type_name: str, entity_id: str, event: Any) -> None:
        self.entity_type_name = entity_type_name
        self.entity_id = entity_id
        self.event = event
        type_name = getattr(event, "type_name", None)
        super().__init__(
            f"Reducer failed for event {type_name} on entity {entity_type_name} with ID {entity_id}"
        )


class RegistryFrozenError(EntityEngineError):
    """Raised when registering into a frozen reducer registry."""
    pass


class ProviderError(EntityEngineError):
    """Raised when a bundled persistence provider fails."""
    pass


class ConfigError(EntityEngineError):
    """Raised when settings or configuration references are invalid."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message)
