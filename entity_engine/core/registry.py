"""
Reducer registry: event type name -> reducer.

A reducer is a pure function (event_value, previous_value_or_None) -> new_value.
It must be deterministic and side-effect free; the engine only dispatches to it.

Usage:
    registry = ReducerRegistry()
    registry.register("ItemAdded", Cart.item_added)
    registry.register("ItemRemoved", ReducerReference("shop.cart:Cart", "item_removed"))
    registry.freeze()
    reducer = registry.lookup("ItemAdded")

Applications usually build it once at startup with from_config(), which
resolves every reference eagerly so a broken deployment fails before the
first fold instead of during one.
"""

import importlib
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Union

from .errors import MissingReducerError, ReducerResolutionError, RegistryFrozenError

logger = logging.getLogger(__name__)

# (event_value, previous_entity_value_or_None) -> new_entity_value_or_None
ReducerFn = Callable[[Any, Any], Any]


def import_object(path: str) -> Any:
    """
    Import an object from "package.module:attr.path".

    Raises:
        ImportError: If the module cannot be imported
        AttributeError: If the attribute path does not exist
        ValueError: If path has no ":" separator
    """
    module_name, sep, attr_path = path.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"expected 'module:attribute', got {path!r}")
    obj: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        obj = getattr(obj, part)
    return obj


@dataclass(frozen=True)
class ReducerReference:
    """
    Declared reducer location: holder object (or import path) plus method name.

    Fields:
        holder: Class, module, or "package.module:Attr" import path
        method_name: Name of the reducer attribute on the holder
    """
    holder: Any
    method_name: str

    def describe(self) -> str:
        if isinstance(self.holder, str):
            holder_name = self.holder
        else:
            holder_name = getattr(self.holder, "__qualname__", None) or getattr(
                self.holder, "__name__", repr(self.holder)
            )
        return f"{holder_name}.{self.method_name}"

    def resolve(self, event_type_name: str) -> ReducerFn:
        """
        Resolve the reference to a callable.

        Raises:
            ReducerResolutionError: If the holder or method is missing or not callable
        """
        holder = self.holder
        if isinstance(holder, str):
            try:
                holder = import_object(holder)
            except (ImportError, AttributeError, ValueError) as ex:
                raise ReducerResolutionError(event_type_name, self.describe(), str(ex)) from ex
        if holder is None:
            raise ReducerResolutionError(event_type_name, self.describe(), "holder is None")

        fn = getattr(holder, self.method_name, None)
        if fn is None:
            raise ReducerResolutionError(
                event_type_name, self.describe(), f"no attribute {self.method_name!r}"
            )
        if not callable(fn):
            raise ReducerResolutionError(event_type_name, self.describe(), "not callable")
        return fn


ReducerSpec = Union[ReducerFn, ReducerReference]


class ReducerRegistry:
    """
    Registry of reducers keyed by event type name.

    Read-only once frozen; concurrent lookups need no locking.
    """

    def __init__(self) -> None:
        self._reducers: Dict[str, ReducerFn] = {}
        self._frozen = False

    @classmethod
    def from_config(cls, config: Any) -> "ReducerRegistry":
        """
        Build and freeze a registry from application metadata.

        Args:
            config: Object with `reducers` (event type -> ReducerSpec) and
                optional `events` (declared event type names)

        Raises:
            ReducerResolutionError: If a reference cannot be resolved
            MissingReducerError: If a declared event type has no reducer
        """
        registry = cls()
        for event_type_name, spec in config.reducers.items():
            registry.register(event_type_name, spec)
        registry.validate(getattr(config, "events", None) or ())
        registry.freeze()
        logger.debug("Reducer registry ready with %d reducers", len(registry))
        return registry

    def register(self, event_type_name: str, reducer: ReducerSpec) -> None:
        """
        Register reducer for an event type.

        References are resolved immediately.

        Raises:
            RegistryFrozenError: If the registry was frozen
            ReducerResolutionError: If a reference cannot be resolved
        """
        if self._frozen:
            raise RegistryFrozenError(f"cannot register {event_type_name}: registry is frozen")
        if isinstance(reducer, ReducerReference):
            fn = reducer.resolve(event_type_name)
            logger.debug('Found reducer for event %s: "%s"', event_type_name, reducer.describe())
        elif callable(reducer):
            fn = reducer
        else:
            raise ReducerResolutionError(event_type_name, reducer, "not callable")
        self._reducers[event_type_name] = fn

    def validate(self, declared_event_types: Iterable[str]) -> None:
        """
        Fail fast if any declared event type lacks a reducer.

        Raises:
            MissingReducerError: For the first declared type without a reducer
        """
        for event_type_name in declared_event_types:
            if event_type_name not in self._reducers:
                raise MissingReducerError(event_type_name)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, event_type_name: str) -> ReducerFn:
        """
        Resolve reducer for event type.

        Raises:
            MissingReducerError: If nothing is registered for event_type_name
        """
        fn = self._reducers.get(event_type_name)
        if fn is None:
            raise MissingReducerError(event_type_name)
        return fn

    def event_types(self) -> Mapping[str, ReducerFn]:
        return MappingProxyType(self._reducers)

    def __contains__(self, event_type_name: object) -> bool:
        return event_type_name in self._reducers

    def __len__(self) -> int:
        return len(self._reducers)
