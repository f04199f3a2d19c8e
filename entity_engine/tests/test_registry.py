"""
Tests for reducer registration, lookup and startup validation.
"""

import pytest

from entity_engine.core.config import AppConfig
from entity_engine.core.errors import (
    MissingReducerError,
    ReducerResolutionError,
    RegistryFrozenError,
)
from entity_engine.core.registry import ReducerReference, ReducerRegistry, import_object
from entity_engine.tests.sample_domain import CounterReducers, app_config


class Holder:
    not_a_function = 42

    @staticmethod
    def reduce(event_value, previous):
        return event_value


def test_lookup_registered_callable():
    registry = ReducerRegistry()
    registry.register("Set", Holder.reduce)

    assert registry.lookup("Set") is Holder.reduce
    assert "Set" in registry
    assert len(registry) == 1


def test_lookup_missing_raises():
    registry = ReducerRegistry()

    with pytest.raises(MissingReducerError) as exc_info:
        registry.lookup("Nope")

    assert exc_info.value.event_type_name == "Nope"
    assert "Nope" in str(exc_info.value)


def test_reference_to_class_method():
    registry = ReducerRegistry()
    registry.register("Set", ReducerReference(Holder, "reduce"))

    assert registry.lookup("Set")({"a": 1}, None) == {"a": 1}


def test_reference_by_import_path():
    ref = ReducerReference("entity_engine.tests.sample_domain:CounterReducers", "incremented")

    fn = ref.resolve("CounterIncremented")

    assert fn({"by": 2}, {"n": 1}) == {"n": 3}
    assert ref.describe() == "entity_engine.tests.sample_domain:CounterReducers.incremented"


def test_reference_missing_method():
    registry = ReducerRegistry()

    with pytest.raises(ReducerResolutionError) as exc_info:
        registry.register("Set", ReducerReference(Holder, "missing"))

    assert exc_info.value.event_type_name == "Set"
    assert "Holder.missing" in str(exc_info.value)


def test_reference_missing_module():
    with pytest.raises(ReducerResolutionError) as exc_info:
        ReducerReference("no_such_package.reducers:Thing", "reduce").resolve("Set")

    assert isinstance(exc_info.value.__cause__, ImportError)


def test_reference_not_callable():
    with pytest.raises(ReducerResolutionError):
        ReducerReference(Holder, "not_a_function").resolve("Set")


def test_resolution_error_is_not_missing_reducer():
    assert not issubclass(ReducerResolutionError, MissingReducerError)
    assert not issubclass(MissingReducerError, ReducerResolutionError)


def test_from_config_resolves_and_freezes():
    registry = ReducerRegistry.from_config(app_config())

    assert registry.frozen
    assert registry.lookup("CounterSet") is CounterReducers.set
    assert set(registry.event_types()) == {"CounterSet", "CounterIncremented"}


def test_from_config_fails_fast_on_undeclared_reducer():
    config = AppConfig(
        reducers={"CounterSet": CounterReducers.set},
        events=("CounterSet", "CounterReset"),
    )

    with pytest.raises(MissingReducerError) as exc_info:
        ReducerRegistry.from_config(config)

    assert exc_info.value.event_type_name == "CounterReset"


def test_from_config_fails_fast_on_broken_reference():
    config = AppConfig(reducers={"CounterSet": ReducerReference(CounterReducers, "gone")})

    with pytest.raises(ReducerResolutionError):
        ReducerRegistry.from_config(config)


def test_frozen_registry_rejects_registration():
    registry = ReducerRegistry.from_config(app_config())

    with pytest.raises(RegistryFrozenError):
        registry.register("Other", Holder.reduce)


def test_register_rejects_non_callable():
    with pytest.raises(ReducerResolutionError):
        ReducerRegistry().register("Set", "not callable")


def test_import_object_requires_colon():
    with pytest.raises(ValueError):
        import_object("entity_engine.tests.sample_domain")
