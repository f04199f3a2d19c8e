import pytest

from entity_engine.core.clock import DeterministicClock
from entity_engine.providers.memory import InMemoryProvider
from entity_engine.snapshot.store import SnapshotStore
from entity_engine.tests.sample_domain import app_config

FOLD_TIME = "2024-06-01T00:00:00.000Z"


@pytest.fixture
def config():
    return app_config()


@pytest.fixture
def provider():
    return InMemoryProvider()


@pytest.fixture
def store(config, provider):
    return SnapshotStore(config, provider, clock=DeterministicClock(FOLD_TIME))
