"""
Unit tests for S3Provider using moto (S3 mock).
"""

import boto3
import pytest
from moto import mock_aws

from entity_engine.core.clock import ORIGIN_OF_TIME
from entity_engine.core.errors import ProviderError
from entity_engine.providers.s3_store import S3Provider
from entity_engine.snapshot.store import SnapshotStore
from entity_engine.tests.sample_domain import COUNTER, app_config, inc, set_to, ts

BUCKET = "test-bucket"


@pytest.fixture
def s3_provider(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    with mock_aws():
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket=BUCKET)
        yield S3Provider(bucket=BUCKET, prefix="entities")


def test_events_roundtrip(s3_provider):
    s3_provider.store_events([inc(1, 2), set_to(5, 1), inc(2, 3)])

    events = s3_provider.load_events_since(COUNTER, "c-1", ORIGIN_OF_TIME)

    assert [e.created_at for e in events] == [ts(1), ts(2), ts(3)]
    assert events[0].value == {"n": 5}


def test_events_since_exclusive_and_until(s3_provider):
    s3_provider.store_events([inc(1, s) for s in range(1, 6)])

    events = s3_provider.load_events_since(COUNTER, "c-1", ts(2), until=ts(4))

    assert [e.created_at for e in events] == [ts(3), ts(4)]


def test_equal_timestamps_keep_storage_order(s3_provider):
    s3_provider.store_events([set_to(1, 1), inc(5, 1)])

    events = s3_provider.load_events_since(COUNTER, "c-1", ORIGIN_OF_TIME)

    assert [e.type_name for e in events] == ["CounterSet", "CounterIncremented"]


def test_append_lists_only_keys_at_same_instant(s3_provider):
    s3_provider.store_events([inc(1, s) for s in range(1, 4)])
    listed = []
    list_event_keys = s3_provider._list_event_keys

    def recording(prefix, start_after=None):
        listed.append(prefix)
        return list_event_keys(prefix, start_after=start_after)

    s3_provider._list_event_keys = recording
    s3_provider.store_events([inc(5, 2), inc(7, 2)])

    assert listed == [
        f"entities/Counter/c-1/events/{ts(2)}_",
        f"entities/Counter/c-1/events/{ts(2)}_",
    ]
    events = s3_provider.load_events_since(COUNTER, "c-1", ts(1))
    assert [e.value["by"] for e in events] == [1, 5, 7, 1]


def test_snapshot_store_and_fetch(s3_provider):
    events = [set_to(2, 1), inc(3, 2)]
    s3_provider.store_events(events)
    store = SnapshotStore(app_config(), s3_provider)

    stored = store.calculate_and_store_entity_snapshot(COUNTER, "c-1", events)
    s3_provider.store_events([inc(1, 3)])
    fetched = store.fetch_entity_snapshot(COUNTER, "c-1")

    assert stored.value == {"n": 5}
    assert s3_provider.load_latest_snapshot(COUNTER, "c-1") == stored
    assert fetched.value == {"n": 6}


def test_snapshot_upsert_and_conflict(s3_provider):
    store = SnapshotStore(app_config(), s3_provider)
    store.calculate_and_store_entity_snapshot(COUNTER, "c-1", [set_to(1, 1)])
    newer = store.calculate_and_store_entity_snapshot(COUNTER, "c-1", [inc(1, 4)])

    older = SnapshotStore(app_config(), _memory()).calculate_and_store_entity_snapshot(
        COUNTER, "c-1", [set_to(9, 2)]
    )
    result = s3_provider.store_snapshot(older)

    assert result.conflict
    assert s3_provider.load_latest_snapshot(COUNTER, "c-1") == newer


def test_missing_bucket_raises(s3_provider):
    with pytest.raises(ProviderError):
        S3Provider(bucket="does-not-exist")


def _memory():
    from entity_engine.providers.memory import InMemoryProvider

    return InMemoryProvider()
