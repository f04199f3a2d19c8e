"""
S3-based provider using one object per envelope.

Key layout (segments percent-encoded):
    {prefix}/{entity_type}/{entity_id}/events/{created_at}_{seq:010d}.json
    {prefix}/{entity_type}/{entity_id}/snapshot.json

created_at has a fixed width, so lexicographic key order is creation order.
seq counts envelopes stamped at the same instant and breaks ties in storage
order; an append only lists the keys sharing its timestamp, never the whole
log. Events are written with IfNoneMatch="*" and snapshots with IfMatch on
the previous ETag, which makes concurrent writers detect each other instead
of overwriting silently.
"""

import json
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.canonical import canonical_json_str
from ..core.envelope import EventEnvelope
from ..core.errors import ProviderError
from .base import Provider, StoreResult, supersedes

PRECONDITION_CODES = ("PreconditionFailed", "412", "ConditionalRequestConflict")


def _error_code(ex: ClientError) -> str:
    return ex.response.get("Error", {}).get("Code", "")


class S3Provider(Provider):
    """
    S3 event and snapshot storage.

    Paginator: list_objects_v2 returns max 1000 keys per call.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "entities",
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
        max_retries: int = 3,
    ) -> None:
        """
        Initialize S3 provider.

        Args:
            bucket: S3 bucket name
            prefix: Key prefix (default: "entities")
            endpoint_url: S3 endpoint URL (for MinIO, localstack, etc.)
            region: AWS region (default: us-east-1)
            max_retries: Attempts for conditional writes that lose a race

        Raises:
            ProviderError: If the bucket is not accessible
        """
        self.bucket = bucket
        self.prefix = prefix.rstrip("/")
        self.max_retries = max_retries
        self.s3_client = boto3.client("s3", endpoint_url=endpoint_url, region_name=region)

        try:
            self.s3_client.head_bucket(Bucket=bucket)
        except ClientError as e:
            raise ProviderError(
                f"Bucket '{bucket}' not accessible (code: {_error_code(e) or 'Unknown'})"
            ) from e

    def _entity_prefix(self, entity_type_name: str, entity_id: str) -> str:
        return f"{self.prefix}/{quote(entity_type_name, safe='')}/{quote(entity_id, safe='')}"

    def _events_prefix(self, entity_type_name: str, entity_id: str) -> str:
        return f"{self._entity_prefix(entity_type_name, entity_id)}/events/"

    def _snapshot_key(self, entity_type_name: str, entity_id: str) -> str:
        return f"{self._entity_prefix(entity_type_name, entity_id)}/snapshot.json"

    def _get_json(self, key: str) -> Tuple[Optional[dict], Optional[str]]:
        """Return (body, etag), or (None, None) when the key does not exist."""
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in ("NoSuchKey", "404"):
                return None, None
            raise
        body = response["Body"].read().decode("utf-8")
        return json.loads(body), response.get("ETag")

    def _list_event_keys(self, events_prefix: str, start_after: Optional[str] = None) -> List[str]:
        paginator = self.s3_client.get_paginator("list_objects_v2")
        params = {"Bucket": self.bucket, "Prefix": events_prefix}
        if start_after:
            params["StartAfter"] = start_after
        keys = []
        for page in paginator.paginate(**params):
            for obj in page.get("Contents", []):
                if obj["Key"].endswith(".json"):
                    keys.append(obj["Key"])
        keys.sort()
        return keys

    @staticmethod
    def _split_event_key(events_prefix: str, key: str) -> Tuple[str, int]:
        name = key[len(events_prefix):-len(".json")]
        created_at, _, seq = name.rpartition("_")
        return created_at, int(seq)

    def load_latest_snapshot(
        self, entity_type_name: str, entity_id: str, at: Optional[str] = None
    ) -> Optional[EventEnvelope]:
        try:
            data, _ = self._get_json(self._snapshot_key(entity_type_name, entity_id))
        except (BotoCoreError, ClientError, ValueError) as e:
            raise ProviderError(f"Failed to load snapshot from S3: {e}") from e
        if data is None:
            return None
        snapshot = EventEnvelope.from_dict(data)
        if at is not None and (snapshot.snapshotted_event_created_at or "") > at:
            return None
        return snapshot

    def load_events_since(
        self,
        entity_type_name: str,
        entity_id: str,
        since: str,
        until: Optional[str] = None,
    ) -> List[EventEnvelope]:
        events_prefix = self._events_prefix(entity_type_name, entity_id)
        # "~" sorts after every seq digit, so keys stamped exactly `since` are skipped.
        start_after = f"{events_prefix}{since}_~"
        try:
            events = []
            for key in self._list_event_keys(events_prefix, start_after=start_after):
                created_at, _ = self._split_event_key(events_prefix, key)
                if created_at <= since:
                    continue
                if until is not None and created_at > until:
                    break
                data, _ = self._get_json(key)
                if data is not None:
                    events.append(EventEnvelope.from_dict(data))
            return events
        except (BotoCoreError, ClientError, ValueError) as e:
            raise ProviderError(f"Failed to load events from S3: {e}") from e

    def store_snapshot(self, snapshot: EventEnvelope) -> StoreResult:
        """
        Upsert snapshot with a conditional put.

        Retries when another writer replaced the object between read and put.

        Raises:
            ProviderError: On S3 failures or when retries are exhausted
        """
        if not snapshot.is_snapshot:
            raise ProviderError(f"expected a snapshot envelope, got kind={snapshot.kind}")
        key = self._snapshot_key(snapshot.entity_type_name, snapshot.entity_id)
        body = canonical_json_str(snapshot.to_dict()).encode("utf-8")

        try:
            for _ in range(self.max_retries):
                data, etag = self._get_json(key)
                current = EventEnvelope.from_dict(data) if data is not None else None
                observed = current.snapshotted_event_created_at if current else None
                if not supersedes(snapshot, current):
                    return StoreResult(
                        snapshot=snapshot, committed=False, conflict=True, observed_cursor=observed
                    )

                params = {
                    "Bucket": self.bucket,
                    "Key": key,
                    "Body": body,
                    "ContentType": "application/json",
                }
                if etag:
                    params["IfMatch"] = etag
                else:
                    params["IfNoneMatch"] = "*"
                try:
                    self.s3_client.put_object(**params)
                except ClientError as e:
                    if _error_code(e) in PRECONDITION_CODES:
                        continue
                    raise
                return StoreResult(
                    snapshot=snapshot, committed=True, conflict=False, observed_cursor=observed
                )
        except (BotoCoreError, ClientError, ValueError) as e:
            raise ProviderError(f"Failed to store snapshot in S3: {e}") from e
        raise ProviderError(f"snapshot upsert for {key} failed after {self.max_retries} attempts")

    def store_events(self, events: Sequence[EventEnvelope]) -> List[EventEnvelope]:
        """
        Append events, one object each.

        Raises:
            ProviderError: On S3 failures or when retries are exhausted
        """
        for event in events:
            if not event.is_event:
                raise ProviderError(f"expected an event envelope, got kind={event.kind}")
        try:
            for event in events:
                self._put_event(event)
        except (BotoCoreError, ClientError) as e:
            raise ProviderError(f"Failed to append events to S3: {e}") from e
        return list(events)

    def _put_event(self, event: EventEnvelope) -> None:
        events_prefix = self._events_prefix(event.entity_type_name, event.entity_id)
        body = canonical_json_str(event.to_dict()).encode("utf-8")
        instant_prefix = f"{events_prefix}{event.created_at}_"
        for _ in range(self.max_retries):
            keys = self._list_event_keys(instant_prefix)
            next_seq = max((self._split_event_key(events_prefix, k)[1] for k in keys), default=-1) + 1
            key = f"{events_prefix}{event.created_at}_{next_seq:010d}.json"
            try:
                self.s3_client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=body,
                    ContentType="application/json",
                    IfNoneMatch="*",
                )
                return
            except ClientError as e:
                if _error_code(e) in PRECONDITION_CODES:
                    continue
                raise
        raise ProviderError(f"event append under {events_prefix} failed after {self.max_retries} attempts")
