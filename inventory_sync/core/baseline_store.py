"""Baseline Store: the last successfully normalized table, kept in one fixed slot.

Every run reads and overwrites the same key. There is no versioning, so two
overlapping runs can lose an update (last writer wins).

Two backends share the same JSON document format (a list of records):
- ObjectStoreBaselineStore: an object at the well-known key in the bucket
- RedisBaselineStore: a Redis string at the well-known key
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, Union

import redis as redis_lib
from pydantic import TypeAdapter, ValidationError

from inventory_sync.core.errors import ObjectNotFoundError, StorageError
from inventory_sync.core.models import InventoryRecord
from inventory_sync.core.object_store import LocalObjectStore

logger = logging.getLogger(__name__)

DEFAULT_BASELINE_KEY = "baseline/inventory-baseline.json"

_records_adapter = TypeAdapter(list[InventoryRecord])


class BaselineStore(Protocol):
    def load(self, request_id: str = "") -> list[InventoryRecord]: ...

    def save(self, records: list[InventoryRecord], request_id: str = "") -> None: ...


def serialize_baseline(records: list[InventoryRecord]) -> str:
    return json.dumps([r.model_dump(mode="json") for r in records], indent=2)


def deserialize_baseline(payload: Union[str, bytes], key: str) -> list[InventoryRecord]:
    try:
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        return _records_adapter.validate_json(payload)
    except (UnicodeDecodeError, ValidationError) as e:
        raise StorageError(f"Baseline at {key} is not a valid record list: {e}", key=key) from e


class ObjectStoreBaselineStore:
    def __init__(
        self,
        store: LocalObjectStore,
        bucket: str,
        key: str = DEFAULT_BASELINE_KEY,
        processed_by: str = "valleyridge-inventory-sync",
    ):
        self.store = store
        self.bucket = bucket
        self.key = key
        self.processed_by = processed_by

    def load(self, request_id: str = "") -> list[InventoryRecord]:
        """Return the stored baseline, or [] on cold start."""
        logger.info(f"[{request_id}] Loading baseline data")
        try:
            body = self.store.get(self.bucket, self.key)
        except ObjectNotFoundError:
            logger.info(f"[{request_id}] No baseline found, starting fresh")
            return []
        records = deserialize_baseline(body, self.key)
        logger.info(f"[{request_id}] Loaded baseline with {len(records)} records")
        return records

    def save(self, records: list[InventoryRecord], request_id: str = "") -> None:
        """Overwrite the baseline with the given records."""
        logger.info(f"[{request_id}] Saving new baseline data")
        self.store.put(
            self.bucket,
            self.key,
            serialize_baseline(records).encode("utf-8"),
            content_type="application/json",
            metadata={
                "processed-by": self.processed_by,
                "processed-at": datetime.now(timezone.utc).isoformat(),
                "request-id": request_id,
                "record-count": str(len(records)),
            },
        )
        logger.info(f"[{request_id}] Successfully saved baseline with {len(records)} records")


class RedisBaselineStore:
    def __init__(self, client: redis_lib.Redis, key: str = DEFAULT_BASELINE_KEY):
        self.client = client
        self.key = key

    def load(self, request_id: str = "") -> list[InventoryRecord]:
        """Return the stored baseline, or [] on cold start."""
        logger.info(f"[{request_id}] Loading baseline data from Redis key {self.key}")
        try:
            payload: Optional[Union[str, bytes]] = self.client.get(self.key)
        except redis_lib.RedisError as e:
            raise StorageError(f"Failed to load baseline: {e}", key=self.key) from e
        if payload is None:
            logger.info(f"[{request_id}] No baseline found, starting fresh")
            return []
        records = deserialize_baseline(payload, self.key)
        logger.info(f"[{request_id}] Loaded baseline with {len(records)} records")
        return records

    def save(self, records: list[InventoryRecord], request_id: str = "") -> None:
        """Overwrite the baseline with the given records."""
        try:
            self.client.set(self.key, serialize_baseline(records))
        except redis_lib.RedisError as e:
            raise StorageError(f"Failed to save baseline: {e}", key=self.key) from e
        logger.info(f"[{request_id}] Successfully saved baseline with {len(records)} records")
