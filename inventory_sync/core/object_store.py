"""Filesystem-backed object store.

Objects live at {root}/{bucket}/{key}. Metadata for each object is kept in a
JSON sidecar at {root}/{bucket}/{key}.meta.json.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from inventory_sync.core.errors import ObjectNotFoundError, StorageError

logger = logging.getLogger(__name__)

META_SUFFIX = ".meta.json"


class LocalObjectStore:
    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, bucket: str, key: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        path = (bucket_dir / key).resolve()
        if bucket_dir not in path.parents:
            raise StorageError(f"Object key escapes bucket: {key}", key=key)
        return path

    def get(self, bucket: str, key: str) -> bytes:
        """Read an object. Raises ObjectNotFoundError if it does not exist."""
        path = self._path(bucket, key)
        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            raise ObjectNotFoundError(f"No such key: {bucket}/{key}", key=key) from e
        except OSError as e:
            raise StorageError(f"Failed to read {bucket}/{key}: {e}", key=key) from e
        logger.info(f"Read {len(data)} bytes from {bucket}/{key}")
        return data

    def put(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Write (or overwrite) an object and its metadata sidecar."""
        path = self._path(bucket, key)
        meta = {"content-type": content_type, **(metadata or {})}
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(body)
            path.with_name(path.name + META_SUFFIX).write_text(json.dumps(meta, indent=2))
        except OSError as e:
            raise StorageError(f"Failed to write {bucket}/{key}: {e}", key=key) from e
        logger.info(f"Wrote {len(body)} bytes to {bucket}/{key}")

    def get_metadata(self, bucket: str, key: str) -> dict[str, str]:
        path = self._path(bucket, key)
        meta_path = path.with_name(path.name + META_SUFFIX)
        try:
            return json.loads(meta_path.read_text())
        except FileNotFoundError as e:
            raise ObjectNotFoundError(f"No metadata for key: {bucket}/{key}", key=key) from e
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read metadata for {bucket}/{key}: {e}", key=key) from e

    def exists(self, bucket: str, key: str) -> bool:
        return self._path(bucket, key).is_file()

    def check_connection(self) -> bool:
        """Check that the storage root is usable."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            return self.root.is_dir()
        except OSError:
            return False
