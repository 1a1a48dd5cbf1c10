"""Correlation ids for pipeline runs and uploads.

Ids are UUID v7 hex strings, so they sort by creation time.
"""

from uuid_extensions import uuid7

RUN_ID_PREFIX = "run_"
UPLOAD_ID_PREFIX = "up_"


def generate_id(prefix: str = RUN_ID_PREFIX) -> str:
    """Return e.g. "run_01926f4e8b7d7a8e9c0d1e2f3a4b5c6d"."""
    return f"{prefix}{uuid7().hex}"
