"""Error notification for unrecoverable failures.

Notifiers must never raise: a failed notification is logged and the
original error keeps propagating.
"""

import json
import logging
from typing import Optional, Protocol

import redis as redis_lib

logger = logging.getLogger(__name__)


class ErrorNotifier(Protocol):
    def notify(self, error: BaseException, correlation_id: str, input_file: Optional[str] = None) -> None: ...


def build_payload(
    address: str,
    error: BaseException,
    correlation_id: str,
    input_file: Optional[str] = None,
) -> dict:
    return {
        "address": address,
        "correlationId": correlation_id,
        "errorType": type(error).__name__,
        "message": str(error),
        "inputFile": input_file,
    }


class LogNotifier:
    """Writes the notification to the error log only."""

    def __init__(self, address: str):
        self.address = address

    def notify(self, error: BaseException, correlation_id: str, input_file: Optional[str] = None) -> None:
        logger.error(f"[{correlation_id}] Error notification for {self.address}: "
                     f"{type(error).__name__}: {error} (file: {input_file})")


class RedisNotifier:
    """Publishes a JSON notification on a Redis pub/sub channel."""

    def __init__(self, client: redis_lib.Redis, channel: str, address: str):
        self.client = client
        self.channel = channel
        self.address = address

    def notify(self, error: BaseException, correlation_id: str, input_file: Optional[str] = None) -> None:
        payload = build_payload(self.address, error, correlation_id, input_file)
        try:
            receivers = self.client.publish(self.channel, json.dumps(payload))
        except redis_lib.RedisError as e:
            logger.error(f"[{correlation_id}] Failed to publish error notification: {e}")
            return
        logger.info(f"[{correlation_id}] Error notification published to {self.channel} ({receivers} receivers)")
