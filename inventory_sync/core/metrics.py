"""Run metrics: per-batch throughput counters and per-failure error counts.

Emitters must never raise. A metrics failure is logged and processing
carries on.
"""

import logging
from typing import Protocol

import redis as redis_lib

from inventory_sync.core.models import FileResult

logger = logging.getLogger(__name__)

METRICS_NAMESPACE = "ValleyRidge/InventorySync"


class MetricsEmitter(Protocol):
    def emit_batch(self, correlation_id: str, results: list[FileResult], processing_time_ms: int) -> None: ...

    def emit_error(self, correlation_id: str, error: BaseException) -> None: ...


def batch_metrics(results: list[FileResult], processing_time_ms: int) -> dict[str, int]:
    """FilesProcessed, TotalRecordsProcessed, DeltaRecordsGenerated and ProcessingTime (ms)."""
    return {
        "FilesProcessed": len(results),
        "TotalRecordsProcessed": sum(r.total_records for r in results),
        "DeltaRecordsGenerated": sum(r.delta_records for r in results),
        "ProcessingTime": processing_time_ms,
    }


class LogMetrics:
    """Writes metrics to the application log."""

    def __init__(self, namespace: str = METRICS_NAMESPACE):
        self.namespace = namespace

    def emit_batch(self, correlation_id: str, results: list[FileResult], processing_time_ms: int) -> None:
        values = batch_metrics(results, processing_time_ms)
        rendered = ", ".join(f"{name}={value}" for name, value in values.items())
        logger.info(f"[{correlation_id}] Metrics {self.namespace}: {rendered}")

    def emit_error(self, correlation_id: str, error: BaseException) -> None:
        logger.info(f"[{correlation_id}] Metrics {self.namespace}: Errors=1 (ErrorType={type(error).__name__})")


class RedisMetrics:
    """Accumulates metrics in Redis hashes.

    Keys under ``prefix``:
    - ``<prefix>:counters``: running totals per metric name
    - ``<prefix>:errors``: failure counts per error type
    - ``<prefix>:last_run``: values from the most recent batch
    """

    def __init__(self, client: redis_lib.Redis, prefix: str):
        self.client = client
        self.prefix = prefix

    def emit_batch(self, correlation_id: str, results: list[FileResult], processing_time_ms: int) -> None:
        values = batch_metrics(results, processing_time_ms)
        try:
            pipe = self.client.pipeline(transaction=False)
            for name, value in values.items():
                pipe.hincrby(f"{self.prefix}:counters", name, value)
            pipe.hset(f"{self.prefix}:last_run", mapping={**values, "correlationId": correlation_id})
            pipe.execute()
        except redis_lib.RedisError as e:
            logger.error(f"[{correlation_id}] Error sending metrics: {e}")
            return
        logger.info(f"[{correlation_id}] Metrics recorded under {self.prefix}")

    def emit_error(self, correlation_id: str, error: BaseException) -> None:
        try:
            pipe = self.client.pipeline(transaction=False)
            pipe.hincrby(f"{self.prefix}:counters", "Errors", 1)
            pipe.hincrby(f"{self.prefix}:errors", type(error).__name__, 1)
            pipe.execute()
        except redis_lib.RedisError as e:
            logger.error(f"[{correlation_id}] Error sending error metrics: {e}")
