"""Pipeline Orchestrator: runs the inventory sync for each arriving workbook.

Per file: fetch → normalize → load baseline → delta → CSV → write outputs →
save baseline. Files in one event are processed one after another; a failure
in one file is recorded and notified without stopping the others.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any, Callable, Optional
from urllib.parse import unquote_plus

from inventory_sync.core.baseline_store import BaselineStore
from inventory_sync.core.config import PipelineConfig
from inventory_sync.core.csv_export import render_delta_csv, render_full_csv
from inventory_sync.core.delta_engine import compute_delta, summarize
from inventory_sync.core.errors import InvalidInputFormatError, StorageError
from inventory_sync.core.id_gen import RUN_ID_PREFIX, generate_id
from inventory_sync.core.models import BatchResult, BatchStatus, FileResult, RunStatus
from inventory_sync.core.normalizer import normalize_sheet
from inventory_sync.core.metrics import LogMetrics, MetricsEmitter
from inventory_sync.core.notifier import ErrorNotifier
from inventory_sync.core.object_store import LocalObjectStore
from inventory_sync.core.workbook_reader import is_valid_file, read_first_sheet

logger = logging.getLogger(__name__)


def format_timestamp(now: datetime) -> str:
    """UTC ISO-8601 timestamp with ':' and '.' replaced, safe for object keys."""
    iso = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    return iso.replace(":", "-").replace(".", "-")


def delta_output_key(input_key: str, now: datetime, prefix: str = "processed/delta/") -> str:
    return f"{prefix}{PurePosixPath(input_key).stem}-delta-{format_timestamp(now)}.csv"


def full_output_key(input_key: str, now: datetime, prefix: str = "processed/") -> str:
    return f"{prefix}{PurePosixPath(input_key).stem}-{format_timestamp(now)}.csv"


def parse_event_records(event: dict[str, Any]) -> list[tuple[str, str]]:
    """Extract (bucket, key) pairs from an object-created event envelope."""
    try:
        return [
            (record["s3"]["bucket"]["name"], unquote_plus(record["s3"]["object"]["key"]))
            for record in event["Records"]
        ]
    except (KeyError, TypeError) as e:
        raise InvalidInputFormatError(f"Malformed event notification: missing {e}") from e


class PipelineOrchestrator:
    def __init__(
        self,
        config: PipelineConfig,
        object_store: LocalObjectStore,
        baseline_store: BaselineStore,
        notifier: ErrorNotifier,
        metrics: Optional[MetricsEmitter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.object_store = object_store
        self.baseline_store = baseline_store
        self.notifier = notifier
        self.metrics = metrics or LogMetrics()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Single file
    # ------------------------------------------------------------------

    def process_file(self, bucket: str, key: str, request_id: str) -> FileResult:
        """Process one workbook. Raises on any file-level failure.

        Steps:
        1. Validate the key's extension
        2. Download and parse the first sheet
        3. Normalize rows into InventoryRecords
        4. Incremental: load baseline, compute delta, render delta CSV
           Full: render every record
        5. Write the timestamped output, then the "latest" pointer (best effort)
        6. Incremental: overwrite the baseline with this run's records
        """
        logger.info(f"[{request_id}] Processing file: {bucket}/{key}")
        if not is_valid_file(key):
            raise InvalidInputFormatError(f"Invalid file type: {key}. Expected .xls or .xlsx file")

        data = self.object_store.get(bucket, key)
        _, rows = read_first_sheet(data, request_id)
        table = normalize_sheet(rows, request_id)
        now = self.clock()

        if self.config.incremental:
            baseline = self.baseline_store.load(request_id)
            delta = compute_delta(table.records, baseline, request_id)
            body = render_delta_csv(delta, self.config)
            output_key = delta_output_key(key, now, self.config.delta_prefix)
            latest_key = self.config.latest_delta_key
        else:
            delta = []
            body = render_full_csv(table.records, self.config)
            output_key = full_output_key(key, now, self.config.full_prefix)
            latest_key = self.config.latest_full_key

        self._write_csv(output_key, body, request_id, now)
        self._update_latest(latest_key, body, request_id, now)

        if self.config.incremental:
            self.baseline_store.save(table.records, request_id)

        summary = summarize(delta)
        logger.info(f"[{request_id}] Successfully processed: {key} -> {output_key}")
        return FileResult(
            input_file=key,
            status=RunStatus.SUCCESS,
            output_file=output_key,
            total_records=len(table.records),
            delta_records=len(delta),
            new_products=summary.new,
            updated_products=summary.updated,
            deleted_products=summary.deleted,
            warnings=len(table.warnings),
        )

    def run_file(self, bucket: str, key: str, request_id: str) -> FileResult:
        """Process one workbook, turning any failure into a failed FileResult."""
        try:
            return self.process_file(bucket, key, request_id)
        except Exception as e:
            logger.error(f"[{request_id}] Failed to process {bucket}/{key}: {e}", exc_info=True)
            self.notifier.notify(e, request_id, input_file=key)
            self.metrics.emit_error(request_id, e)
            return FileResult(
                input_file=key,
                status=RunStatus.FAILED,
                error=str(e),
                error_type=type(e).__name__,
            )

    # ------------------------------------------------------------------
    # Event batch
    # ------------------------------------------------------------------

    def handle_event(self, event: dict[str, Any], request_id: Optional[str] = None) -> BatchResult:
        """Process every file named in an event notification, in order.

        Malformed envelopes are notified and re-raised; per-file failures are
        reported in the returned BatchResult.
        """
        request_id = request_id or generate_id(RUN_ID_PREFIX)
        started = time.monotonic()
        logger.info(f"[{request_id}] Starting inventory processing")

        try:
            targets = parse_event_records(event)
        except InvalidInputFormatError as e:
            logger.error(f"[{request_id}] Error in event handler: {e}")
            self.notifier.notify(e, request_id)
            self.metrics.emit_error(request_id, e)
            raise

        results = [self.run_file(bucket, key, request_id) for bucket, key in targets]
        elapsed_ms = int((time.monotonic() - started) * 1000)

        failed = sum(1 for r in results if r.status == RunStatus.FAILED)
        if failed == 0:
            status = BatchStatus.COMPLETED
        elif failed < len(results):
            status = BatchStatus.PARTIAL_FAILURE
        else:
            status = BatchStatus.FAILED

        logger.info(
            f"[{request_id}] Processing finished in {elapsed_ms}ms: "
            f"{len(results) - failed} succeeded, {failed} failed"
        )
        self.metrics.emit_batch(request_id, results, elapsed_ms)
        return BatchResult(
            correlation_id=request_id,
            status=status,
            results=results,
            processing_time_ms=elapsed_ms,
        )

    # ------------------------------------------------------------------
    # Output writers
    # ------------------------------------------------------------------

    def _metadata(self, request_id: str, now: datetime) -> dict[str, str]:
        return {
            "processed-by": self.config.processed_by,
            "processed-at": now.isoformat(),
            "request-id": request_id,
        }

    def _write_csv(self, key: str, body: str, request_id: str, now: datetime) -> None:
        logger.info(f"[{request_id}] Uploading to {self.config.bucket}/{key}")
        self.object_store.put(
            self.config.bucket, key, body.encode("utf-8"),
            content_type="text/csv",
            metadata=self._metadata(request_id, now),
        )

    def _update_latest(self, key: str, body: str, request_id: str, now: datetime) -> None:
        """Overwrite the "latest" pointer file. Failures are logged, not raised."""
        try:
            self._write_csv(key, body, request_id, now)
        except StorageError as e:
            logger.error(f"[{request_id}] Error updating latest file {key}: {e}")
