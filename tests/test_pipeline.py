"""Tests for the pipeline orchestrator: real local object store, mocked notifier."""

import csv
import io
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from inventory_sync.core.baseline_store import DEFAULT_BASELINE_KEY, ObjectStoreBaselineStore
from inventory_sync.core.config import PipelineConfig
from inventory_sync.core.errors import InvalidInputFormatError, MissingColumnsError, StorageError
from inventory_sync.core.metrics import LogMetrics
from inventory_sync.core.models import BatchStatus, RunStatus
from inventory_sync.core.pipeline import (
    PipelineOrchestrator,
    delta_output_key,
    format_timestamp,
    full_output_key,
    parse_event_records,
)
from tests.conftest import BLANK_SPACER_HEADERS, BLANK_SPACER_ROW, BUCKET, make_record, make_workbook_bytes

HEADERS = ["UPC", "Available Qty", "Discontinued"]
FIXED_NOW = datetime(2025, 3, 4, 5, 6, 7, 891000, tzinfo=timezone.utc)


def _event(*keys: str, bucket: str = BUCKET) -> dict:
    return {"Records": [{"s3": {"bucket": {"name": bucket}, "object": {"key": k}}} for k in keys]}


def _read_csv(store, key: str) -> list[dict]:
    return list(csv.DictReader(io.StringIO(store.get(BUCKET, key).decode("utf-8"))))


@pytest.fixture
def baseline_store(object_store):
    return ObjectStoreBaselineStore(object_store, BUCKET)


@pytest.fixture
def pipeline(pipeline_config, object_store, baseline_store, notifier):
    return PipelineOrchestrator(
        pipeline_config, object_store, baseline_store, notifier, clock=lambda: FIXED_NOW,
    )


def _upload(store, key: str, rows: list[list]) -> None:
    store.put(BUCKET, key, make_workbook_bytes(rows))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestOutputKeys:
    def test_format_timestamp(self):
        assert format_timestamp(FIXED_NOW) == "2025-03-04T05-06-07-891Z"

    def test_delta_output_key(self):
        assert delta_output_key("incoming/stock report.xlsx", FIXED_NOW) == \
            "processed/delta/stock report-delta-2025-03-04T05-06-07-891Z.csv"

    def test_full_output_key(self):
        assert full_output_key("incoming/stock.xlsx", FIXED_NOW) == \
            "processed/stock-2025-03-04T05-06-07-891Z.csv"


class TestParseEventRecords:
    def test_decodes_keys(self):
        assert parse_event_records(_event("incoming/stock+report%282%29.xlsx")) == [
            (BUCKET, "incoming/stock report(2).xlsx"),
        ]

    def test_malformed_event(self):
        with pytest.raises(InvalidInputFormatError):
            parse_event_records({"records": []})


# ---------------------------------------------------------------------------
# Single file
# ---------------------------------------------------------------------------

class TestProcessFile:
    def test_cold_start_everything_new(self, pipeline, object_store, baseline_store):
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"], ["X2", 0, "Yes"]])
        result = pipeline.process_file(BUCKET, "incoming/a.xlsx", "run_1")

        assert result.status == RunStatus.SUCCESS
        assert result.total_records == 2
        assert result.new_products == 2
        assert result.output_file == "processed/delta/a-delta-2025-03-04T05-06-07-891Z.csv"
        rows = _read_csv(object_store, result.output_file)
        assert [r["changeType"] for r in rows] == ["new", "new"]
        assert [r.identifier for r in baseline_store.load()] == ["X1", "X2"]

    def test_second_run_emits_only_changes(self, pipeline, object_store, baseline_store):
        baseline_store.save([make_record("X1", 5), make_record("X2", 0, True), make_record("X3", 4)])
        _upload(object_store, "incoming/b.xlsx", [HEADERS, ["X1", 7, "No"], ["X2", 0, "Yes"], ["X4", 1, "No"]])

        result = pipeline.process_file(BUCKET, "incoming/b.xlsx", "run_2")

        assert (result.new_products, result.updated_products, result.deleted_products) == (1, 1, 1)
        assert result.delta_records == 3
        rows = _read_csv(object_store, result.output_file)
        assert [(r["Variant Barcode"], r["changeType"]) for r in rows] == [
            ("X4", "new"), ("X1", "updated"), ("X3", "deleted"),
        ]
        assert rows[2]["Variant Inventory Qty"] == "0"
        # Baseline replaced wholesale by the current table
        assert [r.identifier for r in baseline_store.load()] == ["X1", "X2", "X4"]

    def test_latest_pointer_written(self, pipeline, object_store, pipeline_config):
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"]])
        result = pipeline.process_file(BUCKET, "incoming/a.xlsx", "run_1")
        assert object_store.get(BUCKET, pipeline_config.latest_delta_key) == \
            object_store.get(BUCKET, result.output_file)
        meta = object_store.get_metadata(BUCKET, result.output_file)
        assert meta["request-id"] == "run_1"
        assert meta["content-type"] == "text/csv"

    def test_blank_spacer_column(self, pipeline, object_store):
        _upload(object_store, "incoming/spacer.xlsx", [BLANK_SPACER_HEADERS, BLANK_SPACER_ROW])
        result = pipeline.process_file(BUCKET, "incoming/spacer.xlsx", "run_1")
        rows = _read_csv(object_store, result.output_file)
        assert rows[0]["Variant Barcode"] == "X00000014816"

    def test_unchanged_input_gives_header_only_delta(self, pipeline, object_store):
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"]])
        pipeline.process_file(BUCKET, "incoming/a.xlsx", "run_1")
        result = pipeline.process_file(BUCKET, "incoming/a.xlsx", "run_2")
        assert result.delta_records == 0
        assert _read_csv(object_store, result.output_file) == []

    def test_row_warnings_counted(self, pipeline, object_store):
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["", 5, "No"], ["X2", "lots", "No"]])
        result = pipeline.process_file(BUCKET, "incoming/a.xlsx", "run_1")
        assert result.total_records == 1
        assert result.warnings == 2

    def test_invalid_extension(self, pipeline):
        with pytest.raises(InvalidInputFormatError, match="Invalid file type"):
            pipeline.process_file(BUCKET, "incoming/a.csv", "run_1")

    def test_missing_columns_leaves_baseline_untouched(self, pipeline, object_store, baseline_store):
        baseline_store.save([make_record("X1")])
        _upload(object_store, "incoming/a.xlsx", [["UPC", "Available Qty"], ["X9", 1]])
        with pytest.raises(MissingColumnsError):
            pipeline.process_file(BUCKET, "incoming/a.xlsx", "run_1")
        assert [r.identifier for r in baseline_store.load()] == ["X1"]

    def test_latest_pointer_failure_is_swallowed(self, pipeline_config, object_store, notifier):
        baseline = MagicMock()
        baseline.load.return_value = []
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"]])

        real_put = object_store.put

        def flaky_put(bucket, key, body, **kwargs):
            if key == pipeline_config.latest_delta_key:
                raise StorageError("latest unavailable", key=key)
            return real_put(bucket, key, body, **kwargs)

        object_store.put = flaky_put
        orchestrator = PipelineOrchestrator(pipeline_config, object_store, baseline, notifier, clock=lambda: FIXED_NOW)
        result = orchestrator.process_file(BUCKET, "incoming/a.xlsx", "run_1")

        assert result.status == RunStatus.SUCCESS
        baseline.save.assert_called_once()

    def test_output_write_failure_skips_baseline_save(self, pipeline_config, object_store, notifier):
        baseline = MagicMock()
        baseline.load.return_value = []
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"]])

        real_put = object_store.put

        def failing_put(bucket, key, body, **kwargs):
            if key.startswith("processed/delta/"):
                raise StorageError("bucket full", key=key)
            return real_put(bucket, key, body, **kwargs)

        object_store.put = failing_put
        orchestrator = PipelineOrchestrator(pipeline_config, object_store, baseline, notifier, clock=lambda: FIXED_NOW)
        with pytest.raises(StorageError):
            orchestrator.process_file(BUCKET, "incoming/a.xlsx", "run_1")
        baseline.save.assert_not_called()

    def test_baseline_load_failure_is_fatal(self, pipeline_config, object_store, notifier):
        baseline = MagicMock()
        baseline.load.side_effect = StorageError("baseline unreadable")
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"]])
        orchestrator = PipelineOrchestrator(pipeline_config, object_store, baseline, notifier)
        with pytest.raises(StorageError):
            orchestrator.process_file(BUCKET, "incoming/a.xlsx", "run_1")
        baseline.save.assert_not_called()


class TestFullMode:
    def test_full_export_skips_baseline(self, object_store, notifier):
        config = PipelineConfig(bucket=BUCKET, incremental=False)
        baseline = MagicMock()
        orchestrator = PipelineOrchestrator(config, object_store, baseline, notifier, clock=lambda: FIXED_NOW)
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"], ["X2", 1, "yes"]])

        result = orchestrator.process_file(BUCKET, "incoming/a.xlsx", "run_1")

        assert result.output_file == "processed/a-2025-03-04T05-06-07-891Z.csv"
        rows = _read_csv(object_store, result.output_file)
        assert [r["Variant Barcode"] for r in rows] == ["X1", "X2"]
        assert "changeType" not in rows[0]
        assert object_store.exists(BUCKET, config.latest_full_key)
        baseline.load.assert_not_called()
        baseline.save.assert_not_called()


# ---------------------------------------------------------------------------
# Event batches
# ---------------------------------------------------------------------------

class TestHandleEvent:
    def test_all_files_succeed(self, pipeline, object_store):
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"]])
        result = pipeline.handle_event(_event("incoming/a.xlsx"), request_id="run_ok")
        assert result.status == BatchStatus.COMPLETED
        assert result.correlation_id == "run_ok"
        assert result.results[0].new_products == 1

    def test_failure_in_one_file_does_not_stop_others(self, pipeline, object_store, notifier):
        _upload(object_store, "incoming/bad.xlsx", [["UPC"], ["X1"]])
        _upload(object_store, "incoming/good.xlsx", [HEADERS, ["X1", 5, "No"]])

        result = pipeline.handle_event(_event("incoming/bad.xlsx", "incoming/good.xlsx"), request_id="run_mix")

        assert result.status == BatchStatus.PARTIAL_FAILURE
        bad, good = result.results
        assert bad.status == RunStatus.FAILED
        assert bad.error_type == "MissingColumnsError"
        assert "Available Qty" in bad.error
        assert good.status == RunStatus.SUCCESS
        assert len(result.failed) == 1
        notifier.notify.assert_called_once()
        error, correlation_id = notifier.notify.call_args[0]
        assert isinstance(error, MissingColumnsError)
        assert correlation_id == "run_mix"

    def test_missing_object_fails_file(self, pipeline, notifier):
        result = pipeline.handle_event(_event("incoming/ghost.xlsx"))
        assert result.status == BatchStatus.FAILED
        assert result.results[0].error_type == "ObjectNotFoundError"
        assert notifier.notify.called

    def test_generates_correlation_id(self, pipeline):
        result = pipeline.handle_event({"Records": []})
        assert result.correlation_id.startswith("run_")
        assert result.status == BatchStatus.COMPLETED

    def test_malformed_event_notifies_and_raises(self, pipeline, notifier):
        with pytest.raises(InvalidInputFormatError):
            pipeline.handle_event({"detail": "nothing"}, request_id="run_bad")
        error, correlation_id = notifier.notify.call_args[0]
        assert correlation_id == "run_bad"

    def test_result_serializes_camel_case(self, pipeline, object_store):
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"]])
        payload = pipeline.handle_event(_event("incoming/a.xlsx")).model_dump(by_alias=True, mode="json")
        assert payload["status"] == "completed"
        assert payload["results"][0]["inputFile"] == "incoming/a.xlsx"
        assert payload["results"][0]["newProducts"] == 1
        assert "processingTimeMs" in payload
        assert object_store.exists(BUCKET, DEFAULT_BASELINE_KEY)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class TestMetrics:
    @pytest.fixture
    def metrics(self):
        return MagicMock()

    @pytest.fixture
    def metered(self, pipeline_config, object_store, baseline_store, notifier, metrics):
        return PipelineOrchestrator(
            pipeline_config, object_store, baseline_store, notifier, metrics=metrics, clock=lambda: FIXED_NOW,
        )

    def test_batch_totals_emitted_once(self, metered, object_store, metrics):
        _upload(object_store, "incoming/a.xlsx", [HEADERS, ["X1", 5, "No"], ["X2", 1, "No"]])
        _upload(object_store, "incoming/b.xlsx", [HEADERS, ["X1", 6, "No"]])

        result = metered.handle_event(_event("incoming/a.xlsx", "incoming/b.xlsx"), request_id="run_m")

        metrics.emit_batch.assert_called_once()
        correlation_id, results, elapsed_ms = metrics.emit_batch.call_args[0]
        assert correlation_id == "run_m"
        assert results == result.results
        assert elapsed_ms == result.processing_time_ms
        metrics.emit_error.assert_not_called()

    def test_each_file_failure_emits_error(self, metered, object_store, metrics):
        _upload(object_store, "incoming/good.xlsx", [HEADERS, ["X1", 5, "No"]])

        metered.handle_event(_event("incoming/ghost.xlsx", "incoming/x.txt", "incoming/good.xlsx"), request_id="run_e")

        errors = [call.args for call in metrics.emit_error.call_args_list]
        assert [(cid, type(err).__name__) for cid, err in errors] == [
            ("run_e", "ObjectNotFoundError"),
            ("run_e", "InvalidInputFormatError"),
        ]
        metrics.emit_batch.assert_called_once()

    def test_malformed_event_emits_error_without_batch(self, metered, metrics):
        with pytest.raises(InvalidInputFormatError):
            metered.handle_event({"detail": "nothing"}, request_id="run_bad")
        metrics.emit_error.assert_called_once()
        metrics.emit_batch.assert_not_called()

    def test_defaults_to_log_metrics(self, pipeline):
        assert isinstance(pipeline.metrics, LogMetrics)
