from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from csv_bulk_loader.models import (
    RECORD_COLUMNS,
    BatchMetrics,
    BatchStatsAccumulator,
    ConnectionStatus,
    ExecutionResult,
    LoadReport,
    Record,
)


def _metrics(elapsed: float) -> BatchMetrics:
    return BatchMetrics(1, 1, 10, True, elapsed, 0.0, elapsed)


def test_execution_result_is_frozen():
    result = ExecutionResult.ok("done", 3)
    with pytest.raises(dataclasses.FrozenInstanceError):
        result.records_processed = 4  # type: ignore[misc]


def test_execution_result_failed_carries_error():
    err = RuntimeError("boom")
    result = ExecutionResult.failed("Batch starting at record 1 failed: boom", error=err)
    assert result.success is False
    assert result.records_processed == 0
    assert result.error is err


def test_connection_status_timestamp_is_utc():
    status = ConnectionStatus(is_connected=True, message="ok")
    assert status.tested_at.tzinfo is not None
    assert status.error is None


def test_record_params_keep_nulls():
    record = Record(row_number=1, values=("a", None, "c", None, None))
    assert record.as_params() == ("a", None, "c", None, None)
    assert len(record) == len(RECORD_COLUMNS)


def test_batch_stats_empty():
    assert BatchStatsAccumulator().get_stats() == (0, 0.0, 0.0)


def test_batch_stats_single():
    acc = BatchStatsAccumulator()
    acc.add(_metrics(0.4))
    assert acc.get_stats() == (1, 0.4, 0.4)


def test_batch_stats_many():
    acc = BatchStatsAccumulator()
    for elapsed in [0.1 * i for i in range(1, 21)]:
        acc.add(_metrics(elapsed))
    total, avg, p95 = acc.get_stats()
    assert total == 20
    assert avg == pytest.approx(1.05)
    assert 1.8 <= p95 <= 2.0


def test_load_report_throughput():
    t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    report = LoadReport(ExecutionResult.ok("ok", 1000), "done", 1000, t, t, 4.0)
    assert report.success is True
    assert report.throughput_rows_per_sec == 250.0
    zero = LoadReport(ExecutionResult.ok("ok", 10), "done", 10, t, t, 0.0)
    assert zero.throughput_rows_per_sec == 0.0
