from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from pathlib import Path

from ..csv.reader import read_csv_file
from ..db.batch_insert import BatchLoader, InvalidIdentifierError
from ..db.connection import ConnectionManager
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import ApplicationConfig, LoaderConfig
from ..models.record import Record
from ..models.results import BatchMetrics, BatchStatsAccumulator, ExecutionResult, LoadReport
from .progress import BatchProgress

"""Service orchestration: run_import().

Sequence: connection test -> acquire + share -> read CSV -> batch load.
A failed connection test skips reading and loading. Every failure after that
ends the run at the stage where it happened. The orchestrator only sequences
the stages and aggregates their results into a LoadReport.
"""

__all__ = [
    "EXIT_FAILURE",
    "EXIT_SUCCESS",
    "exit_code_for",
    "resolve_csv_path",
    "run_import",
]

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

STAGE_CONNECTION = "connection"
STAGE_READ = "read"
STAGE_LOAD = "load"
STAGE_DONE = "done"


def resolve_csv_path(application: ApplicationConfig) -> Path:
    return Path(application.base_path) / application.csv_file_path


def exit_code_for(report: LoadReport) -> int:
    return EXIT_SUCCESS if report.success else EXIT_FAILURE


class _RunContext:
    """Per-run bookkeeping shared by the stage helpers."""

    def __init__(self, csv_path: Path, error_log: ErrorLogBuffer) -> None:
        self.csv_path = csv_path
        self.error_log = error_log
        self.start_time = datetime.now(UTC)
        self.records_read = 0
        self.stats = BatchStatsAccumulator()
        self.failed_batch: BatchMetrics | None = None

    def record_error(self, stage: str, error_type: str, message: str, row: int = -1) -> None:
        self.error_log.append(
            ErrorRecord.create(
                file=self.csv_path.name,
                stage=stage,
                row=row,
                error_type=error_type,
                message=message,
            )
        )

    def on_batch(self, metrics: BatchMetrics) -> None:
        self.stats.add(metrics)
        if not metrics.committed:
            self.failed_batch = metrics

    def finish(self, result: ExecutionResult, stage: str) -> LoadReport:
        end_time = datetime.now(UTC)
        total_batches, avg_batch, p95_batch = self.stats.get_stats()
        return LoadReport(
            result=result,
            stage=stage,
            records_read=self.records_read,
            start_time=self.start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - self.start_time).total_seconds(),
            total_batches=total_batches,
            avg_batch_seconds=avg_batch,
            p95_batch_seconds=p95_batch,
        )


def _log_stage(name: str, started: float, ok: bool) -> None:
    elapsed = time.perf_counter() - started
    logger.info("stage=%s %s elapsed_sec=%.3f", name, "passed" if ok else "failed", elapsed)


def run_import(
    config: LoaderConfig,
    manager: ConnectionManager,
    *,
    error_log: ErrorLogBuffer | None = None,
) -> LoadReport:
    """Run one bulk load.

    Args:
        config: Loaded configuration
        manager: Connection manager; its shared connection is installed here
            and left in place for the caller to release
        error_log: Buffer for stage failures (default: the configured log directory)

    Returns:
        LoadReport; use exit_code_for() to map it to a process exit code
    """
    if error_log is None:
        error_log = ErrorLogBuffer(Path(config.application.log_directory))
    csv_path = resolve_csv_path(config.application)
    ctx = _RunContext(csv_path, error_log)
    try:
        return _run_stages(config, manager, ctx)
    finally:
        try:
            written = error_log.flush()
            if written is not None:
                logger.info("error log written: %s", written)
        except OSError as e:
            logger.warning("failed to write error log: %s", e)


def _run_stages(config: LoaderConfig, manager: ConnectionManager, ctx: _RunContext) -> LoadReport:
    # Stage 1: connection test + shared connection
    started = time.perf_counter()
    status = manager.test_connection()
    _log_stage("connection_test", started, status.is_connected)
    if not status.is_connected:
        logger.error("Database connection failed: %s", status.message)
        if status.error is not None:
            logger.error("Database connection error details: %r", status.error)
        logger.warning("Skipping CSV processing - database connection not available")
        ctx.record_error(STAGE_CONNECTION, "CONNECTION_TEST_ERROR", status.message)
        return ctx.finish(
            ExecutionResult.failed(status.message, error=status.error), STAGE_CONNECTION
        )

    started = time.perf_counter()
    shared = manager.acquire_connection()
    if shared is not None:
        manager.set_shared(shared)
    else:
        logger.error("Failed to establish shared database connection")
        ctx.record_error(
            STAGE_CONNECTION, "CONNECTION_ACQUIRE_ERROR", "Failed to establish shared connection"
        )
    _log_stage("connection_share", started, shared is not None)

    # Stage 2: read
    logger.info("CSV file path: %s", ctx.csv_path)
    started = time.perf_counter()
    read_result, records = _read_stage(ctx)
    _log_stage("read", started, read_result.success)
    if not read_result.success:
        return ctx.finish(read_result, STAGE_READ)
    if not records:
        return ctx.finish(read_result, STAGE_DONE)

    # Stage 3: load
    started = time.perf_counter()
    load_result = _load_stage(config, manager, ctx, records)
    _log_stage("load", started, load_result.success)
    if not load_result.success:
        return ctx.finish(load_result, STAGE_LOAD)

    logger.info("Bulk load completed successfully. Records processed: %d", load_result.records_processed)
    return ctx.finish(load_result, STAGE_DONE)


def _read_stage(ctx: _RunContext) -> tuple[ExecutionResult, list[Record]]:
    try:
        records = read_csv_file(ctx.csv_path)
    except FileNotFoundError:
        message = f"CSV file not found: {ctx.csv_path}"
        logger.error(message)
        ctx.record_error(STAGE_READ, "FILE_NOT_FOUND", message)
        return ExecutionResult.failed(message), []
    except (OSError, ValueError) as e:
        # OSError: permission / device errors, ValueError: pandas ParserError
        message = f"CSV processing failed: {e}"
        logger.error("CSV file processing failed: %s", e)
        ctx.record_error(STAGE_READ, "FILE_READ_ERROR", str(e))
        return ExecutionResult.failed(message, error=e), []

    ctx.records_read = len(records)
    if not records:
        message = "CSV file is empty or contains no valid records"
        logger.warning(message)
        return ExecutionResult.ok(message), []

    logger.info("Read %d records from CSV file", len(records))
    return ExecutionResult.ok(f"Read {len(records)} records", records_processed=0), records


def _load_stage(
    config: LoaderConfig, manager: ConnectionManager, ctx: _RunContext, records: list[Record]
) -> ExecutionResult:
    with BatchProgress(len(records), config.bulk_load.batch_size) as progress:

        def on_batch(metrics: BatchMetrics) -> None:
            ctx.on_batch(metrics)
            progress(metrics)

        try:
            loader = BatchLoader(config.database, config.bulk_load, metrics_callback=on_batch)
        except InvalidIdentifierError as e:
            message = f"Invalid load target: {e}"
            logger.error(message)
            ctx.record_error(STAGE_LOAD, "INVALID_TARGET", str(e))
            return ExecutionResult.failed(message, error=e)

        result = loader.load_all(manager.get_shared(), records)

    if not result.success:
        row = ctx.failed_batch.start_position if ctx.failed_batch is not None else -1
        error_type = "DATABASE_INSERT_ERROR" if ctx.failed_batch is not None else "CONNECTION_UNAVAILABLE"
        logger.error("Bulk load failed: %s", result.message)
        if result.error is not None:
            logger.error("Bulk load error details: %r", result.error)
        ctx.record_error(STAGE_LOAD, error_type, result.message, row=row)
    return result
