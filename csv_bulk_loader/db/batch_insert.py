from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Iterator, Sequence
from typing import Any

from ..models.config_models import BatchConfig, ConnectionConfig
from ..models.record import RECORD_COLUMNS, Record
from ..models.results import BatchMetrics, ExecutionResult
from .transaction import transaction

"""Chunked transactional bulk insert.

Records are split into contiguous chunks of BatchConfig.batch_size. Each chunk
runs in its own transaction on the shared connection: every insert commits
together or the chunk is rolled back as a whole. The first failing chunk ends
the load; later chunks are never attempted.

One parameterized INSERT is executed per record so a failure can be tied to
the chunk it happened in. max_retries / retry_delay_ms are not used here.
"""

__all__ = [
    "BatchLoader",
    "CONNECTION_UNAVAILABLE_MESSAGE",
    "CREATED_COLUMN",
    "InvalidIdentifierError",
    "build_insert_sql",
    "chunked",
]

logger = logging.getLogger(__name__)

CREATED_COLUMN = "CREATED_DATE"
SERVER_NOW = "CURRENT_TIMESTAMP"
CONNECTION_UNAVAILABLE_MESSAGE = "Database connection is not available for bulk loading"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


class InvalidIdentifierError(ValueError):
    """Raised when a schema/table/column name is not a plain SQL identifier."""


def _identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise InvalidIdentifierError(f"invalid SQL identifier: {name!r}")
    return name


def build_insert_sql(schema: str, table: str, columns: Sequence[str]) -> str:
    """INSERT INTO schema.table (c1, ..., cN, CREATED_DATE) VALUES (%s, ..., %s, CURRENT_TIMESTAMP)

    Identifiers are validated, values are always bound as parameters.
    """
    if not columns:
        raise InvalidIdentifierError("at least one insert column is required")
    target = f"{_identifier(schema)}.{_identifier(table)}"
    cols_sql = ", ".join(_identifier(c) for c in columns)
    placeholders = ", ".join("%s" for _ in columns)
    return (
        f"INSERT INTO {target} ({cols_sql}, {CREATED_COLUMN}) "
        f"VALUES ({placeholders}, {SERVER_NOW})"
    )


def chunked(records: Sequence[Record], size: int) -> Iterator[tuple[int, Sequence[Record]]]:
    """Yield (start_position, chunk) with 1-based start positions, in order."""
    if size <= 0:
        raise ValueError(f"batch size must be > 0, got {size}")
    for offset in range(0, len(records), size):
        yield offset + 1, records[offset:offset + size]


class BatchLoader:
    """Loads records into ``schema.table`` one transaction per batch."""

    def __init__(
        self,
        connection_config: ConnectionConfig,
        batch_config: BatchConfig,
        columns: Sequence[str] = RECORD_COLUMNS,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self.connection_config = connection_config
        self.batch_config = batch_config
        self.columns = tuple(columns)
        self.metrics_callback = metrics_callback
        self.insert_sql = build_insert_sql(
            connection_config.schema, connection_config.table_name, self.columns
        )

    def load_all(self, connection: Any | None, records: Sequence[Record]) -> ExecutionResult:
        """Insert all records batch by batch, stopping at the first failed batch.

        Returns:
            Success with records_processed == len(records), or a failure whose
            records_processed counts only the batches committed before it.
        """
        if connection is None:
            logger.error(CONNECTION_UNAVAILABLE_MESSAGE)
            return ExecutionResult.failed(CONNECTION_UNAVAILABLE_MESSAGE)

        total_records = len(records)
        batch_size = self.batch_config.batch_size
        logger.info(
            "Starting bulk load of %d records into %s (batch_size=%d)",
            total_records,
            self.connection_config.qualified_table,
            batch_size,
        )

        processed = 0
        for batch_number, (start, chunk) in enumerate(chunked(records, batch_size), start=1):
            batch_result = self._run_batch(connection, chunk, start, batch_number)
            if not batch_result.success:
                return ExecutionResult.failed(
                    batch_result.message,
                    records_processed=processed,
                    error=batch_result.error,
                )
            processed += batch_result.records_processed
            logger.debug(
                "Processed batch %d: %d/%d records", batch_number, processed, total_records
            )

        message = f"Successfully bulk loaded {processed} records"
        logger.info("Bulk load completed successfully: %d records", processed)
        return ExecutionResult.ok(message, records_processed=processed)

    def load_batch(
        self, connection: Any, chunk: Sequence[Record], start_position: int = 1
    ) -> ExecutionResult:
        """Insert one chunk inside a single transaction.

        Commit → success with records_processed == len(chunk).
        Any insert error → rollback, failure with records_processed == 0.
        """
        try:
            with transaction(connection) as cur:
                for record in chunk:
                    cur.execute(self.insert_sql, record.as_params())
        except Exception as e:
            message = f"Batch starting at record {start_position} failed: {e}"
            logger.error(
                "Batch starting at record %d rolled back (%d records): %s",
                start_position,
                len(chunk),
                e,
            )
            return ExecutionResult.failed(message, error=e)
        return ExecutionResult.ok(
            f"Batch starting at record {start_position} committed", records_processed=len(chunk)
        )

    def _run_batch(
        self, connection: Any, chunk: Sequence[Record], start: int, batch_number: int
    ) -> ExecutionResult:
        start_time = time.time()
        result = self.load_batch(connection, chunk, start)
        end_time = time.time()
        if self.metrics_callback is not None:
            self.metrics_callback(
                BatchMetrics(
                    batch_number=batch_number,
                    start_position=start,
                    batch_size=len(chunk),
                    committed=result.success,
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )
        return result
