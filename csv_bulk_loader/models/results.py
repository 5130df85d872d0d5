from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import UTC, datetime

"""Result models shared by the connection manager, loader and orchestrator.

Every top-level operation answers with one of these frozen objects instead of
raising for expected failures.
"""

__all__ = [
    "ConnectionStatus",
    "ExecutionResult",
    "BatchMetrics",
    "BatchStatsAccumulator",
    "LoadReport",
]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class ConnectionStatus:
    """Outcome of a single connectivity probe."""
    is_connected: bool
    message: str
    tested_at: datetime = field(default_factory=_utcnow)
    error: BaseException | None = None


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of a read/load stage.

    records_processed only ever counts committed work.
    """
    success: bool
    message: str = ""
    records_processed: int = 0
    error: BaseException | None = None

    @classmethod
    def ok(cls, message: str, records_processed: int = 0) -> ExecutionResult:
        return cls(success=True, message=message, records_processed=records_processed)

    @classmethod
    def failed(
        cls, message: str, records_processed: int = 0, error: BaseException | None = None
    ) -> ExecutionResult:
        return cls(success=False, message=message, records_processed=records_processed, error=error)


@dataclass(frozen=True)
class BatchMetrics:
    """Timing data for one attempted batch (committed or rolled back)."""
    batch_number: int  # 1-based
    start_position: int  # 1-based record position of the first row in the batch
    batch_size: int
    committed: bool
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float  # time.time()


class BatchStatsAccumulator:
    """Collects BatchMetrics and summarizes their timing."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add(self, metrics: BatchMetrics) -> None:
        self.batch_times.append(metrics.elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_batches, avg_batch_seconds, p95_batch_seconds)."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 20-quantiles: index 18 is the 95th percentile cut point
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method="inclusive"
            )[18]

        return (total_batches, avg_batch_seconds, p95_batch_seconds)


@dataclass(frozen=True)
class LoadReport:
    """Aggregated outcome of one orchestrated run, rendered as the SUMMARY line."""
    result: ExecutionResult
    stage: str  # last stage reached: connection / read / load / done
    records_read: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    total_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.result.success

    @property
    def throughput_rows_per_sec(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.result.records_processed / self.elapsed_seconds
