"""Domain models for the CSV -> PostgreSQL bulk loader."""

from .config_models import ApplicationConfig, BatchConfig, ConnectionConfig, LoaderConfig
from .record import RECORD_COLUMNS, Record
from .results import (
    BatchMetrics,
    BatchStatsAccumulator,
    ConnectionStatus,
    ExecutionResult,
    LoadReport,
)

__all__ = [
    # Configuration models
    "ApplicationConfig",
    "BatchConfig",
    "ConnectionConfig",
    "LoaderConfig",
    # Processing models
    "RECORD_COLUMNS",
    "Record",
    # Results
    "BatchMetrics",
    "BatchStatsAccumulator",
    "ConnectionStatus",
    "ExecutionResult",
    "LoadReport",
]
