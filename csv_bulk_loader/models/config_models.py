from __future__ import annotations

from dataclasses import dataclass

"""Config dataclasses for the CSV -> PostgreSQL bulk loader.

These are the typed, immutable views of config/bulk_load.yml produced by
csv_bulk_loader.config.loader. Defaults mirror the values used when a key is
omitted from the YAML file.
"""

__all__ = [
    "ApplicationConfig",
    "ConnectionConfig",
    "BatchConfig",
    "LoaderConfig",
]


@dataclass(frozen=True)
class ApplicationConfig:
    """Process level settings: identity, log location and input file."""
    name: str = "csv-bulk-loader"
    version: str = ""
    log_directory: str = "log"  # 相対パスは作業ディレクトリ基準
    base_path: str = "."  # csv_file_path の基準ディレクトリ
    csv_file_path: str = ""


@dataclass(frozen=True)
class ConnectionConfig:
    """Target database settings.

    ``connection_string`` is anything ``psycopg2.connect`` accepts as a DSN
    (libpq key/value string or ``postgresql://`` URL). DATABASE_URL / PGDSN
    environment variables take precedence over the YAML value.
    """
    connection_string: str = ""
    schema: str = "hsicustom"
    table_name: str = "ccbulk_dur_qtr_load"
    command_timeout: int = 30  # seconds, enforced as statement_timeout
    connection_timeout: int = 15  # seconds, passed as connect_timeout

    @property
    def qualified_table(self) -> str:
        return f"{self.schema}.{self.table_name}"


@dataclass(frozen=True)
class BatchConfig:
    """Bulk load tuning.

    max_retries / retry_delay_ms are accepted and carried but the loader never
    consults them: a failed batch aborts the load.
    """
    batch_size: int = 1000
    max_retries: int = 3
    retry_delay_ms: int = 1000

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be > 0, got {self.batch_size}")


@dataclass(frozen=True)
class LoaderConfig:
    """Root configuration object for one bulk load run."""
    application: ApplicationConfig
    database: ConnectionConfig
    bulk_load: BatchConfig
