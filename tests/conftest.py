# Shared pytest fixtures: temp workdir, config files and an in-memory
# stand-in for psycopg2 connections.
from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from csv_bulk_loader.logging.init import reset_logging
from csv_bulk_loader.models.config_models import (
    ApplicationConfig,
    BatchConfig,
    ConnectionConfig,
    LoaderConfig,
)
from csv_bulk_loader.models.record import Record

TEST_DSN = "host=db.test dbname=appdb user=appuser"


class FakeIntegrityError(Exception):
    """Stands in for psycopg2.IntegrityError in constraint violation scenarios."""


class FakeCursor:
    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self.closed = False
        self._last_sql: str | None = None

    def execute(self, sql: str, params: Any = None) -> None:
        db = self.connection.database
        self._last_sql = sql
        if sql.lstrip().upper().startswith("INSERT"):
            db.insert_calls += 1
            if db.fail_at_insert is not None and db.insert_calls == db.fail_at_insert:
                raise FakeIntegrityError(f"duplicate key value (insert #{db.insert_calls})")
            self.connection.pending.append(params)
        else:
            if db.probe_error is not None:
                raise db.probe_error
        self.connection.statements.append((sql, params))

    def fetchone(self) -> tuple[Any, ...] | None:
        if self._last_sql and self._last_sql.strip().upper().startswith("SELECT"):
            return self.connection.database.probe_result
        return None

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class FakeConnection:
    def __init__(self, database: FakeDatabase, dsn: str, kwargs: dict[str, Any]) -> None:
        self.database = database
        self.dsn = dsn
        self.kwargs = kwargs
        self.autocommit = True
        self.closed = 0
        self.close_calls = 0
        self.statements: list[tuple[str, Any]] = []
        self.pending: list[Any] = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.commits += 1
        self.database.committed_batches.append(list(self.pending))
        self.pending = []

    def rollback(self) -> None:
        self.rollbacks += 1
        self.database.rolled_back_batches.append(list(self.pending))
        self.pending = []

    def close(self) -> None:
        self.close_calls += 1
        self.closed = 1


class FakeDatabase:
    """Connection factory with the psycopg2.connect call signature."""

    def __init__(self) -> None:
        self.connections: list[FakeConnection] = []
        self.committed_batches: list[list[Any]] = []
        self.rolled_back_batches: list[list[Any]] = []
        self.insert_calls = 0
        self.fail_at_insert: int | None = None
        self.connect_error: Exception | None = None
        self.probe_error: Exception | None = None
        self.probe_result: tuple[Any, ...] | None = (1,)

    def connect(self, dsn: str, **kwargs: Any) -> FakeConnection:
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeConnection(self, dsn, kwargs)
        self.connections.append(conn)
        return conn

    @property
    def committed_rows(self) -> int:
        return sum(len(b) for b in self.committed_batches)


def make_records(count: int, width: int = 5) -> list[Record]:
    return [
        Record(row_number=i, values=tuple(f"r{i}c{c}" for c in range(1, width + 1)))
        for i in range(1, count + 1)
    ]


def write_csv(path: Path, rows: int, header: str = "Column1,Column2,Column3,Column4,Column5") -> Path:
    lines = [header]
    lines.extend(f"a{i},b{i},c{i},d{i},e{i}" for i in range(1, rows + 1))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _no_dsn_env(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("PGDSN", raising=False)
    monkeypatch.delenv("BULK_LOAD_ENV", raising=False)


@pytest.fixture()
def temp_workdir(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "config").mkdir()
    (tmp_path / "data").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def sample_config_yaml() -> str:
    return f"""application:
  name: csv-bulk-loader
  version: "1.0.0"
  log_directory: log
  base_path: .
  csv_file_path: data/input.csv
database:
  connection_string: "{TEST_DSN}"
  schema: hsicustom
  table_name: ccbulk_dur_qtr_load
  command_timeout: 30
  connection_timeout: 15
bulk_load:
  batch_size: 1000
  max_retries: 3
  retry_delay_ms: 1000
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "bulk_load.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def connection_config() -> ConnectionConfig:
    return ConnectionConfig(connection_string=TEST_DSN)


@pytest.fixture()
def loader_config(temp_workdir: Path, connection_config: ConnectionConfig) -> LoaderConfig:
    return LoaderConfig(
        application=ApplicationConfig(
            log_directory=str(temp_workdir / "log"),
            base_path=str(temp_workdir),
            csv_file_path="data/input.csv",
        ),
        database=connection_config,
        bulk_load=BatchConfig(batch_size=1000),
    )


@pytest.fixture()
def record_factory():
    return make_records


@pytest.fixture()
def input_csv(temp_workdir: Path):
    """Writer for data/input.csv: input_csv(rows, header=...) -> Path"""
    def _write(rows: int, header: str = "Column1,Column2,Column3,Column4,Column5") -> Path:
        return write_csv(temp_workdir / "data" / "input.csv", rows, header)
    return _write
