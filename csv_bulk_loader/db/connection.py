from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

import psycopg2

from ..models.config_models import ConnectionConfig
from ..models.results import ConnectionStatus

"""Database connection management.

ConnectionManager separates the throwaway connectivity probe
(test_connection) from the long-lived connection that the loader reuses for
every batch (acquire_connection + set_shared). The shared slot is the only
state touched from more than one place, so every access to it holds _lock.
"""

__all__ = [
    "ConnectionManager",
    "is_open",
]

logger = logging.getLogger(__name__)

PROBE_SQL = "SELECT 1"


def is_open(connection: Any) -> bool:
    """psycopg2 reports ``closed == 0`` for a usable connection."""
    return connection is not None and getattr(connection, "closed", 1) == 0


def _close_quietly(connection: Any) -> None:
    try:
        connection.close()
    except Exception as e:  # pragma: no cover - driver specific
        logger.debug("ignored error while closing connection: %s", e)


class ConnectionManager:
    """Owns at most one shared psycopg2 connection.

    ``connect`` defaults to ``psycopg2.connect``; tests pass a factory that
    returns fake connections with the same surface (cursor/commit/rollback/
    close/closed).
    """

    def __init__(
        self,
        config: ConnectionConfig,
        connect: Callable[..., Any] = psycopg2.connect,
    ) -> None:
        self._config = config
        self._connect = connect
        self._shared: Any = None
        self._lock = threading.Lock()

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    def _has_connection_string(self) -> bool:
        return bool(self._config.connection_string and self._config.connection_string.strip())

    def _open(self) -> Any:
        options = None
        if self._config.command_timeout:
            options = f"-c statement_timeout={self._config.command_timeout * 1000}"
        kwargs: dict[str, Any] = {}
        if self._config.connection_timeout:
            kwargs["connect_timeout"] = self._config.connection_timeout
        if options:
            kwargs["options"] = options
        connection = self._connect(self._config.connection_string, **kwargs)
        # 明示トランザクション境界 (loader が COMMIT/ROLLBACK を実行)
        connection.autocommit = False
        return connection

    def test_connection(self) -> ConnectionStatus:
        """Probe the database with a short-lived connection.

        Never raises: configuration and connectivity failures come back as a
        not-connected status, with the exception attached when there is one.
        """
        logger.info("Testing database connection...")
        logger.debug("connection configured for schema=%s", self._config.schema)

        if not self._has_connection_string():
            message = "Database connection string is not configured"
            logger.error(message)
            return ConnectionStatus(is_connected=False, message=message)

        connection = None
        try:
            connection = self._open()
            with connection.cursor() as cur:
                cur.execute(PROBE_SQL)
                row = cur.fetchone()
            scalar = row[0] if row else None
            connected = scalar is not None
            message = "Database connection successful" if connected else "Database connection test failed"
            logger.info("Database connection test result: %s", message)
            return ConnectionStatus(is_connected=connected, message=message)
        except Exception as e:
            message = f"Database connection failed: {e}"
            logger.error("Database connection test failed: %s", e)
            return ConnectionStatus(is_connected=False, message=message, error=e)
        finally:
            if connection is not None:
                _close_quietly(connection)

    def acquire_connection(self) -> Any | None:
        """Open a new live connection, or return None (logged) when that is not possible."""
        if not self._has_connection_string():
            logger.warning("Database connection string is not configured")
            return None
        try:
            connection = self._open()
        except Exception as e:
            logger.error("Failed to create database connection: %s", e)
            return None
        logger.debug("New database connection opened successfully")
        return connection

    def set_shared(self, connection: Any | None) -> None:
        """Replace the shared connection, closing the previous one first."""
        with self._lock:
            previous = self._shared
            if previous is not None and previous is not connection:
                _close_quietly(previous)
            self._shared = connection

            if connection is not None:
                logger.info("Shared database connection established")
            else:
                logger.warning("Shared database connection cleared")

    def get_shared(self) -> Any | None:
        """Return the shared connection if it is open, else None."""
        with self._lock:
            if not is_open(self._shared):
                logger.warning("Shared database connection is not available or not open")
                return None
            return self._shared

    def close(self) -> None:
        """Release the shared connection. Safe to call repeatedly."""
        with self._lock:
            if self._shared is not None:
                _close_quietly(self._shared)
                self._shared = None
                logger.debug("Shared database connection released")

    def __enter__(self) -> ConnectionManager:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
