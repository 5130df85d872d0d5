from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from csv_bulk_loader.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from csv_bulk_loader.csv.reader import inspect_csv_file
from csv_bulk_loader.db.connection import ConnectionManager
from csv_bulk_loader.logging.init import add_file_handler, enable_debug, log_summary, setup_logging
from csv_bulk_loader.services.orchestrator import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    exit_code_for,
    resolve_csv_path,
    run_import,
)
from csv_bulk_loader.services.summary import render_summary_line

"""CLI entrypoint.

- Load .env (overrides the process environment) and the YAML config
- Configure console + file logging
- Run connection test -> share -> read -> load
- Map the outcome to the exit code contract: 0 success, 1 any failure
"""


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv. Failure only warns."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except OSError as e:  # pragma: no cover
        print(f"WARNING: failed to load .env via python-dotenv: {e}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="CSV -> PostgreSQL bulk loader")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Path to the YAML config file")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print CSV header & first rows then exit")
    p.add_argument("--test-connection", action="store_true", help="Only test database connectivity")
    return p.parse_args(argv)


def _inspect_data(cfg) -> int:
    csv_path = resolve_csv_path(cfg.application)
    try:
        preview = inspect_csv_file(csv_path)
    except FileNotFoundError:
        print(f"inspect: file not found: {csv_path}")
        return EXIT_FAILURE
    except (OSError, ValueError) as e:
        print(f"inspect: read_error: {e}")
        return EXIT_FAILURE
    print(f"FILE: {preview.path}")
    print(f"  header={preview.header}")
    for row in preview.rows:
        print(f"  row={row}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む ([] はテストからの明示的な空引数)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        enable_debug()
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FAILURE

    try:
        log_file = add_file_handler(Path(cfg.application.log_directory))
        logger.info(f"Logging configured. Log file location: {log_file}")
    except OSError as e:
        logger.warning(f"file logging disabled: {e}")

    version = f" v{cfg.application.version}" if cfg.application.version else ""
    logger.info(f"Application: {cfg.application.name}{version}")

    if args.inspect_data:
        return _inspect_data(cfg)

    try:
        with ConnectionManager(cfg.database) as manager:
            if args.test_connection:
                status = manager.test_connection()
                return EXIT_SUCCESS if status.is_connected else EXIT_FAILURE
            report = run_import(cfg, manager)
    except Exception as e:
        logger.error(f"unexpected error: {e}")
        logger.debug("unexpected error details", exc_info=True)
        return EXIT_FAILURE

    # render_summary_line() は "SUMMARY " 付きなので log_summary 用に外す
    log_summary(render_summary_line(report)[len("SUMMARY "):])
    if not report.success:
        logger.error(f"load failed at stage={report.stage}: {report.result.message}")

    code = exit_code_for(report)
    logger.info(f"Application completed with exit code: {code}")
    return code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
