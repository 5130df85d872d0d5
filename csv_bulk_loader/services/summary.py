from __future__ import annotations

from ..models.results import LoadReport

"""SUMMARY line rendering.

Format:
SUMMARY status={success|failed} stage={stage} rows={processed}/{read}
batches={n} elapsed_sec={elapsed} throughput_rps={throughput} avg_batch_sec={avg}
p95_batch_sec={p95}
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(report: LoadReport) -> str:
    """Render the SUMMARY line for a finished run.

    >>> from datetime import datetime, timezone
    >>> from csv_bulk_loader.models.results import ExecutionResult
    >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> report = LoadReport(
    ...     result=ExecutionResult.ok("done", 2500), stage="done", records_read=2500,
    ...     start_time=t, end_time=t, elapsed_seconds=2.0, total_batches=3,
    ... )
    >>> render_summary_line(report)  # doctest: +ELLIPSIS
    'SUMMARY status=success stage=done rows=2500/2500 batches=3 elapsed_sec=2 throughput_rps=1250 ...'
    """
    status = "success" if report.success else "failed"
    return (
        f"SUMMARY status={status} "
        f"stage={report.stage} "
        f"rows={report.result.records_processed}/{report.records_read} "
        f"batches={report.total_batches} "
        f"elapsed_sec={_format_number(report.elapsed_seconds)} "
        f"throughput_rps={_format_number(report.throughput_rows_per_sec)} "
        f"avg_batch_sec={_format_number(report.avg_batch_seconds)} "
        f"p95_batch_sec={_format_number(report.p95_batch_seconds)}"
    )
