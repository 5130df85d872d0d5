from __future__ import annotations

import math
import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.results import BatchMetrics

"""Batch progress display with tqdm (TTY only).

A single bar counts batches. In non-TTY environments (CI, redirected output)
the bar is disabled so log files are not filled with control sequences.
"""

__all__ = [
    "BatchProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class BatchProgress:
    """Progress bar over the batches of one load.

    Instances are callables so they can be passed (or chained) as the
    loader's metrics callback.
    """

    def __init__(self, total_records: int, batch_size: int, *, description: str = "Loading batches") -> None:
        self.total_batches = math.ceil(total_records / batch_size) if batch_size > 0 else 0
        self.description = description
        self.completed = 0
        self.enabled = is_tty_enabled() and self.total_batches > 0
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=self.total_batches,
                desc=description,
                unit="batch",
                leave=True,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def __call__(self, metrics: BatchMetrics) -> None:
        self.completed += 1
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(start=metrics.start_position, ok=metrics.committed)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> BatchProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
