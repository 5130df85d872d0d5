from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

"""Per-batch transaction scope.

psycopg2 opens a transaction implicitly on the first statement when
autocommit is off, so entering the scope only hands out a cursor; leaving it
decides between COMMIT and ROLLBACK.
"""

logger = logging.getLogger(__name__)


@contextmanager
def transaction(connection: Any) -> Iterator[Any]:
    """Yield a cursor; commit on normal exit, roll back and re-raise otherwise.

    A failing ROLLBACK is logged but does not mask the original error.
    """
    cur = connection.cursor()
    try:
        yield cur
        connection.commit()
    except Exception:
        try:
            connection.rollback()
        except Exception as rollback_e:
            logger.error("rollback failed: %s", rollback_e)
        raise
    finally:
        cur.close()
