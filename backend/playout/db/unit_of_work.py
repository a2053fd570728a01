"""
Transaction boundary for the playout engine.

Every request that touches the database runs inside exactly one
`unit_of_work()`: one psycopg2 connection, one transaction, one PlayoutStore.

- on success the transaction is committed
- on any exception it is rolled back and the exception re-raised
- psycopg2 errors are re-raised as ConflictOrInternalError
- the connection is always closed
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable, Generator
from typing import ContextManager

import psycopg2

from playout.config import get_db_connection
from playout.db.store import PlayoutStore
from playout.errors import ConflictOrInternalError
from playout.logging_config import get_logger

logger = get_logger(__name__)

# What services receive: a zero-argument callable opening a unit of work
UnitOfWorkFactory = Callable[[], ContextManager[PlayoutStore]]


@contextlib.contextmanager
def unit_of_work(
    connect: Callable[[], object] = get_db_connection,
) -> Generator[PlayoutStore, None, None]:
    """
    Usage:
        with unit_of_work() as store:
            screen = store.get_screen(screen_id)
            store.update_screen_position(...)
            # committed when the block exits normally
    """
    try:
        conn = connect()
    except psycopg2.Error as exc:
        logger.error("db_connect_failed", error=str(exc))
        raise ConflictOrInternalError("Database unavailable") from exc

    try:
        with conn.cursor() as cur:
            yield PlayoutStore(cur)
        conn.commit()
    except psycopg2.Error as exc:
        conn.rollback()
        logger.error("transaction_rolled_back", error=str(exc), pgcode=getattr(exc, "pgcode", None))
        raise ConflictOrInternalError() from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
