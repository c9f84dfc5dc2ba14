"""PostgreSQL advisory lock used to keep assignment writers single-flight.

Advisory locks belong to a connection, so the lock is taken on a dedicated
connection rather than the request session (which may hand its connection
back to the pool on commit).

Usage:
    with advisory_lock(engine, key) as acquired:
        if not acquired:
            ...  # someone else holds it
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


@contextmanager
def advisory_lock(engine: Engine, key: int) -> Iterator[bool]:
    """Try (non-blocking) to take the advisory lock `key` for the duration of the block.

    Engines other than PostgreSQL (e.g. SQLite in tests) have no advisory
    locks; the block then runs unguarded and `True` is yielded.
    """
    if engine.dialect.name != "postgresql":
        yield True
        return

    with engine.connect() as conn:
        acquired = bool(conn.execute(text("SELECT pg_try_advisory_lock(:key)"), {"key": key}).scalar())
        if not acquired:
            logger.info("advisory lock %d held by another session", key)
        try:
            yield acquired
        finally:
            if acquired:
                conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": key})
                conn.commit()
