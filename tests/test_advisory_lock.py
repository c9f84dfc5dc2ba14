"""Tests for judging_node.db.advisory_lock.

The PostgreSQL engine is mocked so no real database is needed.
"""
from __future__ import annotations

import unittest
from unittest.mock import MagicMock

from sqlmodel import create_engine

from judging_node.db.advisory_lock import advisory_lock


def _make_pg_engine(acquired: bool):
    engine = MagicMock()
    engine.dialect.name = "postgresql"
    conn = MagicMock()
    conn.execute.return_value.scalar.return_value = acquired
    engine.connect.return_value.__enter__.return_value = conn
    engine.connect.return_value.__exit__.return_value = False
    return engine, conn


class TestAdvisoryLock(unittest.TestCase):
    def test_acquired_lock_is_released(self):
        engine, conn = _make_pg_engine(acquired=True)

        with advisory_lock(engine, 724001) as acquired:
            self.assertTrue(acquired)
            self.assertEqual(conn.execute.call_count, 1)

        self.assertEqual(conn.execute.call_count, 2)
        unlock_sql = str(conn.execute.call_args_list[1].args[0])
        self.assertIn("pg_advisory_unlock", unlock_sql)
        self.assertEqual(conn.execute.call_args_list[1].args[1], {"key": 724001})
        conn.commit.assert_called_once()

    def test_lock_held_elsewhere(self):
        engine, conn = _make_pg_engine(acquired=False)

        with advisory_lock(engine, 5) as acquired:
            self.assertFalse(acquired)

        self.assertEqual(conn.execute.call_count, 1)
        self.assertIn("pg_try_advisory_lock", str(conn.execute.call_args.args[0]))
        conn.commit.assert_not_called()

    def test_released_when_block_raises(self):
        engine, conn = _make_pg_engine(acquired=True)

        with self.assertRaises(RuntimeError):
            with advisory_lock(engine, 5):
                raise RuntimeError("boom")

        self.assertEqual(conn.execute.call_count, 2)

    def test_non_postgres_engine_runs_unguarded(self):
        engine = create_engine("sqlite:///:memory:")
        with advisory_lock(engine, 5) as acquired:
            self.assertTrue(acquired)


if __name__ == "__main__":
    unittest.main()
