from __future__ import annotations

import ast
import json
import os
import tempfile
import unittest
from pathlib import Path

from judging_node.db.init_db import _find_alembic_dir, apply_seed, load_seed, tables_to_reset
from judging_node.memory.gateway import InMemoryAssignmentGateway


class TestLoadSeed(unittest.TestCase):
    def test_empty_seed_when_env_missing(self):
        previous = os.environ.pop("JUDGING_SEED_PATH", None)
        try:
            self.assertEqual(load_seed(), {"judges": [], "work_items": []})
        finally:
            if previous is not None:
                os.environ["JUDGING_SEED_PATH"] = previous

    def test_reads_json_file_from_env(self):
        seed = {
            "judges": [{"id": "Alice@Example.com", "created_at": "2024-03-01T09:00:00Z"}],
            "work_items": [
                {"id": "PCCOEIGC001", "team_name": "Alpha", "submitted_at": "2024-03-02T10:00:00Z"},
                {"id": "igc2", "team_name": "Bravo", "assigned_judge": "ALICE@example.com"},
            ],
        }

        with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False) as handle:
            handle.write(json.dumps(seed))
            path = handle.name

        previous = os.environ.get("JUDGING_SEED_PATH")
        os.environ["JUDGING_SEED_PATH"] = path

        try:
            loaded = load_seed()
            self.assertEqual(loaded, seed)

            gateway = InMemoryAssignmentGateway()
            self.assertEqual(apply_seed(gateway, loaded), (1, 2))
            self.assertEqual(
                [(j.judge_id, j.current_load) for j in gateway.list_judges()],
                [("alice@example.com", 1)],
            )
            self.assertEqual([i.id for i in gateway.list_unassigned_work_items()], ["IGC001"])
        finally:
            if previous is None:
                os.environ.pop("JUDGING_SEED_PATH", None)
            else:
                os.environ["JUDGING_SEED_PATH"] = previous
            os.unlink(path)

    def test_rejects_non_object_seed(self):
        with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False) as handle:
            handle.write("[]")
            path = handle.name

        previous = os.environ.get("JUDGING_SEED_PATH")
        os.environ["JUDGING_SEED_PATH"] = path
        try:
            with self.assertRaises(ValueError):
                load_seed()
        finally:
            if previous is None:
                os.environ.pop("JUDGING_SEED_PATH", None)
            else:
                os.environ["JUDGING_SEED_PATH"] = previous
            os.unlink(path)


class TestSchemaManagement(unittest.TestCase):
    def test_reset_covers_every_table(self):
        self.assertEqual(
            set(tables_to_reset()),
            {"judges", "judge_assigned_items", "work_items", "assignment_runs", "alembic_version"},
        )

    def test_alembic_directory_found_next_to_package(self):
        previous = os.environ.pop("ALEMBIC_DIR", None)
        try:
            alembic_dir = _find_alembic_dir()
        finally:
            if previous is not None:
                os.environ["ALEMBIC_DIR"] = previous
        self.assertIsNotNone(alembic_dir)
        self.assertTrue((Path(alembic_dir) / "versions" / "001_initial_schema.py").exists())

    def test_migration_env_describes_the_judging_tables(self):
        env_source = (Path(_find_alembic_dir()) / "env.py").read_text()
        docstring = ast.get_docstring(ast.parse(env_source))
        for table in set(tables_to_reset()) - {"alembic_version"}:
            self.assertIn(f"`{table}`", docstring)


if __name__ == "__main__":
    unittest.main()
