from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy import text
from sqlmodel import Session, SQLModel

from judging_node.config.runtime import RuntimeSettings
from judging_node.db.session import engine

import judging_node.db.tables  # noqa: F401  (registers every table on SQLModel.metadata)


def tables_to_reset() -> list[str]:
    return [
        "judge_assigned_items",
        "assignment_runs",
        "work_items",
        "judges",
        "alembic_version",
    ]


def load_seed() -> dict[str, list[dict[str, Any]]]:
    """Read optional seed data (judges + work items) for local setups."""
    path = os.getenv("JUDGING_SEED_PATH")
    if not path:
        return {"judges": [], "work_items": []}

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("JUDGING_SEED_PATH must point to a JSON object with 'judges' and 'work_items'")
    return {
        "judges": list(payload.get("judges") or []),
        "work_items": list(payload.get("work_items") or []),
    }


def _parse_ts(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def apply_seed(gateway, seed: dict[str, list[dict[str, Any]]]) -> tuple[int, int]:
    for judge in seed["judges"]:
        gateway.add_judge(judge["id"], created_at=_parse_ts(judge.get("created_at")))
    for item in seed["work_items"]:
        gateway.add_work_item(
            item["id"],
            team_name=item.get("team_name", ""),
            submitted_at=_parse_ts(item.get("submitted_at")),
            assigned_judge=item.get("assigned_judge"),
        )
    return len(seed["judges"]), len(seed["work_items"])


# ---------------------------------------------------------------------------
# Alembic migrations directory resolution
# ---------------------------------------------------------------------------

def _find_alembic_dir() -> Path | None:
    """Locate the Alembic migrations directory.

    Checks ``ALEMBIC_DIR`` first, then the repo-root ``alembic/`` next to the
    package. Returns ``None`` when neither exists; callers fall back to
    ``SQLModel.metadata.create_all()``.
    """
    def _is_valid(p: Path) -> bool:
        return p.is_dir() and (p / "env.py").exists() and (p / "versions").is_dir()

    env_dir = os.getenv("ALEMBIC_DIR")
    if env_dir and _is_valid(Path(env_dir)):
        return Path(env_dir)

    repo_dir = Path(__file__).resolve().parent.parent.parent / "alembic"
    if _is_valid(repo_dir):
        return repo_dir

    return None


def _run_alembic_upgrade(alembic_dir: Path | None = None) -> None:
    if alembic_dir is None:
        alembic_dir = _find_alembic_dir()
    if alembic_dir is None:
        raise FileNotFoundError(
            "Alembic migrations directory not found. "
            "Set ALEMBIC_DIR or ensure the alembic/ directory is alongside the package."
        )

    from alembic.config import Config
    from alembic import command

    # ALTER TABLE must not block forever behind a running assignment
    with engine.connect() as conn:
        conn.execute(text("SET lock_timeout = '30s'"))
        conn.commit()

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(alembic_dir))
    alembic_cfg.set_main_option("sqlalchemy.url", str(engine.url))
    command.upgrade(alembic_cfg, "head")


def migrate() -> None:
    """Run Alembic migrations and load seed data. Never drops data."""
    alembic_dir = _find_alembic_dir()
    if alembic_dir is not None:
        print(f"➡️  Running Alembic migrations from {alembic_dir} ...")
        try:
            _run_alembic_upgrade(alembic_dir)
        except Exception as exc:
            print(f"⚠️  Alembic migration failed ({exc}), falling back to create_all...")
            SQLModel.metadata.create_all(engine)
    else:
        print("➡️  No Alembic migrations directory found, using SQLModel create_all...")
        SQLModel.metadata.create_all(engine)

    seed = load_seed()
    if seed["judges"] or seed["work_items"]:
        from judging_node.db.gateway import DBAssignmentGateway

        settings = RuntimeSettings.from_env()
        with Session(engine) as session:
            gateway = DBAssignmentGateway(
                session,
                item_id_prefix=settings.work_item_id_prefix,
                item_id_width=settings.work_item_id_width,
            )
            judges, items = apply_seed(gateway, seed)
        print(f"➡️  Seeded {judges} judge(s) and {items} work item(s)")

    print("✅ Database migration complete.")


def reset_db() -> None:
    """Drop all tables and recreate from scratch. Destroys all data."""
    print("⚠️  Dropping all tables...")
    with engine.begin() as conn:
        for table in tables_to_reset():
            conn.execute(text(f"DROP TABLE IF EXISTS {table} CASCADE"))

    migrate()
    print("✅ Database reset complete.")


def auto_migrate() -> None:
    """Create the schema on first boot, otherwise apply pending migrations."""
    from sqlalchemy import inspect as sa_inspect

    inspector = sa_inspect(engine)
    if not inspector.has_table("judges"):
        migrate()
    elif _find_alembic_dir() is not None:
        _run_alembic_upgrade()


if __name__ == "__main__":
    import sys

    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(line_buffering=True)

    if "--reset" in sys.argv:
        reset_db()
    else:
        migrate()

    sys.exit(0)
