"""Migration environment for the judging schema.

Covers the four judging tables: `judges`, `judge_assigned_items` (the
judge → item index), `work_items` (the source of truth for assignment) and
`assignment_runs` (the bulk run ledger). The URL always comes from the
`POSTGRES_*` environment, never from alembic.ini.
"""
from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

from judging_node.db.session import database_url
from judging_node.db.tables import AssignmentRunRow, JudgeAssignedItemRow, JudgeRow, WorkItemRow

JUDGING_TABLES = frozenset(
    row.__tablename__ for row in (JudgeRow, JudgeAssignedItemRow, WorkItemRow, AssignmentRunRow)
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    # autogenerate only diffs judging tables; other tables in the database are left alone
    if type_ == "table":
        return name in JUDGING_TABLES
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the judging schema DDL as SQL instead of executing it."""
    _configure(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = database_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
