"""Alembic helpers used at startup and by the health check."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine

from app.core.config import settings

logger = logging.getLogger(__name__)

ALEMBIC_VERSION_TABLE = "alembic_version"
# pg_advisory_lock key shared by every API replica running migrations
MIGRATION_LOCK_ID = 4720193


@dataclass(frozen=True)
class MigrationStatus:
    current_heads: tuple[str, ...]
    head_revisions: tuple[str, ...]

    @property
    def is_up_to_date(self) -> bool:
        return set(self.current_heads) == set(self.head_revisions)


class MigrationError(RuntimeError):
    """Raised when automatic migrations fail to reach head."""


def alembic_config() -> Config:
    api_root = Path(__file__).resolve().parents[2]
    alembic_ini = api_root / "alembic.ini"
    if not alembic_ini.is_file():
        raise FileNotFoundError(f"Alembic config not found at {alembic_ini}")
    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(api_root / "alembic"))
    config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    return config


def _applied_heads(connection: Connection) -> tuple[str, ...]:
    if ALEMBIC_VERSION_TABLE not in inspect(connection).get_table_names():
        return ()
    return tuple(MigrationContext.configure(connection).get_current_heads() or ())


def get_migration_status(engine: Engine) -> MigrationStatus:
    script = ScriptDirectory.from_config(alembic_config())
    with engine.connect() as connection:
        current = _applied_heads(connection)
    return MigrationStatus(
        current_heads=current,
        head_revisions=tuple(script.get_heads() or ()),
    )


def ensure_migrations(engine: Engine, auto_migrate: bool) -> MigrationStatus:
    """
    Check the schema revision and optionally upgrade to head.

    Without auto_migrate the status is only reported; the caller decides
    whether an outdated schema is fatal.
    """
    status = get_migration_status(engine)
    if status.is_up_to_date:
        return status
    if not auto_migrate:
        logger.warning(
            f"Database schema behind head: current={status.current_heads} "
            f"head={status.head_revisions}"
        )
        return status

    logger.info(f"Upgrading database schema to {status.head_revisions}")
    _upgrade_to_head(engine)
    status = get_migration_status(engine)
    if not status.is_up_to_date:
        raise MigrationError("Database migrations did not reach head after auto-upgrade.")
    return status


def _upgrade_to_head(engine: Engine) -> None:
    config = alembic_config()

    if engine.dialect.name != "postgresql":
        command.upgrade(config, "head")
        return

    # Serialize concurrent replicas on one advisory lock.
    with engine.connect() as connection:
        connection.execute(text("SELECT pg_advisory_lock(:lock_id)"), {"lock_id": MIGRATION_LOCK_ID})
        connection.commit()
        try:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
            connection.commit()
        finally:
            connection.execute(
                text("SELECT pg_advisory_unlock(:lock_id)"), {"lock_id": MIGRATION_LOCK_ID}
            )
            connection.commit()
