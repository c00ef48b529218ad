from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import MetaData, engine_from_config, pool

_REPO_ROOT = Path(__file__).resolve().parents[2]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from infra.audit_models import Base as AuditBase  # noqa: E402
from infra.ledger_models import Base as LedgerBase  # noqa: E402

config = context.config

if config.config_file_name is not None:
    try:
        fileConfig(config.config_file_name, disable_existing_loggers=False)
    except Exception as e:  # pragma: no cover - logging configuration is optional
        import logging
        logging.warning(f"Error configuring logging: {e}")


def _resolve_database_url() -> str:
    for env_var in ("ALEMBIC_DATABASE_URL", "SNAPBIT_DATABASE_URL", "DATABASE_URL"):
        value = os.getenv(env_var)
        if value:
            config.set_main_option("sqlalchemy.url", value)
            return value

    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url

    raise RuntimeError(
        "Database URL must be provided via ALEMBIC_DATABASE_URL, SNAPBIT_DATABASE_URL or DATABASE_URL."
    )


def _get_config_section() -> dict[str, str]:
    section = config.get_section(config.config_ini_section)
    if section is None:
        section = {}
    return section


target_metadata: tuple[MetaData, ...] = (LedgerBase.metadata, AuditBase.metadata)
database_url = _resolve_database_url()


def run_migrations_offline() -> None:
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = _get_config_section()
    section["sqlalchemy.url"] = database_url

    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
