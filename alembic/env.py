from __future__ import annotations

from logging.config import fileConfig
from typing import Any, cast

from alembic import context
from sqlalchemy import engine_from_config, pool

from farmrelay.core.config import settings
from farmrelay.core.logging import configure_logging
from farmrelay.models import Base
import farmrelay.models  # noqa: F401 (registers hosts/printers on Base.metadata)

config = context.config
if config.config_file_name is not None:
    try:
        fileConfig(config.config_file_name, disable_existing_loggers=False)
    except Exception:
        configure_logging(settings.LOG_LEVEL)

target_metadata = Base.metadata
url = settings.DATABASE_URL_SYNC


def configure_kwargs() -> dict[str, Any]:
    # printers.status/loaded_filament are JSON on sqlite, JSONB on postgres
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **configure_kwargs(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    cfg = cast(dict[str, Any], config.get_section(config.config_ini_section) or {})
    cfg["sqlalchemy.url"] = url

    connectable = engine_from_config(cfg, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, **configure_kwargs())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
