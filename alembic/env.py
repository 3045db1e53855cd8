from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

from compliance import models  # noqa: F401
from compliance.core.config import get_settings
from compliance.core.database import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def database_url() -> str:
    """``DATABASE_URL`` via settings wins over ``sqlalchemy.url`` in alembic.ini."""

    settings = get_settings()
    configured = config.get_main_option("sqlalchemy.url")
    if "database_url" in settings.model_fields_set or not configured:
        return settings.database_url
    return configured


def _configure_options(url: str) -> dict[str, Any]:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    url = database_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = database_url()
    engine = create_engine(url, poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(connection=connection, **_configure_options(url))

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
