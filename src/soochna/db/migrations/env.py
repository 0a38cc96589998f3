"""Alembic environment for the Soochna schema.

The target URL comes from SOOCHNA_DATABASE__URL when set, otherwise
from sqlalchemy.url in alembic.ini. Migrations run synchronously over
psycopg 3.
"""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from soochna.db import to_psycopg_url
from soochna.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Importing soochna.db.models registers every table on this metadata
target_metadata = Base.metadata

# Same comparison rules offline and online so autogenerate diffs agree
COMPARE_OPTIONS = {"compare_type": True, "compare_server_default": True}


def get_url() -> str:
    """Database URL for this migration run."""
    url = os.environ.get("SOOCHNA_DATABASE__URL") or config.get_main_option("sqlalchemy.url", "")
    return to_psycopg_url(url)


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over one unpooled connection."""
    engine = create_engine(get_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                **COMPARE_OPTIONS,
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
