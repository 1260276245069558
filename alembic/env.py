"""
Alembic environment for the dashboard schema.

The URL comes from `sqlalchemy.url` (set by manage_db.py) or DATABASE_URL,
with Heroku/Render style postgres:// URLs normalized.
"""

import os
import sys
from logging.config import fileConfig

from sqlalchemy import pool, create_engine
from alembic import context

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database.connection import Base, normalize_database_url
from database import models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url():
    url = normalize_database_url(config.get_main_option('sqlalchemy.url') or os.environ.get('DATABASE_URL'))
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot run migrations")
    return url


def configure_options():
    # Column type changes (e.g. String lengths) show up in autogenerate
    return {'target_metadata': target_metadata, 'compare_type': True}


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without a database connection."""
    context.configure(
        url=database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **configure_options()
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **configure_options())
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
