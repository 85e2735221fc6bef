"""Alembic migration environment for brief aggregation.

The database URL comes from the pydantic configuration and is built by
the same dialect layer the application engine uses.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config

from brief_aggregation.config import get_config
from brief_aggregation.models import Base
from brief_aggregation.storage.dialects import get_dialect

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

db_config = get_config().database
dialect = get_dialect(db_config.type)
db_url = dialect.build_url(db_config)
config.set_main_option("sqlalchemy.url", db_url)

# feed_sources, user_feeds, content_items, content_errors, daily_digests, daily_digest_items
target_metadata = Base.metadata

migration_kwargs = dialect.get_migration_kwargs()


def run_migrations_offline() -> None:
    """Emit SQL to the script output without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **migration_kwargs,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live connection."""
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = db_url

    engine_kwargs = dialect.get_engine_kwargs(db_config)
    engine_kwargs.pop("echo", None)  # Alembic logs on its own

    connectable = engine_from_config(configuration, prefix="sqlalchemy.", **engine_kwargs)
    dialect.setup_engine_events(connectable)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            **migration_kwargs,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
