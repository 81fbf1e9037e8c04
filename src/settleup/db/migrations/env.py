from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import URL, make_url

from settleup.config import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# схема описана миграциями вручную, автогенерации нет
target_metadata = None


def _database_url() -> URL:
    # приложение ходит через asyncpg, alembic работает синхронным драйвером
    url = make_url(get_settings().database_url)
    if url.drivername.endswith("+asyncpg"):
        url = url.set(drivername=url.drivername.split("+", 1)[0])
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url().render_as_string(hide_password=False),
        target_metadata=target_metadata,
        literal_binds=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(_database_url(), poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
