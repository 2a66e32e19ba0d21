import os, sys
from pathlib import Path
from alembic import context
from sqlalchemy import create_engine, pool

BASE_DIR = Path(__file__).resolve().parents[1]

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

# importing config also loads packetlog/.env
from packetlog.config import load_settings
from packetlog.models import Base

config = context.config
target_metadata = Base.metadata

# async drivers used by the service -> sync drivers for migrations
SYNC_DRIVERS = {"+asyncpg": "+psycopg", "+aiosqlite": ""}


def get_url() -> str:
    url = os.getenv("ALEMBIC_DATABASE_URL") or load_settings().database_url
    for async_driver, sync_driver in SYNC_DRIVERS.items():
        url = url.replace(async_driver, sync_driver)
    return url


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)


if context.is_offline_mode():
    _configure(url=get_url(), literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()
else:
    connectable = create_engine(get_url(), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        # sqlite can't ALTER most things in place
        _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
        with context.begin_transaction():
            context.run_migrations()
