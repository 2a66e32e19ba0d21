from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ALEMBIC_INI = Path(__file__).resolve().parents[1] / "alembic.ini"


def test_upgrade_creates_packets_table_from_async_url(monkeypatch, tmp_path):
    db_path = tmp_path / "packets.db"
    # the service's async URL; env.py must swap in the sync driver
    monkeypatch.setenv("ALEMBIC_DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")

    command.upgrade(Config(str(ALEMBIC_INI)), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        insp = inspect(engine)
        assert "packets" in insp.get_table_names()
        assert {c["name"] for c in insp.get_columns("packets")} == {"id", "timestamp", "message", "frequency"}
    finally:
        engine.dispose()


def test_url_falls_back_to_database_url(monkeypatch, tmp_path):
    db_path = tmp_path / "fallback.db"
    monkeypatch.delenv("ALEMBIC_DATABASE_URL", raising=False)
    monkeypatch.delenv("PACKET_STORE", raising=False)
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")

    command.upgrade(Config(str(ALEMBIC_INI)), "head")

    assert db_path.exists()
