"""Tests for the Alembic migration chain."""

import sqlite3
from pathlib import Path

from alembic import command
from alembic.config import Config

from norseman_booking.core.config import settings
from norseman_booking.core.database import Base

DB_DIR = Path(__file__).resolve().parents[2] / "db"


def _tables(db_file: Path) -> set[str]:
    with sqlite3.connect(db_file) as conn:
        return {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}


def _columns(db_file: Path, table: str) -> set[str]:
    with sqlite3.connect(db_file) as conn:
        return {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}


def test_upgrade_matches_models_and_downgrade_removes_tables(tmp_path, monkeypatch):
    db_file = tmp_path / "booking.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{db_file}")

    # No ini file: keeps the test run's logging configuration untouched
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(DB_DIR / "alembic"))

    command.upgrade(alembic_cfg, "head")

    assert {"tours", "bookings", "participants", "alembic_version"} <= _tables(db_file)
    for table in ("tours", "bookings", "participants"):
        assert _columns(db_file, table) == set(Base.metadata.tables[table].columns.keys())

    command.downgrade(alembic_cfg, "base")

    assert _tables(db_file) == {"alembic_version"}
