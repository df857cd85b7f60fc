"""Alembic migration tests against a throwaway SQLite file."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from ntask.config import get_settings

ALEMBIC_DIR = Path(__file__).resolve().parents[2] / "ntask" / "db" / "alembic"


@pytest.fixture
def alembic_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Config]:
    """Alembic config pointed at a fresh database via DATABASE_URL."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'migrate.db'}")
    get_settings.cache_clear()

    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    yield config

    get_settings.cache_clear()


def test_upgrade_and_downgrade(alembic_config: Config, tmp_path: Path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'migrate.db'}")

    command.upgrade(alembic_config, "head")
    tables = set(inspect(engine).get_table_names())
    indexes = {i["name"] for i in inspect(engine).get_indexes("document_requests")}

    command.downgrade(alembic_config, "base")
    remaining = set(inspect(engine).get_table_names())
    engine.dispose()

    assert {"documents", "document_requests"} <= tables
    assert indexes == {"idx_document_requests_approver", "idx_document_requests_requester"}
    assert remaining <= {"alembic_version"}
