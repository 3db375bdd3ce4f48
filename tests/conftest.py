"""Shared pytest configuration and fixtures for tests."""

import sys
import io
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Fix Windows console encoding
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from nextup import config  # noqa: E402
from nextup.core.repository import SqliteTaskStore  # noqa: E402

OWNER = "alice"
OTHER_OWNER = "bob"

# Reference time used by date-sensitive tests
NOW = datetime(2026, 2, 13, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def temp_db(monkeypatch, tmp_path):
    """Use temporary database and a fixed default user for all tests."""
    db_path = tmp_path / "test_nextup.db"
    monkeypatch.setattr(config, "DB_PATH", db_path)
    monkeypatch.setattr(config, "DB_DIR", tmp_path)
    monkeypatch.setenv("NEXTUP_USER", OWNER)
    yield db_path


@pytest.fixture
def store(temp_db):
    """Store backed by the temporary database."""
    return SqliteTaskStore(temp_db)


def sort_orders(store, owner_id, system_list):
    """(id, sort_order) pairs of a list, in manual order."""
    with store.snapshot() as uow:
        return store.sort_sequence(uow, owner_id, system_list)
