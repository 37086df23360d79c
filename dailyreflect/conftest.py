# dailyreflect/conftest.py
import sys
from pathlib import Path

import pytest

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def in_memory_stores(monkeypatch):
    """
    Run every test against fresh in-memory stores.

    A DATABASE_URL in the developer's environment must not leak into tests;
    SQL store tests opt in through the `sqlite_engine` fixture.
    """
    from dailyreflect.core.config import settings
    from dailyreflect.features.services import reset_services

    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    monkeypatch.setattr(settings, "DATABASE_URL", None)
    monkeypatch.setattr(settings, "ENGINE_TIMEZONE", "UTC")

    reset_services()
    yield
    reset_services()


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite engine with every table created. Disposed afterwards."""
    from dailyreflect.core.database import create_all_tables, dispose_engine, drop_all_tables, init_engine

    engine = init_engine("sqlite://")
    create_all_tables()
    yield engine
    drop_all_tables()
    dispose_engine()
