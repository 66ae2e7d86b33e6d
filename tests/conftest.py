"""
Pytest configuration and fixtures for ModWarden tests.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from modwarden.configuration.app_configuration import AppConfig  # noqa: E402
from modwarden.database.database import Database  # noqa: E402


@pytest_asyncio.fixture
async def database(tmp_path: Path):
    """An initialized database in a temporary directory, closed afterwards."""
    db = Database(tmp_path / "data" / "test.db")
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def store(database):
    return database.infractions


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    """Config with the built-in defaults (no file on disk)."""
    return AppConfig(tmp_path / "missing.yml")
