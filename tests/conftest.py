"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import AsyncGenerator

import logfire
import pytest

from flourish.core.db_client import SQLiteDocumentStore


logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def quiet_logfire():
    """Keep spans local during tests."""
    logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture
async def sqlite_store(tmp_path) -> AsyncGenerator[SQLiteDocumentStore, None]:
    """SQLite document store backed by a temporary file."""
    db_path = tmp_path / "flourish_test.db"
    async with SQLiteDocumentStore(db_path=str(db_path)) as store:
        logger.info("Test document store at %s", db_path)
        yield store
