"""
Pytest Configuration and Shared Fixtures

Every test gets its own temporary directory and a freshly opened store file,
closed again at teardown.
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio

from filestore.database import StoreHandle, store_lifespan
from filestore.services.file_storage import FileStorage
from filestore.services.folder_storage import FolderStorage


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store_url(temp_dir: Path) -> str:
    """SQLite URL for a store file inside the temp directory."""
    return f"sqlite+aiosqlite:///{temp_dir / 'data' / 'filestore.db'}"


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def store(store_url: str) -> AsyncGenerator[StoreHandle, None]:
    """Open store for the duration of one test."""
    async with store_lifespan(store_url) as handle:
        yield handle


@pytest.fixture
def files(store: StoreHandle) -> FileStorage:
    return FileStorage(store)


@pytest.fixture
def folders(store: StoreHandle) -> FolderStorage:
    return FolderStorage(store)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
