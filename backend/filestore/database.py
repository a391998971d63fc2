"""Async SQLAlchemy store handle and schema manager.

Usage:
    from filestore.database import store_lifespan
    from filestore.services.file_storage import FileStorage

    async with store_lifespan() as handle:
        files = FileStorage(handle)
        stored = await files.create_file(b"...", "notes.txt", "text/plain")

The handle is opened once and threaded to every storage call. Opening runs
any pending schema upgrade steps; reopening a current store changes nothing.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy import event, inspect, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from filestore.config import settings
from filestore.errors import StorageError, StorageUnavailable
from filestore.models import FileRecord, FolderRecord, StoreMeta
from filestore.models.store_meta import SCHEMA_VERSION_KEY

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

def _create_files_table(sync_conn):
    FileRecord.__table__.create(sync_conn, checkfirst=True)


def _create_folders_table(sync_conn):
    FolderRecord.__table__.create(sync_conn, checkfirst=True)


# version -> step that brings a store from version-1 up to version
UPGRADE_STEPS = {
    1: _create_files_table,
    2: _create_folders_table,
}


def _detect_version(sync_conn) -> tuple[int, bool]:
    """Return (stored schema version, whether a version row exists).

    Stores written before the meta table existed are recognised by the
    collections they already hold.
    """
    tables = set(inspect(sync_conn).get_table_names())
    if StoreMeta.__tablename__ in tables:
        stored = sync_conn.execute(
            select(StoreMeta.value).where(StoreMeta.key == SCHEMA_VERSION_KEY)
        ).scalar_one_or_none()
        if stored is not None:
            return stored, True

    if FileRecord.__tablename__ not in tables:
        return 0, False
    if FolderRecord.__tablename__ not in tables:
        return 1, False
    return 2, False


def _upgrade(sync_conn, target: int = SCHEMA_VERSION) -> int:
    """Run every upgrade step above the stored version. Returns the version found."""
    current, has_row = _detect_version(sync_conn)
    if current > target:
        raise StorageUnavailable(
            f"{settings.STORE_NAME} schema version mismatch: "
            f"store is v{current}, code supports up to v{target}"
        )
    if current == target and has_row:
        return current

    StoreMeta.__table__.create(sync_conn, checkfirst=True)
    for version in range(current + 1, target + 1):
        UPGRADE_STEPS[version](sync_conn)
        logger.info(f"Upgraded {settings.STORE_NAME} to schema v{version}")

    stmt = sqlite_insert(StoreMeta).values(key=SCHEMA_VERSION_KEY, value=target)
    sync_conn.execute(
        stmt.on_conflict_do_update(index_elements=["key"], set_={"value": target})
    )
    return current


def _install_sqlite_hooks(engine: AsyncEngine):
    """Set SQLite PRAGMAs on every new connection and emit BEGIN ourselves.

    The driver only opens a transaction before INSERT/UPDATE/DELETE, so reads
    and DDL would otherwise run outside it. Connections opened with the
    execution option sqlite_begin="IMMEDIATE" take the write lock up front.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        # Disable the driver's own BEGIN handling
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute(f"PRAGMA busy_timeout={int(settings.DB_BUSY_TIMEOUT_MS)}")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")


def _ensure_parent_dir(url: URL):
    database = url.database
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    Path(database).parent.mkdir(parents=True, exist_ok=True)


class StoreHandle:
    """Open store: the only way storage services reach the database.

    Sessions handed out after close() fail with StorageUnavailable.
    """

    def __init__(self, engine: AsyncEngine, url: str):
        self.engine = engine
        self.url = url
        self._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; driver failures surface as StorageUnavailable."""
        if self._closed:
            raise StorageUnavailable(f"{settings.STORE_NAME} handle is closed")
        try:
            async with self._session_factory() as session:
                yield session
        except StorageError:
            raise
        except (DBAPIError, OSError) as e:
            raise StorageUnavailable(f"{settings.STORE_NAME} unavailable: {e}") from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside one write transaction; commits on clean exit.

        The write lock is taken at BEGIN, so reads made inside the block see
        no concurrent writes before the commit.
        """
        async with self.session() as session:
            async with session.begin():
                await session.connection(execution_options={"sqlite_begin": "IMMEDIATE"})
                yield session

    async def schema_version(self) -> int | None:
        async with self.session() as session:
            result = await session.execute(
                select(StoreMeta.value).where(StoreMeta.key == SCHEMA_VERSION_KEY)
            )
            return result.scalar_one_or_none()

    async def close(self):
        if self._closed:
            return
        self._closed = True
        await self.engine.dispose()
        logger.info(f"Closed {settings.STORE_NAME} store")

    async def __aenter__(self) -> "StoreHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


async def open_store(url: str | None = None) -> StoreHandle:
    """Open (creating on first use) the store and bring its schema up to date.

    Raises:
        StorageUnavailable: the store cannot be opened or upgraded, or it was
            written by a newer schema version.
    """
    url = url or settings.DATABASE_URL
    try:
        parsed = make_url(url)
        if parsed.get_backend_name() != "sqlite":
            raise StorageUnavailable(f"Unsupported store backend: {parsed.get_backend_name()}")
        _ensure_parent_dir(parsed)
        engine = create_async_engine(url, echo=settings.DB_ECHO)
    except StorageError:
        raise
    except (SQLAlchemyError, OSError, ImportError) as e:
        raise StorageUnavailable(f"Could not open {settings.STORE_NAME}: {e}") from e

    _install_sqlite_hooks(engine)

    try:
        # Version check and every step run under one write lock, so
        # concurrent openers wait and then find the store current
        async with engine.connect() as conn:
            conn = await conn.execution_options(sqlite_begin="IMMEDIATE")
            async with conn.begin():
                previous = await conn.run_sync(_upgrade)
    except StorageError:
        await engine.dispose()
        raise
    except (SQLAlchemyError, OSError) as e:
        await engine.dispose()
        raise StorageUnavailable(f"Could not open {settings.STORE_NAME}: {e}") from e

    if previous < SCHEMA_VERSION:
        logger.info(f"Opened {settings.STORE_NAME} (upgraded v{previous} -> v{SCHEMA_VERSION})")
    else:
        logger.info(f"Opened {settings.STORE_NAME} at schema v{SCHEMA_VERSION}")
    return StoreHandle(engine, url)


@asynccontextmanager
async def store_lifespan(url: str | None = None) -> AsyncIterator[StoreHandle]:
    """Open the store once for the process and guarantee it is closed at exit."""
    handle = await open_store(url)
    try:
        yield handle
    finally:
        await handle.close()
