import logging

from shortlink.core.config import Settings
from shortlink.storage.base import StorageBackend, URLRecord
from shortlink.storage.memory import InMemoryStorage
from shortlink.storage.snapshot import FileSnapshotStorage

logger = logging.getLogger(__name__)

__all__ = [
    "StorageBackend",
    "URLRecord",
    "InMemoryStorage",
    "FileSnapshotStorage",
    "build_storage",
]


def build_storage(settings: Settings) -> StorageBackend:
    """Create the backend named by ``settings.STORAGE_BACKEND``.

    For ``sql`` this blocks until the database answers or the retries run out.
    """
    backend = settings.STORAGE_BACKEND
    if backend == "memory":
        logger.info("Using in-memory storage")
        return InMemoryStorage()
    if backend == "file":
        logger.info("Using file snapshot storage at %s", settings.SNAPSHOT_PATH)
        return FileSnapshotStorage(settings.SNAPSHOT_PATH)
    if backend == "sql":
        from shortlink.db.database import create_db_engine, migrate, wait_for_database
        from shortlink.storage.sql import SQLStorage

        engine = create_db_engine(
            settings.DATABASE_URL,
            connect_timeout=settings.DB_CONNECT_TIMEOUT,
            statement_timeout_ms=settings.DB_STATEMENT_TIMEOUT_MS,
            busy_timeout=settings.DB_BUSY_TIMEOUT,
        )
        wait_for_database(engine, settings.DB_CONNECT_RETRIES, settings.DB_CONNECT_RETRY_DELAY)
        migrate(engine)
        return SQLStorage(engine)
    raise ValueError(f"Unknown storage backend: {backend}")
