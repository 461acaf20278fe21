from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from sqlalchemy import inspect, text

from shortlink.core.config import Settings
from shortlink.core.exceptions import StorageUnavailableError
from shortlink.db.database import create_db_engine, verify_database_connection, wait_for_database
from shortlink.services.shortener import URLService
from shortlink.storage import build_storage
from shortlink.storage.base import URLRecord
from shortlink.storage.sql import SQLStorage

from .conftest import TEST_KEY


def _unreachable_engine(tmp_path):
    return create_db_engine(f"sqlite:///{tmp_path / 'missing-dir' / 'urls.db'}")


def test_schema(sql_engine):
    columns = {c["name"] for c in inspect(sql_engine).get_columns("urls")}
    assert columns == {"id", "short_code", "encrypted_url", "created_at", "access_count"}


def test_payload_stored_as_hex(sql_engine, sql_storage, cipher):
    service = URLService(sql_storage, cipher)
    code = service.shorten("https://example.com/sql").code

    with sql_engine.connect() as conn:
        stored = conn.execute(text("SELECT encrypted_url FROM urls WHERE short_code = :c"), {"c": code}).scalar()

    assert "example.com" not in stored
    assert cipher.decrypt(stored) == "https://example.com/sql"


def test_verify_database_connection(sql_engine, tmp_path):
    assert verify_database_connection(sql_engine) is True
    assert verify_database_connection(_unreachable_engine(tmp_path)) is False


def test_wait_for_database_gives_up_after_retries(tmp_path):
    sleeps = []
    with pytest.raises(StorageUnavailableError):
        wait_for_database(_unreachable_engine(tmp_path), retries=5, delay=5.0, sleep=sleeps.append)
    # no sleep after the final attempt
    assert sleeps == [5.0] * 4


def test_wait_for_database_returns_once_reachable(sql_engine):
    sleeps = []
    wait_for_database(sql_engine, retries=5, delay=1.0, sleep=sleeps.append)
    assert sleeps == []


def test_missing_table_is_storage_unavailable(tmp_path):
    storage = SQLStorage(create_db_engine(f"sqlite:///{tmp_path / 'empty.db'}"))
    with pytest.raises(StorageUnavailableError):
        storage.count()
    with pytest.raises(StorageUnavailableError):
        storage.exists("abc123")


def test_health_reports_unavailable_storage(tmp_path, cipher):
    service = URLService(SQLStorage(create_db_engine(f"sqlite:///{tmp_path / 'empty.db'}")), cipher)
    with pytest.raises(StorageUnavailableError):
        service.health()


def test_build_storage_sql(tmp_path):
    settings = Settings(
        ENCRYPTION_KEY=TEST_KEY,
        STORAGE_BACKEND="sql",
        DATABASE_URL=f"sqlite:///{tmp_path / 'built.db'}",
        DB_CONNECT_RETRY_DELAY=0,
    )
    storage = build_storage(settings)
    assert isinstance(storage, SQLStorage)
    assert storage.count() == 0
    storage.close()


def test_build_storage_sql_unreachable_is_fatal(tmp_path):
    settings = Settings(
        ENCRYPTION_KEY=TEST_KEY,
        STORAGE_BACKEND="sql",
        DATABASE_URL=f"sqlite:///{tmp_path / 'missing-dir' / 'urls.db'}",
        DB_CONNECT_RETRIES=2,
        DB_CONNECT_RETRY_DELAY=0,
    )
    with pytest.raises(StorageUnavailableError):
        build_storage(settings)


def test_sqlite_waits_for_write_lock(sql_engine):
    """Writers queue on the file lock instead of failing with 'database is locked'."""
    with sql_engine.connect() as conn:
        assert conn.execute(text("PRAGMA busy_timeout")).scalar() == 30000
        assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"


def test_sqlite_busy_timeout_is_configurable(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'urls.db'}", busy_timeout=2.5)
    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA busy_timeout")).scalar() == 2500
    engine.dispose()


def test_hundred_concurrent_increments_on_sqlite(sql_storage):
    sql_storage.put(URLRecord("hot001", b"\x01" * 24, datetime.now(timezone.utc)))
    with ThreadPoolExecutor(max_workers=100) as pool:
        results = list(pool.map(lambda _: sql_storage.increment_access("hot001"), range(100)))

    assert all(results)
    assert sql_storage.get("hot001").access_count == 100
