import logging
from contextlib import contextmanager
from datetime import timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shortlink.core.exceptions import DuplicateCodeError, StorageUnavailableError
from shortlink.db.database import make_session_factory
from shortlink.db.models import URLItem
from shortlink.storage.base import StorageBackend, URLRecord

logger = logging.getLogger(__name__)


def _to_record(row: URLItem) -> URLRecord:
    created_at = row.created_at
    # SQLite drops tzinfo on the way back
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return URLRecord(
        code=row.short_code,
        encrypted_payload=bytes.fromhex(row.encrypted_url),
        created_at=created_at,
        access_count=row.access_count,
    )


class SQLStorage(StorageBackend):
    """Records as rows of the ``urls`` table.

    The database provides the guarantees: the unique index on ``short_code``
    rejects duplicate inserts and the counter is bumped by a single UPDATE.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = make_session_factory(engine)

    @contextmanager
    def _session(self):
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Database error: %s", e)
            raise StorageUnavailableError("Database query failed") from e
        finally:
            session.close()

    def exists(self, code: str) -> bool:
        with self._session() as db:
            return bool(db.query(db.query(URLItem).filter(URLItem.short_code == code).exists()).scalar())

    def get(self, code: str) -> Optional[URLRecord]:
        with self._session() as db:
            row = db.query(URLItem).filter(URLItem.short_code == code).first()
            return _to_record(row) if row else None

    def count(self) -> int:
        with self._session() as db:
            return db.query(func.count(URLItem.id)).scalar() or 0

    def put(self, record: URLRecord) -> None:
        try:
            with self._session() as db:
                db.add(URLItem(
                    short_code=record.code,
                    encrypted_url=record.encrypted_payload.hex(),
                    created_at=record.created_at,
                    access_count=record.access_count,
                ))
        except IntegrityError as e:
            logger.warning("IntegrityError inserting short_code=%s: %s", record.code, e.orig)
            raise DuplicateCodeError(record.code) from e

    def increment_access(self, code: str) -> bool:
        with self._session() as db:
            updated = db.query(URLItem).filter(URLItem.short_code == code).update(
                {URLItem.access_count: URLItem.access_count + 1},
                synchronize_session=False,
            )
        return updated > 0

    def close(self) -> None:
        self.engine.dispose()
