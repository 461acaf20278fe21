import dataclasses
import logging
from typing import Dict, Optional

from shortlink.core.exceptions import DuplicateCodeError
from shortlink.storage.base import StorageBackend, URLRecord
from shortlink.storage.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)


class InMemoryStorage(StorageBackend):
    """Process-local map of code -> URLRecord.

    Readers share the lock, writers hold it exclusively, so every mutation is
    linearized. Nothing is persisted.
    """

    def __init__(self, records: Optional[Dict[str, URLRecord]] = None):
        self._lock = ReadWriteLock()
        self._records: Dict[str, URLRecord] = dict(records or {})

    def exists(self, code: str) -> bool:
        with self._lock.read_locked():
            return code in self._records

    def get(self, code: str) -> Optional[URLRecord]:
        with self._lock.read_locked():
            return self._records.get(code)

    def count(self) -> int:
        with self._lock.read_locked():
            return len(self._records)

    def put(self, record: URLRecord) -> None:
        with self._lock.write_locked():
            if record.code in self._records:
                raise DuplicateCodeError(record.code)
            self._records[record.code] = record
            self._mutated()

    def increment_access(self, code: str) -> bool:
        with self._lock.write_locked():
            record = self._records.get(code)
            if record is None:
                return False
            self._records[code] = dataclasses.replace(record, access_count=record.access_count + 1)
            self._mutated()
            return True

    def _mutated(self) -> None:
        """Called with the write lock held, right after a successful mutation."""
