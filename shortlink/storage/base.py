"""Storage contract shared by the in-memory, file-snapshot and SQL backends."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class URLRecord:
    code: str
    encrypted_payload: bytes
    created_at: datetime
    access_count: int = 0


class StorageBackend(ABC):

    @abstractmethod
    def exists(self, code: str) -> bool:
        """True iff a record with ``code`` has been committed."""

    @abstractmethod
    def put(self, record: URLRecord) -> None:
        """Insert a new record.

        Raises:
            DuplicateCodeError: a record with the same code already exists.
                Existing records are never overwritten.
        """

    @abstractmethod
    def get(self, code: str) -> Optional[URLRecord]:
        """Return the record or None. Never mutates."""

    @abstractmethod
    def increment_access(self, code: str) -> bool:
        """Atomically add one to ``access_count``.

        Returns:
            False if no record with ``code`` exists.
        """

    @abstractmethod
    def count(self) -> int:
        pass

    def close(self) -> None:
        pass
