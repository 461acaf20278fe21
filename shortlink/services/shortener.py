import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from shortlink.core.exceptions import (
    DuplicateCodeError,
    InvalidURLError,
    NotFoundError,
    ShortLinkError,
    StorageUnavailableError,
)
from shortlink.services.cache import RedirectCache
from shortlink.services.cipher import CipherService
from shortlink.services.code_generator import CodeGenerator
from shortlink.storage.base import StorageBackend, URLRecord
from shortlink.utils.encoding import has_http_scheme, is_valid_short_code

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ShortenResult:
    code: str
    created_at: datetime


@dataclass(frozen=True)
class URLStats:
    code: str
    destination_url: str
    created_at: datetime
    access_count: int


@dataclass(frozen=True)
class HealthReport:
    record_count: int


class URLService:
    """Shorten, resolve and report on short links.

    Thread-safe as long as ``storage`` is; the service itself holds no
    mutable state.
    """

    def __init__(
        self,
        storage: StorageBackend,
        cipher: CipherService,
        code_generator: Optional[CodeGenerator] = None,
        cache: Optional[RedirectCache] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.cipher = cipher
        self.code_generator = code_generator or CodeGenerator(storage)
        self.cache = cache
        self.clock = clock

    def shorten(self, raw_url: Optional[str]) -> ShortenResult:
        if not raw_url or not has_http_scheme(raw_url):
            raise InvalidURLError("URL must start with http:// or https://")

        payload = self.cipher.encrypt(raw_url)
        while True:
            record = URLRecord(
                code=self.code_generator.generate(),
                encrypted_payload=payload,
                created_at=self.clock(),
            )
            try:
                self.storage.put(record)
            except DuplicateCodeError:
                # another request committed the same code after our exists() check
                logger.info("Lost insert race for %s, drawing a new code", record.code)
                continue
            break

        logger.info("Shortened %s... to %s", raw_url[:50], record.code)
        if self.cache:
            # replaces any entry left behind by an earlier record with this code
            self.cache.put(record.code, payload)
        return ShortenResult(code=record.code, created_at=record.created_at)

    def redirect(self, code: str) -> str:
        if not is_valid_short_code(code):
            logger.warning(f"Redirect 404: Malformed short code: {code}")
            raise NotFoundError(code)

        payload = self.cache.get(code) if self.cache else None
        if payload is not None:
            if self._record_access(code) is False:
                # cached entry outlived its record
                logger.warning(f"Redirect 404: Cached short code no longer stored: {code}")
                self.cache.delete(code)
                raise NotFoundError(code)
            return self.cipher.decrypt(payload)

        record = self.storage.get(code)
        if record is None:
            logger.warning(f"Redirect 404: Short code not found: {code}")
            raise NotFoundError(code)
        if self.cache:
            self.cache.put(code, record.encrypted_payload)

        self._record_access(code)
        return self.cipher.decrypt(record.encrypted_payload)

    def _record_access(self, code: str) -> Optional[bool]:
        """Bump the counter. None means the storage call itself failed."""
        try:
            updated = self.storage.increment_access(code)
        except Exception:
            logger.exception("Failed to update access count for %s", code)
            return None
        if not updated:
            logger.warning("Access count not updated, %s is no longer stored", code)
        return updated

    def stats(self, code: str) -> URLStats:
        record = self.storage.get(code) if is_valid_short_code(code) else None
        if record is None:
            logger.warning(f"Stats 404: Short code not found: {code}")
            raise NotFoundError(code)
        return URLStats(
            code=record.code,
            destination_url=self.cipher.decrypt(record.encrypted_payload),
            created_at=record.created_at,
            access_count=record.access_count,
        )

    def health(self) -> HealthReport:
        try:
            total = self.storage.count()
        except ShortLinkError:
            raise
        except Exception as e:
            logger.error("Failed to query total URLs: %s", e)
            raise StorageUnavailableError("Failed to get total URL count") from e
        return HealthReport(record_count=total)

    def close(self) -> None:
        self.storage.close()
        if self.cache:
            self.cache.close()
