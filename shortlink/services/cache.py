import logging
from typing import Optional

import redis
import redis.exceptions

logger = logging.getLogger(__name__)


class RedirectCache:
    """Read-through cache of encrypted payloads keyed by short code.

    Only ciphertext is cached, so Redis never holds a plaintext destination.
    Redis being down degrades to a cache miss.
    """

    def __init__(self, client: "redis.Redis", ttl: int):
        self.client = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: int) -> "RedirectCache":
        client = redis.Redis.from_url(url, socket_connect_timeout=2, retry_on_timeout=True)
        return cls(client, ttl)

    @staticmethod
    def _key(code: str) -> str:
        return f"url:{code}"

    def get(self, code: str) -> Optional[bytes]:
        try:
            cached = self.client.get(self._key(code))
        except redis.exceptions.RedisError as e:
            logger.warning(f"Redis lookup failed for {code}: {e}")
            return None

        if cached is None:
            return None
        if isinstance(cached, (bytes, bytearray)):
            cached = cached.decode()
        try:
            return bytes.fromhex(cached)
        except ValueError:
            logger.warning(f"Ignoring malformed cache entry for {code}")
            return None

    def put(self, code: str, encrypted_payload: bytes) -> None:
        try:
            self.client.setex(self._key(code), self.ttl, encrypted_payload.hex())
        except redis.exceptions.RedisError as e:
            logger.warning(f"Failed to cache {code}, Redis unavailable: {e}")

    def delete(self, code: str) -> None:
        try:
            self.client.delete(self._key(code))
        except redis.exceptions.RedisError as e:
            logger.warning(f"Failed to evict {code} from cache: {e}")

    def close(self) -> None:
        try:
            self.client.close()
        except redis.exceptions.RedisError:
            logger.debug("Error closing Redis client")
