import logging

from shortlink.core.config import Settings
from shortlink.services.cache import RedirectCache
from shortlink.services.cipher import CipherService
from shortlink.services.code_generator import CodeGenerator
from shortlink.services.shortener import URLService
from shortlink.storage import build_storage

logger = logging.getLogger(__name__)


def build_url_service(settings: Settings) -> URLService:
    storage = build_storage(settings)
    cache = RedirectCache.from_url(settings.REDIS_URL, settings.CACHE_TTL) if settings.REDIS_URL else None
    if cache is None:
        logger.info("REDIS_URL not set, redirect cache disabled")
    return URLService(
        storage=storage,
        cipher=CipherService(settings.ENCRYPTION_KEY),
        code_generator=CodeGenerator(storage, max_attempts=settings.CODE_MAX_ATTEMPTS),
        cache=cache,
    )
