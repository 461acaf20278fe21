import logging
import secrets
from typing import Optional

from shortlink.core.exceptions import CodeGenerationError
from shortlink.storage.base import StorageBackend
from shortlink.utils.encoding import generate_short_code

logger = logging.getLogger(__name__)


class CodeGenerator:
    """Draws random short codes that are not yet present in ``storage``.

    ``rng`` must provide ``choice``. Production uses ``secrets.SystemRandom``;
    tests may pass a seeded ``random.Random``. Retries are unbounded unless
    ``max_attempts`` is given.
    """

    def __init__(self, storage: StorageBackend, rng=None, max_attempts: Optional[int] = None):
        self.storage = storage
        self.rng = rng or secrets.SystemRandom()
        self.max_attempts = max_attempts

    def generate(self) -> str:
        attempt = 0
        while True:
            attempt += 1
            code = generate_short_code(self.rng)
            if not self.storage.exists(code):
                return code

            logger.info("Short code collision on attempt %d", attempt)
            if self.max_attempts is not None and attempt >= self.max_attempts:
                raise CodeGenerationError(
                    f"Failed to generate unique short code after {attempt} attempts"
                )
