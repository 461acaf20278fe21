class ShortLinkError(Exception):
    """Base class for errors raised by the short-link core."""


class InvalidURLError(ShortLinkError):
    """URL is missing or does not start with http:// or https://."""


class EncryptionError(ShortLinkError):
    pass


class DecryptionError(ShortLinkError):
    pass


class DuplicateCodeError(ShortLinkError):
    """A record with this short code is already stored."""

    def __init__(self, code: str):
        super().__init__(f"Short code already exists: {code}")
        self.code = code


class NotFoundError(ShortLinkError):
    def __init__(self, code: str):
        super().__init__(f"Short code not found: {code}")
        self.code = code


class StorageUnavailableError(ShortLinkError):
    """Backend could not be reached or queried."""


class CodeGenerationError(ShortLinkError):
    """Raised only when a retry cap is configured and every candidate collided."""
