import secrets
import string

# Base62 alphabet, case-sensitive
ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
SHORT_CODE_LENGTH = 6

_ALPHABET_SET = frozenset(ALPHABET)


def generate_short_code(rng=None, length: int = SHORT_CODE_LENGTH) -> str:
    """Draw a random code; each character is chosen uniformly from ALPHABET."""
    rng = rng or secrets.SystemRandom()
    return ''.join(rng.choice(ALPHABET) for _ in range(length))


def is_valid_short_code(code: str) -> bool:
    return len(code) == SHORT_CODE_LENGTH and all(ch in _ALPHABET_SET for ch in code)


def has_http_scheme(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")
