# re-export common schemas for simpler imports
from .url import ShortenResponse, StatsResponse, HealthResponse, ErrorResponse

__all__ = [
    "ShortenResponse",
    "StatsResponse",
    "HealthResponse",
    "ErrorResponse",
]
