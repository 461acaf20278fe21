from functools import lru_cache
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

VALID_KEY_LENGTHS = (16, 24, 32)
STORAGE_BACKENDS = ("memory", "file", "sql")


class Settings(BaseSettings):
    PROJECT_NAME: str = "URL Shortener"

    # Required to start app
    ENCRYPTION_KEY: str

    # Storage: "memory", "file" or "sql"
    STORAGE_BACKEND: str = "memory"
    SNAPSHOT_PATH: str = "urls.json"

    DATABASE_URL: Optional[str] = None
    DB_CONNECT_RETRIES: int = 5
    DB_CONNECT_RETRY_DELAY: float = 5.0
    DB_CONNECT_TIMEOUT: int = 5
    DB_STATEMENT_TIMEOUT_MS: int = 5000
    # SQLite only: seconds a writer waits for the file lock
    DB_BUSY_TIMEOUT: float = 30.0

    # Optional redirect cache
    REDIS_URL: Optional[str] = None
    CACHE_TTL: int = 86400

    CODE_MAX_ATTEMPTS: Optional[int] = None
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @field_validator("ENCRYPTION_KEY")
    def validate_key_length(cls, v):
        if len(v.encode("utf-8")) not in VALID_KEY_LENGTHS:
            raise ValueError("ENCRYPTION_KEY must be 16, 24 or 32 bytes long")
        return v

    @field_validator("LOG_LEVEL")
    def validate_log_level(cls, v):
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    @field_validator("STORAGE_BACKEND")
    def validate_backend(cls, v):
        backend = v.strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}")
        return backend

    @model_validator(mode="after")
    def require_database_url(self):
        if self.STORAGE_BACKEND == "sql" and not self.DATABASE_URL:
            raise ValueError("DATABASE_URL is required when STORAGE_BACKEND is 'sql'")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
