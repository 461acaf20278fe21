from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shortlink.api import shortener
from shortlink.core.config import get_settings
from shortlink.core.exceptions import (
    CodeGenerationError,
    DecryptionError,
    EncryptionError,
    InvalidURLError,
    NotFoundError,
    StorageUnavailableError,
)
from shortlink.core.logging_config import configure_logging
from shortlink.services import build_url_service
from shortlink.services.shortener import URLService

logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "url_service", None) is None:
        settings = get_settings()
        configure_logging(settings.LOG_LEVEL)
        logger.info(f"Application '{settings.PROJECT_NAME}' starting up with '{settings.STORAGE_BACKEND}' storage.")
        # StorageUnavailableError here aborts startup
        app.state.url_service = build_url_service(settings)
    yield
    logger.info("Shutting down gracefully...")
    app.state.url_service.close()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(InvalidURLError)
    async def invalid_url_handler(request: Request, exc: InvalidURLError):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, "Short URL not found")

    @app.exception_handler(EncryptionError)
    async def encryption_handler(request: Request, exc: EncryptionError):
        logger.error(f"Encryption failed: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to encrypt URL")

    @app.exception_handler(DecryptionError)
    async def decryption_handler(request: Request, exc: DecryptionError):
        logger.error(f"Decryption failed for {request.url.path}: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to decrypt URL")

    @app.exception_handler(CodeGenerationError)
    async def code_generation_handler(request: Request, exc: CodeGenerationError):
        logger.error(str(exc))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to shorten URL")

    @app.exception_handler(StorageUnavailableError)
    async def storage_handler(request: Request, exc: StorageUnavailableError):
        logger.error(f"Storage unavailable: {exc}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Storage unavailable")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(url_service: Optional[URLService] = None) -> FastAPI:
    app = FastAPI(
        title="URL Shortener",
        description="Short links with encrypted destinations",
        lifespan=lifespan,
    )
    app.state.url_service = url_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    register_exception_handlers(app)
    app.include_router(shortener.router, prefix="")
    return app


app = create_app()


def run():
    import uvicorn

    settings = get_settings()
    uvicorn.run("shortlink.main:app", host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
