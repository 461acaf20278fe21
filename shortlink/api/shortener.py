import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from shortlink.api.dependencies import get_url_service
from shortlink.core.exceptions import InvalidURLError, StorageUnavailableError
from shortlink.schemas.url import ErrorResponse, HealthResponse, ShortenResponse, StatsResponse
from shortlink.services.shortener import URLService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_scheme(request: Request) -> str:
    if request.headers.get("x-forwarded-proto") == "https":
        return "https"
    if request.headers.get("x-forwarded-ssl") == "on":
        return "https"
    if request.url.scheme == "https":
        return "https"
    return "http"


def build_short_url(request: Request, code: str) -> str:
    host = request.headers.get("host") or request.url.netloc
    return f"{get_scheme(request)}://{host}/{code}"


@router.get("/health", tags=["health"], response_model=HealthResponse)
def health_endpoint(service: URLService = Depends(get_url_service)):
    try:
        report = service.health()
    except StorageUnavailableError:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "unhealthy", "error": "Failed to get total URL count"},
        )
    return HealthResponse(status="healthy", total_urls=report.record_count, timestamp=datetime.now(timezone.utc))


@router.get("/shorten", tags=["shorten"], response_model=ShortenResponse, responses={400: {"model": ErrorResponse}})
def shorten_endpoint(
    request: Request,
    url: Optional[str] = Query(None),
    service: URLService = Depends(get_url_service),
):
    if not url:
        raise InvalidURLError("URL parameter is missing")

    result = service.shorten(url)
    return ShortenResponse(
        original_url=url,
        short_url=build_short_url(request, result.code),
        created_at=result.created_at,
    )


@router.get("/stats/{short_id}", tags=["stats"], response_model=StatsResponse, responses={404: {"model": ErrorResponse}})
def stats_endpoint(short_id: str, service: URLService = Depends(get_url_service)):
    stats = service.stats(short_id)
    return StatsResponse(
        short_id=stats.code,
        original_url=stats.destination_url,
        created_at=stats.created_at,
        access_count=stats.access_count,
    )


@router.get("/{short_id}", tags=["redirect"], status_code=status.HTTP_302_FOUND, responses={404: {"model": ErrorResponse}})
def redirect_endpoint(short_id: str, service: URLService = Depends(get_url_service)):
    destination = service.redirect(short_id)
    return RedirectResponse(url=destination, status_code=status.HTTP_302_FOUND)
