from fastapi import Request

from shortlink.services.shortener import URLService


def get_url_service(request: Request) -> URLService:
    """FastAPI dependency: the service built at startup.

    Usage: service: URLService = Depends(get_url_service)
    """
    return request.app.state.url_service
