from pydantic import BaseModel
from datetime import datetime

# Response DTOs
class ShortenResponse(BaseModel):
    original_url: str
    short_url: str
    created_at: datetime


class StatsResponse(BaseModel):
    short_id: str
    original_url: str
    created_at: datetime
    access_count: int


class HealthResponse(BaseModel):
    status: str
    total_urls: int
    timestamp: datetime


class ErrorResponse(BaseModel):
    error: str
