"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from siteforge import __version__
from siteforge.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Service liveness plus the deployment settings callers rely on."""

    status: str = "healthy"
    version: str
    environment: str
    storage_backend: str
    public_base_url: str
    timestamp: datetime


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        version=__version__,
        environment=settings.app_env,
        storage_backend=settings.storage_backend,
        public_base_url=settings.public_base_url,
        timestamp=datetime.now(timezone.utc),
    )
