"""Main API router."""

from fastapi import APIRouter

from siteforge.api.routes import deploy, health, site
from siteforge.config import settings

router = APIRouter()

# Include sub-routers
router.include_router(health.router, tags=["health"])
router.include_router(deploy.router, tags=["deploy"])
router.include_router(site.router, tags=["site"])

if settings.root_routes_enabled:
    router.include_router(site.root_router, tags=["site"])
