"""Dependency injection for API endpoints."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from siteforge.config import settings
from siteforge.core.content_router import ContentRouter
from siteforge.core.pipeline import DeploymentPipeline
from siteforge.core.storage import ObjectStore, build_object_store


@lru_cache
def get_object_store() -> ObjectStore:
    """Get the configured object store singleton."""
    return build_object_store(settings)


@lru_cache
def get_pipeline() -> DeploymentPipeline:
    """Get the deployment pipeline singleton."""
    return DeploymentPipeline(settings, get_object_store())


async def get_content_router(
    store: Annotated[ObjectStore, Depends(get_object_store)],
) -> ContentRouter:
    """Get a content router over the object store."""
    return ContentRouter(store)


# Type aliases for cleaner signatures
PipelineDep = Annotated[DeploymentPipeline, Depends(get_pipeline)]
ContentRouterDep = Annotated[ContentRouter, Depends(get_content_router)]
