"""Deployment endpoint."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from siteforge.api.deps import PipelineDep
from siteforge.core.exceptions import SiteForgeError
from siteforge.models.deployment import DeploymentRequest, DeployResponse, ErrorResponse
from siteforge.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/deploy",
    response_model=DeployResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Build and publish a repository",
    description="Clones, builds and publishes the repository synchronously. "
    "A project whose build fails is still published with a placeholder page.",
)
async def deploy(request: DeploymentRequest, pipeline: PipelineDep) -> DeployResponse | JSONResponse:
    """Deploy a repository and return the URL it is served at."""
    try:
        result = await pipeline.deploy(request)
    except SiteForgeError as e:
        logger.error(
            "deploy.failed",
            owner=request.owner_id,
            project=request.project_id,
            error=e.message,
            details=e.details,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error=e.public_message).model_dump(),
        )

    message = (
        "Deployed with a placeholder page; the build could not be completed."
        if result.degraded
        else "Deployed successfully."
    )
    return DeployResponse(message=message, url=result.url, degraded=result.degraded)
