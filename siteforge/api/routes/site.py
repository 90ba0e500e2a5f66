"""Serving published sites from object storage."""

from fastapi import APIRouter, Response, status
from fastapi.responses import PlainTextResponse

from siteforge.api.deps import ContentRouterDep
from siteforge.config import settings
from siteforge.core.content_router import ResolvedContent
from siteforge.core.content_types import has_extension
from siteforge.core.exceptions import InvalidPathError, ObjectNotFoundError

router = APIRouter()

# Routes that resolve against the configured default deployment rather than
# a path-carried owner/project. Registered last so they never shadow others.
root_router = APIRouter()


def _content_response(content: ResolvedContent) -> Response:
    return Response(content=content.body, media_type=content.content_type)


def _not_found(message: str = "Not found") -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status.HTTP_404_NOT_FOUND)


@router.get("/site/{owner_id}", include_in_schema=False)
async def site_missing_project(owner_id: str) -> PlainTextResponse:
    return _not_found("Invalid URL format. Expected: /site/{owner}/{project}/{path}")


@router.get("/site/{owner_id}/{project_id}", summary="Serve a project's index document")
@router.get("/site/{owner_id}/{project_id}/{path:path}", summary="Serve a project file")
async def serve_site(
    owner_id: str,
    project_id: str,
    content_router: ContentRouterDep,
    path: str = "",
) -> Response:
    """Serve a stored file, falling back to index.html for client-side routes."""
    try:
        content = await content_router.resolve(owner_id, project_id, path)
    except (ObjectNotFoundError, InvalidPathError):
        return _not_found()
    return _content_response(content)


async def _serve_default_scope(content_router: ContentRouterDep, path: str) -> Response:
    try:
        content = await content_router.resolve_exact(
            settings.default_owner_id, settings.default_project_id, path
        )
    except (ObjectNotFoundError, InvalidPathError):
        return _not_found()
    return _content_response(content)


@root_router.get("/static/{path:path}", include_in_schema=False)
async def serve_static(path: str, content_router: ContentRouterDep) -> Response:
    return await _serve_default_scope(content_router, f"static/{path}")


@root_router.get("/assets/{path:path}", include_in_schema=False)
async def serve_assets(path: str, content_router: ContentRouterDep) -> Response:
    return await _serve_default_scope(content_router, f"assets/{path}")


@root_router.get("/", include_in_schema=False)
async def serve_default_index(content_router: ContentRouterDep) -> Response:
    return await _serve_default_scope(content_router, "index.html")


@root_router.get("/{filename}", include_in_schema=False)
async def serve_root_file(filename: str, content_router: ContentRouterDep) -> Response:
    """Root-level files such as /manifest.json, /favicon.ico or /robots.txt."""
    if not has_extension(filename):
        return _not_found()
    return await _serve_default_scope(content_router, filename)
