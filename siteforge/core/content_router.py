"""Resolving request paths to stored objects."""

from dataclasses import dataclass

from siteforge.core.content_types import content_type_for, has_extension
from siteforge.core.exceptions import InvalidPathError, ObjectNotFoundError
from siteforge.core.storage import DEFAULT_DOCUMENT, ObjectStore, object_key
from siteforge.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedContent:
    """Bytes to serve for a request."""

    key: str
    body: bytes
    content_type: str
    spa_fallback: bool = False


def _clean_relative_path(relative_path: str) -> str:
    segments = [segment for segment in relative_path.split("/") if segment]
    if any(segment in (".", "..") for segment in segments):
        raise InvalidPathError(relative_path)
    return "/".join(segments) or DEFAULT_DOCUMENT


def _check_scope(owner_id: str, project_id: str) -> None:
    for segment in (owner_id, project_id):
        if not segment or segment in (".", "..") or "/" in segment:
            raise InvalidPathError(f"{owner_id}/{project_id}")


class ContentRouter:
    """Maps ``(owner, project, path)`` to storage with SPA-style fallback."""

    def __init__(self, store: ObjectStore):
        self.store = store

    async def resolve(self, owner_id: str, project_id: str, relative_path: str = "") -> ResolvedContent:
        """Fetch the object for a project path.

        An extensionless miss is treated as client-side navigation and
        retried once against the project's index document. A miss on a
        path with an extension is reported directly.

        Raises:
            ObjectNotFoundError: If nothing can be served.
            InvalidPathError: If the path escapes the project scope.
        """
        _check_scope(owner_id, project_id)
        relative_path = _clean_relative_path(relative_path)
        try:
            return await self._fetch(owner_id, project_id, relative_path)
        except ObjectNotFoundError as e:
            if has_extension(relative_path):
                logger.info("router.not_found", key=e.key)
                raise
            logger.info("router.spa_fallback", key=e.key)

        try:
            resolved = await self._fetch(owner_id, project_id, DEFAULT_DOCUMENT)
        except ObjectNotFoundError:
            logger.info("router.index_not_found", owner=owner_id, project=project_id)
            raise
        return ResolvedContent(
            key=resolved.key,
            body=resolved.body,
            content_type=resolved.content_type,
            spa_fallback=True,
        )

    async def resolve_exact(self, owner_id: str, project_id: str, relative_path: str = "") -> ResolvedContent:
        """Fetch the object for a project path without SPA fallback."""
        _check_scope(owner_id, project_id)
        relative_path = _clean_relative_path(relative_path)
        try:
            return await self._fetch(owner_id, project_id, relative_path)
        except ObjectNotFoundError as e:
            logger.info("router.not_found", key=e.key)
            raise

    async def _fetch(self, owner_id: str, project_id: str, relative_path: str) -> ResolvedContent:
        key = object_key(owner_id, project_id, relative_path)
        stored = await self.store.get(key)
        return ResolvedContent(
            key=key,
            body=stored.body,
            content_type=content_type_for(relative_path),
        )
