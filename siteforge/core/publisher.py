"""Publishing build artifacts to object storage."""

import asyncio
from collections.abc import Iterator
from pathlib import Path

from pydantic import BaseModel, Field

from siteforge.core.content_types import content_type_for
from siteforge.core.exceptions import ArtifactMissingError, PublishError
from siteforge.core.storage import ObjectStore, object_key
from siteforge.utils.logging import get_logger

logger = get_logger(__name__)


class PublishResult(BaseModel):
    """Keys written for one deployment."""

    prefix: str
    keys: list[str] = Field(default_factory=list)


def iter_artifact_files(artifact_dir: Path) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, relative_posix_path)`` for every regular file, in name order."""
    stack = [artifact_dir]
    while stack:
        current = stack.pop()
        entries = sorted(current.iterdir(), key=lambda p: p.name)
        # Reversed push keeps directories in name order
        for entry in reversed([e for e in entries if e.is_dir() and not e.is_symlink()]):
            stack.append(entry)
        for entry in entries:
            if entry.is_file():
                yield entry, entry.relative_to(artifact_dir).as_posix()


class Publisher:
    """Uploads an artifact directory under a deployment-scoped prefix."""

    def __init__(self, store: ObjectStore):
        self.store = store

    async def publish(self, artifact_dir: Path, owner_id: str, project_id: str) -> PublishResult:
        """Upload every file below ``artifact_dir``.

        Raises:
            ArtifactMissingError: If ``artifact_dir`` is not a directory.
            PublishError: On the first failed upload. Objects already
                written stay in place.
        """
        if not await asyncio.to_thread(artifact_dir.is_dir):
            raise ArtifactMissingError(str(artifact_dir))

        files = await asyncio.to_thread(list, iter_artifact_files(artifact_dir))
        result = PublishResult(prefix=f"users/{owner_id}/{project_id}/")
        for path, relative in files:
            key = object_key(owner_id, project_id, relative)
            try:
                body = await asyncio.to_thread(path.read_bytes)
                await self.store.put(key, body, content_type_for(relative))
            except Exception as e:
                logger.error(
                    "publisher.upload_failed",
                    key=key,
                    uploaded=len(result.keys),
                    error=str(e),
                )
                raise PublishError(key, str(e)) from e
            result.keys.append(key)

        if not result.keys:
            raise ArtifactMissingError(str(artifact_dir))

        logger.info("publisher.completed", prefix=result.prefix, uploaded=len(result.keys))
        return result
