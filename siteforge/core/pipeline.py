"""Deployment Pipeline.

Coordinates the stages that turn a source repository into published
objects. Stages run strictly in order within one deployment:

1. workspace - clear and allocate the per-project directory
2. fetch - clone the repository
3. locate - find the project root
4. build - repair and build, falling back to a placeholder artifact
5. publish - upload the artifact to object storage
"""

import asyncio
import time

import structlog

from siteforge.config import Settings
from siteforge.core.builder import BuildExecutor
from siteforge.core.fetcher import SourceFetcher
from siteforge.core.locator import find_artifact_dir, find_project_root
from siteforge.core.locks import KeyedLock
from siteforge.core.process import ProcessRunner, SubprocessRunner
from siteforge.core.publisher import Publisher
from siteforge.core.storage import ObjectStore
from siteforge.core.workspace import WorkspaceManager
from siteforge.models.deployment import DeploymentRequest, DeploymentResult
from siteforge.utils.logging import get_logger

SOURCE_DIR = "source"


class DeploymentPipeline:
    """Runs deployments, one at a time per ``(owner_id, project_id)``."""

    def __init__(
        self,
        settings: Settings,
        store: ObjectStore,
        runner: ProcessRunner | None = None,
        workspaces: WorkspaceManager | None = None,
        locks: KeyedLock | None = None,
    ):
        self.settings = settings
        self.runner = runner or SubprocessRunner(tail_lines=settings.output_tail_lines)
        self.workspaces = workspaces or WorkspaceManager(settings.workspace_root)
        self.locks = locks or KeyedLock()
        self.fetcher = SourceFetcher(self.runner, timeout=settings.fetch_timeout_seconds)
        self.builder = BuildExecutor(
            self.runner,
            install_timeout=settings.install_timeout_seconds,
            build_timeout=settings.build_timeout_seconds,
        )
        self.publisher = Publisher(store)
        self.logger = get_logger("pipeline")

    def site_url(self, owner_id: str, project_id: str) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}/site/{owner_id}/{project_id}/"

    async def deploy(self, request: DeploymentRequest) -> DeploymentResult:
        """Run every stage for ``request``.

        Raises:
            FetchError: If the source could not be retrieved.
            ArtifactMissingError: If there is nothing to publish.
            PublishError: If an upload failed.
        """
        owner_id, project_id = request.scope
        with structlog.contextvars.bound_contextvars(owner=owner_id, project=project_id):
            if self.locks.locked(request.scope):
                self.logger.info("pipeline.waiting_for_lock")
            async with self.locks.hold(request.scope):
                return await self._deploy_locked(request)

    async def _deploy_locked(self, request: DeploymentRequest) -> DeploymentResult:
        owner_id, project_id = request.scope
        start_time = time.perf_counter()
        self.logger.info("pipeline.started", source=request.source_location)

        workspace = await asyncio.to_thread(self.workspaces.prepare, owner_id, project_id)
        try:
            source_dir = workspace.path / SOURCE_DIR
            await self.fetcher.fetch(request.source_location, source_dir)

            project_root = await asyncio.to_thread(find_project_root, source_dir)
            outcome = await self.builder.build(project_root)

            artifact_dir = outcome.artifact_dir or await asyncio.to_thread(
                find_artifact_dir, project_root
            )
            published = await self.publisher.publish(artifact_dir, owner_id, project_id)
        except Exception as e:
            self.logger.error("pipeline.failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            await asyncio.to_thread(self.workspaces.cleanup, workspace)

        result = DeploymentResult(
            owner_id=owner_id,
            project_id=project_id,
            url=self.site_url(owner_id, project_id),
            degraded=outcome.degraded,
            strategy=outcome.strategy,
            uploaded=len(published.keys),
            duration_ms=int((time.perf_counter() - start_time) * 1000),
        )
        self.logger.info(
            "pipeline.completed",
            degraded=result.degraded,
            strategy=result.strategy,
            uploaded=result.uploaded,
            duration_ms=result.duration_ms,
            artifact=str(artifact_dir.relative_to(workspace.path)),
        )
        return result
