"""Source retrieval into a workspace."""

import asyncio
import os
import shutil
from pathlib import Path

from siteforge.core.exceptions import FetchError
from siteforge.core.process import ProcessRunner
from siteforge.models.build import ProcessResult
from siteforge.utils.logging import get_logger

logger = get_logger(__name__)


class SourceFetcher:
    """Clones a repository with a primary and an alternate git invocation."""

    def __init__(self, runner: ProcessRunner, timeout: float = 300.0):
        self.runner = runner
        self.timeout = timeout

    async def fetch(self, source_location: str, destination: Path) -> None:
        """Materialize ``source_location`` at ``destination``.

        Raises:
            FetchError: If both strategies fail.
        """
        if not source_location.strip():
            raise FetchError(source_location, "source location is blank")

        await asyncio.to_thread(destination.parent.mkdir, parents=True, exist_ok=True)

        primary = await self.runner.run(
            [
                "git",
                "clone",
                "--config", "core.filemode=false",
                "--config", "core.autocrlf=false",
                "--",
                source_location,
                str(destination),
            ],
            cwd=destination.parent,
            timeout=self.timeout,
        )
        if primary.ok:
            logger.info("fetcher.cloned", strategy="primary", destination=str(destination))
            return

        logger.warning(
            "fetcher.primary_failed",
            source=source_location,
            exit_code=primary.exit_code,
            timed_out=primary.timed_out,
        )
        await asyncio.to_thread(self._reset, destination)

        alternate = await self.runner.run(
            ["git", "clone", "--", source_location, str(destination)],
            cwd=destination.parent,
            timeout=self.timeout,
            env={"GIT_CONFIG_GLOBAL": os.devnull, "GIT_CONFIG_NOSYSTEM": "1"},
        )
        if alternate.ok:
            logger.info("fetcher.cloned", strategy="alternate", destination=str(destination))
            return

        logger.error(
            "fetcher.failed",
            source=source_location,
            exit_code=alternate.exit_code,
            timed_out=alternate.timed_out,
        )
        raise FetchError(
            source_location,
            "both clone strategies failed",
            output_tail=self._describe(primary),
        )

    @staticmethod
    def _reset(destination: Path) -> None:
        # git refuses to clone into a non-empty directory
        if destination.exists():
            shutil.rmtree(destination, ignore_errors=True)
        destination.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _describe(result: ProcessResult) -> str:
        if result.timed_out:
            return "timed out"
        return result.output_tail
