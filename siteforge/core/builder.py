"""Build Executor.

Runs a framework-aware, ordered chain of build strategies against a project
root. The chain always ends in either SUCCESS or FALLBACK_SYNTHESIS; a failed
command is a transition to the next strategy, never an exception.
"""

import asyncio
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from siteforge.core.process import ProcessRunner
from siteforge.core.repair import (
    FALLBACK_BUNDLER,
    FRAMEWORK_DEPENDENCY,
    RepairEngine,
    declared_dependencies,
    has_framework_config,
    read_manifest,
)
from siteforge.models.build import (
    AttemptRecord,
    BuildOutcome,
    BuildState,
    ProcessResult,
    ProjectKind,
)
from siteforge.utils.logging import get_logger

# Exit code recorded when the runner itself raised
RUNNER_ERROR_EXIT_CODE = -1

FALLBACK_DIR = "build"
EXPORT_OUTPUT_DIRS = ("out", "dist")


@dataclass(frozen=True)
class BuildAttempt:
    """A named command in a ranked build chain."""

    name: str
    command: tuple[str, ...]
    env: dict[str, str] = field(default_factory=dict)


INSTALL = BuildAttempt("install", ("npm", "install", "--legacy-peer-deps"))
INSTALL_FALLBACK_BUNDLER = BuildAttempt(
    "install_fallback_bundler", ("npm", "install", FALLBACK_BUNDLER, "--save-dev")
)

FRAMEWORK_BUILD_CHAIN: tuple[BuildAttempt, ...] = (
    BuildAttempt("framework_build", ("npm", "run", "build")),
)
FRAMEWORK_EXPORT = BuildAttempt("framework_export", ("npx", "next", "export"))

GENERIC_BUILD_CHAIN: tuple[BuildAttempt, ...] = (
    BuildAttempt("npm_build", ("npm", "run", "build")),
    BuildAttempt("npm_build_force", ("npm", "run", "build", "--", "--force")),
    BuildAttempt("npm_build_ci_false", ("npm", "run", "build"), env={"CI": "false"}),
    BuildAttempt("npm_build_legacy_peer_deps", ("npm", "run", "build", "--legacy-peer-deps")),
    BuildAttempt("vite_build", ("npx", "vite", "build")),
    BuildAttempt("webpack_build", ("npx", "webpack", "--mode=production")),
)

FALLBACK_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Deployment Completed With Build Issues</title>
    <style>
        body { font-family: Arial, sans-serif; text-align: center; padding: 50px; }
        .container { max-width: 600px; margin: 0 auto; }
        .error { color: #ff6b6b; }
        ul, ol { text-align: left; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Deployment completed</h1>
        <p>Your project was deployed, but its build could not be completed, so this placeholder page is being served instead.</p>
        <p class="error">Common causes:</p>
        <ul>
            <li>Server components using client-side hooks</li>
            <li>TypeScript or ESLint errors</li>
            <li>Missing dependencies or configuration</li>
        </ul>
        <p><strong>Next steps:</strong></p>
        <ol>
            <li>Fix the build errors in your repository</li>
            <li>Redeploy the project</li>
        </ol>
    </div>
</body>
</html>
"""


def detect_project_kind(project_root: Path) -> ProjectKind:
    """Framework path when a framework config or dependency is present."""
    if has_framework_config(project_root):
        return ProjectKind.FRAMEWORK
    manifest = read_manifest(project_root)
    if manifest and FRAMEWORK_DEPENDENCY in declared_dependencies(manifest):
        return ProjectKind.FRAMEWORK
    return ProjectKind.GENERIC


class BuildExecutor:
    """Drives one project through the build state machine."""

    def __init__(
        self,
        runner: ProcessRunner,
        repair_engine: RepairEngine | None = None,
        install_timeout: float = 600.0,
        build_timeout: float = 900.0,
        generic_chain: tuple[BuildAttempt, ...] = GENERIC_BUILD_CHAIN,
    ):
        self.runner = runner
        self.repair_engine = repair_engine or RepairEngine()
        self.install_timeout = install_timeout
        self.build_timeout = build_timeout
        self.generic_chain = generic_chain
        self.logger = get_logger("builder")

    async def build(self, project_root: Path) -> BuildOutcome:
        """Build ``project_root``; always returns an outcome with an artifact path."""
        kind = await asyncio.to_thread(detect_project_kind, project_root)
        outcome = BuildOutcome(
            status=BuildState.DETECT,
            project_kind=kind,
            transitions=[BuildState.DETECT],
        )
        manifest = await asyncio.to_thread(read_manifest, project_root) or {}
        self.logger.info(
            "builder.started",
            project=manifest.get("name", "project"),
            kind=kind.value,
        )

        if kind == ProjectKind.FRAMEWORK:
            succeeded = await self._framework_path(project_root, outcome)
            if not succeeded:
                self._transition(outcome, BuildState.REPAIR)
                await self._degrade_to_generic(project_root, outcome)
                succeeded = await self._generic_path(project_root, outcome)
        else:
            succeeded = await self._generic_path(project_root, outcome)

        if succeeded:
            self._transition(outcome, BuildState.SUCCESS)
        else:
            self._transition(outcome, BuildState.FALLBACK_SYNTHESIS)
            outcome.artifact_dir = await asyncio.to_thread(self._synthesize_fallback, project_root)
            outcome.strategy = "fallback_synthesis"

        self.logger.info(
            "builder.completed",
            status=outcome.status.value,
            strategy=outcome.strategy,
            attempts=len(outcome.attempts),
        )
        return outcome

    async def _framework_path(self, project_root: Path, outcome: BuildOutcome) -> bool:
        self._transition(outcome, BuildState.FRAMEWORK_BUILD)
        await self._install(project_root, outcome)
        report = await asyncio.to_thread(self.repair_engine.run, project_root)
        outcome.repairs.extend(report.summary())

        # A failed primary is not re-run; the degraded path takes over
        for attempt in FRAMEWORK_BUILD_CHAIN:
            result = await self._run(attempt, project_root, outcome, self.build_timeout)
            if result.ok:
                outcome.strategy = attempt.name
                await self._export(project_root, outcome)
                return True
            self.logger.warning("builder.framework_build_failed", strategy=attempt.name)
        return False

    async def _export(self, project_root: Path, outcome: BuildOutcome) -> None:
        result = await self._run(FRAMEWORK_EXPORT, project_root, outcome, self.build_timeout)
        if result.ok:
            return
        existing = [name for name in EXPORT_OUTPUT_DIRS if (project_root / name).is_dir()]
        # Newer framework versions export during build, so this is not fatal
        self.logger.warning(
            "builder.export_failed",
            output_dir=existing[0] if existing else None,
        )

    async def _degrade_to_generic(self, project_root: Path, outcome: BuildOutcome) -> None:
        needs_bundler = await asyncio.to_thread(self.repair_engine.convert_to_generic, project_root)
        rerun = await asyncio.to_thread(self.repair_engine.repair_sources, project_root)
        outcome.repairs.extend(rerun.summary())
        outcome.repairs.append("generic_scripts")
        if needs_bundler:
            await self._run(
                INSTALL_FALLBACK_BUNDLER, project_root, outcome, self.install_timeout
            )

    async def _generic_path(self, project_root: Path, outcome: BuildOutcome) -> bool:
        self._transition(outcome, BuildState.GENERIC_BUILD)
        await self._install(project_root, outcome)
        for attempt in self.generic_chain:
            result = await self._run(attempt, project_root, outcome, self.build_timeout)
            if result.ok:
                outcome.strategy = attempt.name
                return True
            self.logger.warning("builder.strategy_failed", strategy=attempt.name)
        return False

    async def _install(self, project_root: Path, outcome: BuildOutcome) -> None:
        result = await self._run(INSTALL, project_root, outcome, self.install_timeout)
        if not result.ok:
            self.logger.warning("builder.install_failed", exit_code=result.exit_code)

    async def _run(
        self,
        attempt: BuildAttempt,
        project_root: Path,
        outcome: BuildOutcome,
        timeout: float,
    ) -> ProcessResult:
        self.logger.info("builder.attempt", strategy=attempt.name)
        command = list(attempt.command)
        try:
            result = await self.runner.run(
                command,
                cwd=project_root,
                timeout=timeout,
                env=dict(attempt.env) or None,
            )
        except Exception as e:
            # Runner errors count as a failed attempt
            self.logger.error("builder.runner_error", strategy=attempt.name, error=str(e))
            result = ProcessResult(
                command=command,
                exit_code=RUNNER_ERROR_EXIT_CODE,
                output_tail=f"{type(e).__name__}: {e}",
            )
        outcome.attempts.append(AttemptRecord(strategy=attempt.name, result=result))
        return result

    def _synthesize_fallback(self, project_root: Path) -> Path:
        """Replace any partial build output with the placeholder page."""
        fallback_dir = project_root / FALLBACK_DIR
        if fallback_dir.is_dir() and not fallback_dir.is_symlink():
            shutil.rmtree(fallback_dir, ignore_errors=True)
        elif fallback_dir.exists() or fallback_dir.is_symlink():
            fallback_dir.unlink()
        fallback_dir.mkdir(parents=True, exist_ok=True)
        (fallback_dir / "index.html").write_text(FALLBACK_PAGE, encoding="utf-8")
        self.logger.warning("builder.fallback_synthesized", path=str(fallback_dir))
        return fallback_dir

    @staticmethod
    def _transition(outcome: BuildOutcome, state: BuildState) -> None:
        outcome.status = state
        outcome.transitions.append(state)
