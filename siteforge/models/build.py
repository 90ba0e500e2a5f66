"""Build data models."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class ProjectKind(str, Enum):
    """Detected kind of project."""

    FRAMEWORK = "framework"
    GENERIC = "generic"


class BuildState(str, Enum):
    """States of the build state machine."""

    DETECT = "detect"
    FRAMEWORK_BUILD = "framework_build"
    GENERIC_BUILD = "generic_build"
    REPAIR = "repair"
    SUCCESS = "success"
    FALLBACK_SYNTHESIS = "fallback_synthesis"


class ProcessResult(BaseModel):
    """Structured result of one external command."""

    command: list[str]
    exit_code: int
    output_tail: str = ""
    duration_ms: int = 0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class AttemptRecord(BaseModel):
    """One named step the build executor ran."""

    strategy: str
    result: ProcessResult


class BuildOutcome(BaseModel):
    """Final state of a build, always carrying an artifact location."""

    status: BuildState
    project_kind: ProjectKind
    strategy: str | None = None
    artifact_dir: Path | None = None
    attempts: list[AttemptRecord] = Field(default_factory=list)
    transitions: list[BuildState] = Field(default_factory=list)
    repairs: list[str] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.status == BuildState.FALLBACK_SYNTHESIS


class RepairReport(BaseModel):
    """Repairs applied to a project root."""

    rewritten_files: list[str] = Field(default_factory=list)
    created_config: bool = False
    manifest_scripts_added: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)

    def summary(self) -> list[str]:
        applied = [f"directive:{path}" for path in self.rewritten_files]
        if self.created_config:
            applied.append("framework_config")
        applied.extend(f"script:{name}" for name in self.manifest_scripts_added)
        return applied
