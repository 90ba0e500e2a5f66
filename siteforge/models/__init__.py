"""Data models for SiteForge."""

from siteforge.models.build import (
    AttemptRecord,
    BuildOutcome,
    BuildState,
    ProcessResult,
    ProjectKind,
    RepairReport,
)
from siteforge.models.deployment import (
    DeploymentRequest,
    DeploymentResult,
    DeployResponse,
    ErrorResponse,
)

__all__ = [
    # Build models
    "AttemptRecord",
    "BuildOutcome",
    "BuildState",
    "ProcessResult",
    "ProjectKind",
    "RepairReport",
    # Deployment models
    "DeploymentRequest",
    "DeploymentResult",
    "DeployResponse",
    "ErrorResponse",
]
