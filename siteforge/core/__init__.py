"""Core functionality for SiteForge."""

from siteforge.core.exceptions import (
    ArtifactMissingError,
    ConfigurationError,
    FetchError,
    InvalidPathError,
    ObjectNotFoundError,
    PublishError,
    SiteForgeError,
)
from siteforge.core.pipeline import DeploymentPipeline

__all__ = [
    "ArtifactMissingError",
    "ConfigurationError",
    "FetchError",
    "InvalidPathError",
    "ObjectNotFoundError",
    "PublishError",
    "SiteForgeError",
    "DeploymentPipeline",
]
