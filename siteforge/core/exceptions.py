"""Custom exceptions for SiteForge."""

from typing import Any


class SiteForgeError(Exception):
    """Base exception for SiteForge.

    ``message`` and ``details`` are for logs only. Responses use
    ``public_message`` so internal paths never reach a caller.
    """

    public_message = "Deployment failed."

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(SiteForgeError):
    """Required configuration is missing or invalid."""

    public_message = "Service misconfigured."


class FetchError(SiteForgeError):
    """Every source retrieval strategy failed."""

    def __init__(self, source_location: str, message: str, output_tail: str = ""):
        details: dict[str, Any] = {"source_location": source_location}
        if output_tail:
            details["output_tail"] = output_tail
        super().__init__(f"Fetch failed: {message}", details)
        self.source_location = source_location


class ArtifactMissingError(SiteForgeError):
    """No build output directory exists to publish."""

    def __init__(self, path: str):
        super().__init__(f"Artifact directory missing: {path}", {"path": path})
        self.path = path


class PublishError(SiteForgeError):
    """Uploading an object to storage failed."""

    def __init__(self, key: str, message: str):
        super().__init__(f"Publish failed for {key}: {message}", {"key": key})
        self.key = key


class ObjectNotFoundError(SiteForgeError):
    """Requested key is absent from storage."""

    public_message = "Not found"

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}", {"key": key})
        self.key = key


class InvalidPathError(SiteForgeError):
    """A request path cannot be mapped to a storage key."""

    public_message = "Not found"

    def __init__(self, path: str):
        super().__init__(f"Invalid path: {path}", {"path": path})
        self.path = path
