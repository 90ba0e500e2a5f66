"""Utility functions for SiteForge."""

from siteforge.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
