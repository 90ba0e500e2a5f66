"""Locating the buildable project root and its build output."""

from pathlib import Path

from siteforge.utils.logging import get_logger

logger = get_logger(__name__)

MANIFEST_FILE = "package.json"
MAX_SEARCH_DEPTH = 3

# Priority order; export-style output beats framework-internal output
ARTIFACT_CANDIDATES = ("out", "dist", "build", ".next", "public")
DEFAULT_ARTIFACT_DIR = "build"


def _child_dirs(path: Path) -> list[Path]:
    try:
        entries = sorted(path.iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.warning("locator.unreadable_directory", path=str(path), error=str(e))
        return []
    return [
        entry
        for entry in entries
        if entry.is_dir() and not entry.is_symlink() and not entry.name.startswith(".")
    ]


def find_project_root(root: Path, max_depth: int = MAX_SEARCH_DEPTH) -> Path:
    """Return the first directory holding a manifest, or ``root`` itself.

    The search is a pre-order walk in name order, never deeper than
    ``max_depth`` levels below ``root`` and never into dot-prefixed
    directories, so identical trees always yield the same answer.
    """
    if (root / MANIFEST_FILE).is_file():
        logger.info("locator.project_root", path=".")
        return root

    # (directory, depth); reversed push keeps pre-order in name order
    stack: list[tuple[Path, int]] = [(root, 0)]
    while stack:
        current, depth = stack.pop()
        if depth > 0 and (current / MANIFEST_FILE).is_file():
            logger.info("locator.project_root", path=str(current.relative_to(root)))
            return current
        if depth == max_depth:
            continue
        for child in reversed(_child_dirs(current)):
            stack.append((child, depth + 1))

    logger.warning("locator.no_manifest", root=str(root))
    return root


def _contains_html(path: Path) -> bool:
    try:
        return any(
            entry.is_file() and entry.suffix.lower() == ".html"
            for entry in path.iterdir()
        )
    except OSError:
        return False


def find_artifact_dir(project_root: Path) -> Path:
    """Pick the first candidate output directory that directly holds HTML.

    Falls back to ``build`` even when it does not exist, leaving the
    publisher to report a missing artifact.
    """
    for name in ARTIFACT_CANDIDATES:
        candidate = project_root / name
        if candidate.is_dir() and _contains_html(candidate):
            logger.info("locator.artifact", directory=name)
            return candidate

    logger.warning("locator.no_artifact", default=DEFAULT_ARTIFACT_DIR)
    return project_root / DEFAULT_ARTIFACT_DIR
