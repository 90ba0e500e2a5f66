"""Per-deployment working directories."""

import shutil
from dataclasses import dataclass
from pathlib import Path

from siteforge.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Workspace:
    """Filesystem scope owned by one in-flight deployment."""

    owner_id: str
    project_id: str
    path: Path


class WorkspaceManager:
    """Allocates and removes workspaces under a common root.

    Workspaces are keyed by ``(owner_id, project_id)`` as ``root/owner/project``;
    callers must hold the matching key lock while a workspace is in use. All
    methods block on the filesystem; async callers run them in a thread.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, owner_id: str, project_id: str) -> Path:
        # Ids never contain "/", so nesting keeps distinct keys apart
        return self.root / owner_id / project_id

    def prepare(self, owner_id: str, project_id: str) -> Workspace:
        """Clear any previous tree for the key and create an empty directory."""
        path = self.path_for(owner_id, project_id)
        if path.exists():
            self._remove(path)
        path.mkdir(parents=True, exist_ok=True)
        logger.info("workspace.prepared", path=str(path))
        return Workspace(owner_id=owner_id, project_id=project_id, path=path)

    def cleanup(self, workspace: Workspace) -> None:
        """Remove a workspace; failures are logged and left behind."""
        if workspace.path.exists():
            self._remove(workspace.path)

    def _remove(self, path: Path) -> None:
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.warning("workspace.cleanup_failed", path=str(path), error=str(e))
