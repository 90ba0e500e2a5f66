"""Unit tests for workspaces and per-key locking."""

import asyncio
from pathlib import Path

import pytest

from siteforge.core.locks import KeyedLock
from siteforge.core.workspace import WorkspaceManager


class TestWorkspaceManager:
    """Tests for WorkspaceManager."""

    def test_prepare_creates_keyed_directory(self, tmp_path: Path):
        manager = WorkspaceManager(tmp_path)

        workspace = manager.prepare("alice", "blog")

        assert workspace.path == tmp_path / "alice" / "blog"
        assert workspace.path.is_dir()
        assert (workspace.owner_id, workspace.project_id) == ("alice", "blog")

    def test_distinct_keys_get_distinct_paths(self, tmp_path: Path):
        manager = WorkspaceManager(tmp_path)

        assert manager.path_for("a-b", "c") != manager.path_for("a", "b-c")
        assert manager.path_for("a.b", "c") != manager.path_for("a", "b.c")

    def test_prepare_leaves_other_keys_alone(self, tmp_path: Path):
        manager = WorkspaceManager(tmp_path)
        first = manager.prepare("a", "b-c")
        (first.path / "keep.txt").write_text("mine")

        second = manager.prepare("a-b", "c")
        manager.cleanup(second)

        assert (first.path / "keep.txt").read_text() == "mine"

    def test_prepare_clears_previous_tree(self, tmp_path: Path):
        manager = WorkspaceManager(tmp_path)
        stale = manager.path_for("alice", "blog") / "source" / "old.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")

        workspace = manager.prepare("alice", "blog")

        assert list(workspace.path.iterdir()) == []

    def test_cleanup(self, tmp_path: Path):
        manager = WorkspaceManager(tmp_path)
        workspace = manager.prepare("alice", "blog")
        (workspace.path / "file.txt").write_text("x")

        manager.cleanup(workspace)

        assert not workspace.path.exists()

    def test_cleanup_of_missing_workspace_is_noop(self, tmp_path: Path):
        manager = WorkspaceManager(tmp_path)
        workspace = manager.prepare("alice", "blog")
        manager.cleanup(workspace)

        manager.cleanup(workspace)


class TestKeyedLock:
    """Tests for KeyedLock."""

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = KeyedLock()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold(("alice", "blog")):
                events.append(f"{name}:start")
                await asyncio.sleep(0.01)
                events.append(f"{name}:end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a:start", "a:end", "b:start", "b:end"]

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self):
        locks = KeyedLock()
        events: list[str] = []

        async def worker(key: tuple[str, str]) -> None:
            async with locks.hold(key):
                events.append(f"{key[1]}:start")
                await asyncio.sleep(0.01)
                events.append(f"{key[1]}:end")

        await asyncio.gather(worker(("alice", "blog")), worker(("alice", "shop")))

        assert events[:2] == ["blog:start", "shop:start"]

    @pytest.mark.asyncio
    async def test_locks_are_released(self):
        locks = KeyedLock()

        async with locks.hold("key"):
            assert locks.locked("key")

        assert not locks.locked("key")
        assert locks._locks == {}
