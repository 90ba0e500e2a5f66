"""Pytest configuration and fixtures."""

import os
from pathlib import Path

os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
from httpx import ASGITransport, AsyncClient

from siteforge.api.deps import get_object_store, get_pipeline
from siteforge.config import Settings
from siteforge.core.pipeline import DeploymentPipeline
from siteforge.core.storage import InMemoryObjectStore
from siteforge.main import app
from tests.helpers import (
    SAMPLE_BUILD,
    SAMPLE_REPO,
    FakeProcessRunner,
    build_effect,
    clone_effect,
)


@pytest.fixture
def runner_factory() -> type[FakeProcessRunner]:
    """The fake runner class, for tests that script their own commands."""
    return FakeProcessRunner


@pytest.fixture
def fake_runner() -> FakeProcessRunner:
    """A runner whose clone yields ``SAMPLE_REPO`` and whose build yields ``SAMPLE_BUILD``."""
    return FakeProcessRunner(
        effects={
            "git clone": clone_effect(SAMPLE_REPO),
            "npm run build": build_effect("dist", SAMPLE_BUILD),
        }
    )


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing the workspace at a temporary directory."""
    return Settings(
        _env_file=None,
        storage_backend="memory",
        workspace_root=tmp_path / "workspaces",
        public_base_url="http://test",
    )


@pytest.fixture
def memory_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def pipeline(
    test_settings: Settings,
    memory_store: InMemoryObjectStore,
    fake_runner: FakeProcessRunner,
) -> DeploymentPipeline:
    return DeploymentPipeline(test_settings, memory_store, runner=fake_runner)


@pytest.fixture
async def client(
    memory_store: InMemoryObjectStore,
    pipeline: DeploymentPipeline,
) -> AsyncClient:
    """Create an async test client backed by an in-memory store."""
    app.dependency_overrides[get_object_store] = lambda: memory_store
    app.dependency_overrides[get_pipeline] = lambda: pipeline

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
