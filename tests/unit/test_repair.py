"""Unit tests for the heuristic repair engine."""

import json
from pathlib import Path

import pytest

from siteforge.core.repair import (
    DIRECTIVE_RULE,
    GENERIC_SCRIPTS,
    RepairEngine,
    RepairRule,
    apply_rules,
)

SERVER_WITH_HOOKS = """"use server";
import { useState } from "react";

export default function Counter() {
  const [count, setCount] = useState(0);
  return <button onClick={() => setCount(count + 1)}>{count}</button>;
}
"""

SERVER_ONLY = """'use server'

export async function save(data) {
  await db.insert(data);
}
"""


class TestDirectiveRule:
    """Tests for the server directive rewrite."""

    def test_rewrites_server_directive_with_client_hook(self):
        text, fired = apply_rules(SERVER_WITH_HOOKS, [DIRECTIVE_RULE])

        assert text.startswith('"use client";\n')
        assert "use server" not in text
        assert fired == [DIRECTIVE_RULE.name]

    def test_leaves_server_only_file_unchanged(self):
        text, fired = apply_rules(SERVER_ONLY, [DIRECTIVE_RULE])

        assert text == SERVER_ONLY
        assert fired == []

    def test_is_idempotent(self):
        once, _ = apply_rules(SERVER_WITH_HOOKS, [DIRECTIVE_RULE])
        twice, fired = apply_rules(once, [DIRECTIVE_RULE])

        assert twice == once
        assert fired == []

    @pytest.mark.parametrize(
        "hook",
        ["useEffect", "useContext", "useReducer", "useRef", "useSession", "useUser", "useAuth"],
    )
    def test_detects_client_only_apis(self, hook: str):
        text = f"'use server';\nconst value = {hook}();\n"

        assert DIRECTIVE_RULE.applies(text)

    def test_ignores_lookalike_identifiers(self):
        text = '"use server";\nconst x = reuseStateMachine();\n'

        assert not DIRECTIVE_RULE.applies(text)

    def test_rules_apply_in_order(self):
        upper = RepairRule("upper", lambda t: "a" in t, lambda t: t.replace("a", "A"))
        mark = RepairRule("mark", lambda t: "A" in t, lambda t: t + "!")

        text, fired = apply_rules("abc", [upper, mark])

        assert text == "Abc!"
        assert fired == ["upper", "mark"]


class TestRepairEngine:
    """Tests for RepairEngine file handling."""

    @pytest.fixture
    def engine(self) -> RepairEngine:
        return RepairEngine()

    @pytest.fixture
    def project(self, tmp_path: Path) -> Path:
        (tmp_path / "src" / "app").mkdir(parents=True)
        (tmp_path / "src" / "app" / "page.tsx").write_text(SERVER_WITH_HOOKS)
        (tmp_path / "src" / "actions.jsx").write_text(SERVER_ONLY)
        (tmp_path / "src" / "legacy.js").write_text(SERVER_WITH_HOOKS)
        (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
        (tmp_path / "node_modules" / "pkg" / "index.jsx").write_text(SERVER_WITH_HOOKS)
        (tmp_path / "package.json").write_text(json.dumps({"name": "site"}))
        return tmp_path

    def test_repair_sources_rewrites_component_files(self, engine: RepairEngine, project: Path):
        report = engine.repair_sources(project)

        assert report.rewritten_files == ["src/app/page.tsx"]
        assert (project / "src" / "app" / "page.tsx").read_text().startswith('"use client";')
        assert (project / "src" / "actions.jsx").read_text() == SERVER_ONLY
        assert (project / "src" / "legacy.js").read_text() == SERVER_WITH_HOOKS
        assert (project / "node_modules" / "pkg" / "index.jsx").read_text() == SERVER_WITH_HOOKS

    def test_repair_sources_twice_is_noop(self, engine: RepairEngine, project: Path):
        engine.repair_sources(project)
        first = (project / "src" / "app" / "page.tsx").read_text()

        report = engine.repair_sources(project)

        assert report.rewritten_files == []
        assert (project / "src" / "app" / "page.tsx").read_text() == first

    def test_undecodable_file_is_skipped(self, engine: RepairEngine, project: Path):
        (project / "src" / "broken.tsx").write_bytes(b"\xff\xfe\x00bad")

        report = engine.repair_sources(project)

        assert report.skipped == ["src/broken.tsx"]
        assert report.rewritten_files == ["src/app/page.tsx"]

    def test_creates_static_export_config(self, engine: RepairEngine, tmp_path: Path):
        assert engine.ensure_framework_config(tmp_path) is True

        config = (tmp_path / "next.config.js").read_text()
        assert "output: 'export'" in config
        assert "unoptimized: true" in config
        assert "ignoreDuringBuilds: true" in config
        assert "ignoreBuildErrors: true" in config

    def test_keeps_existing_config(self, engine: RepairEngine, tmp_path: Path):
        (tmp_path / "next.config.mjs").write_text("export default {}\n")

        assert engine.ensure_framework_config(tmp_path) is False
        assert not (tmp_path / "next.config.js").exists()

    def test_adds_missing_scripts(self, engine: RepairEngine, tmp_path: Path):
        (tmp_path / "package.json").write_text(json.dumps({"name": "site"}))

        added = engine.ensure_manifest_scripts(tmp_path)

        scripts = json.loads((tmp_path / "package.json").read_text())["scripts"]
        assert added == ["build", "export"]
        assert scripts == {"build": "next build", "export": "next export"}

    def test_keeps_existing_build_script(self, engine: RepairEngine, tmp_path: Path):
        manifest = {"scripts": {"build": "next build --debug", "export": "next export -o dist"}}
        (tmp_path / "package.json").write_text(json.dumps(manifest))

        added = engine.ensure_manifest_scripts(tmp_path)

        assert added == []
        assert json.loads((tmp_path / "package.json").read_text()) == manifest

    def test_unparseable_manifest_is_skipped(self, engine: RepairEngine, tmp_path: Path):
        (tmp_path / "package.json").write_text("{ not json")

        assert engine.ensure_manifest_scripts(tmp_path) == []
        assert (tmp_path / "package.json").read_text() == "{ not json"

    def test_run_reports_every_repair(self, engine: RepairEngine, project: Path):
        report = engine.run(project)

        assert report.rewritten_files == ["src/app/page.tsx"]
        assert report.created_config is True
        assert report.manifest_scripts_added == ["build", "export"]
        assert "framework_config" in report.summary()

    def test_convert_to_generic_requests_bundler(self, engine: RepairEngine, tmp_path: Path):
        manifest = {"scripts": {"build": "next build", "lint": "next lint"}, "dependencies": {"next": "14"}}
        (tmp_path / "package.json").write_text(json.dumps(manifest))

        needs_bundler = engine.convert_to_generic(tmp_path)

        scripts = json.loads((tmp_path / "package.json").read_text())["scripts"]
        assert needs_bundler is True
        assert scripts["build"] == GENERIC_SCRIPTS["build"]
        assert scripts["lint"] == "next lint"

    def test_convert_to_generic_with_vite_declared(self, engine: RepairEngine, tmp_path: Path):
        manifest = {"devDependencies": {"vite": "^5.0.0"}}
        (tmp_path / "package.json").write_text(json.dumps(manifest))

        assert engine.convert_to_generic(tmp_path) is False

    def test_unwritable_config_is_skipped(self, engine: RepairEngine, tmp_path: Path):
        # A directory in the config file's place makes the write fail
        (tmp_path / "next.config.js").mkdir()

        assert engine.ensure_framework_config(tmp_path) is False

    def test_unwritable_manifest_is_skipped(
        self, engine: RepairEngine, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        manifest = {"name": "site", "dependencies": {"next": "14"}}
        (tmp_path / "package.json").write_text(json.dumps(manifest))
        original_write_text = Path.write_text

        def failing_write_text(self, *args, **kwargs):
            if self.name == "package.json":
                raise OSError("read-only file system")
            return original_write_text(self, *args, **kwargs)

        monkeypatch.setattr(Path, "write_text", failing_write_text)

        assert engine.ensure_manifest_scripts(tmp_path) == []
        assert engine.convert_to_generic(tmp_path) is True
        assert json.loads((tmp_path / "package.json").read_text()) == manifest
