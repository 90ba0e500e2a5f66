"""Heuristic source repairs applied before and between build attempts.

Each text repair is a ``RepairRule``: a predicate plus a rewrite over file
content, with no I/O. ``RepairEngine`` owns the file handling and never lets
a single unreadable file stop the build.
"""

import json
import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from siteforge.core.locator import MANIFEST_FILE
from siteforge.models.build import RepairReport
from siteforge.utils.logging import get_logger

logger = get_logger(__name__)

COMPONENT_EXTENSIONS = (".jsx", ".tsx")
FRAMEWORK_CONFIG_FILES = ("next.config.js", "next.config.mjs", "next.config.ts")
FRAMEWORK_DEPENDENCY = "next"
SKIPPED_DIRS = {"node_modules"}
FALLBACK_BUNDLER = "react-scripts"

SERVER_DIRECTIVE = re.compile(r"""["']use server["'];?[ \t]*\r?\n?""")
CLIENT_DIRECTIVE = '"use client";\n'
CLIENT_ONLY_APIS = re.compile(
    r"\buse(?:State|Effect|Context|Reducer|Callback|Memo|Ref|LayoutEffect"
    r"|User|Auth|Session|Organization)\b"
)

STATIC_EXPORT_CONFIG = """/** @type {import('next').NextConfig} */
const nextConfig = {
  output: 'export',
  trailingSlash: true,
  images: {
    unoptimized: true,
  },
  eslint: {
    ignoreDuringBuilds: true,
  },
  typescript: {
    ignoreBuildErrors: true,
  },
}

module.exports = nextConfig
"""

GENERIC_SCRIPTS = {
    "build": "react-scripts build || vite build || webpack --mode=production",
    "start": "react-scripts start || vite || webpack serve",
}


@dataclass(frozen=True)
class RepairRule:
    """A named pattern-match-and-rewrite over file content."""

    name: str
    applies: Callable[[str], bool]
    rewrite: Callable[[str], str]


def _server_file_uses_client_apis(text: str) -> bool:
    return bool(SERVER_DIRECTIVE.search(text)) and bool(CLIENT_ONLY_APIS.search(text))


def _rewrite_directive(text: str) -> str:
    return SERVER_DIRECTIVE.sub(CLIENT_DIRECTIVE, text)


DIRECTIVE_RULE = RepairRule(
    name="server_directive_with_client_apis",
    applies=_server_file_uses_client_apis,
    rewrite=_rewrite_directive,
)

SOURCE_RULES: tuple[RepairRule, ...] = (DIRECTIVE_RULE,)


def apply_rules(text: str, rules: Iterable[RepairRule]) -> tuple[str, list[str]]:
    """Run ``rules`` over ``text`` in order, in a single pass.

    Returns the rewritten text and the names of the rules that fired.
    """
    fired: list[str] = []
    for rule in rules:
        if rule.applies(text):
            text = rule.rewrite(text)
            fired.append(rule.name)
    return text, fired


def has_framework_config(project_root: Path) -> bool:
    return any((project_root / name).is_file() for name in FRAMEWORK_CONFIG_FILES)


def read_manifest(project_root: Path) -> dict[str, Any] | None:
    """Parse the project manifest, or ``None`` if missing or unreadable."""
    manifest_path = project_root / MANIFEST_FILE
    if not manifest_path.is_file():
        return None
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("repair.manifest_unreadable", path=str(manifest_path), error=str(e))
        return None
    if not isinstance(data, dict):
        logger.warning("repair.manifest_unreadable", path=str(manifest_path), error="not an object")
        return None
    return data


def write_manifest(project_root: Path, manifest: dict[str, Any]) -> bool:
    """Write the manifest back. False (and logged) if it could not be written."""
    manifest_path = project_root / MANIFEST_FILE
    try:
        manifest_path.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        logger.warning("repair.file_skipped", path=str(manifest_path), error=str(e))
        return False
    return True


def declared_dependencies(manifest: dict[str, Any]) -> dict[str, Any]:
    deps: dict[str, Any] = {}
    for section in ("dependencies", "devDependencies"):
        value = manifest.get(section)
        if isinstance(value, dict):
            deps.update(value)
    return deps


class RepairEngine:
    """Applies the known-safe repairs to a project root."""

    def __init__(self, rules: Iterable[RepairRule] = SOURCE_RULES):
        self.rules = tuple(rules)

    def run(self, project_root: Path) -> RepairReport:
        """Apply every pre-build repair and report what changed."""
        report = RepairReport()
        self.repair_sources(project_root, report)
        report.created_config = self.ensure_framework_config(project_root)
        report.manifest_scripts_added = self.ensure_manifest_scripts(project_root)
        logger.info("repair.completed", applied=report.summary(), skipped=len(report.skipped))
        return report

    def repair_sources(
        self, project_root: Path, report: RepairReport | None = None
    ) -> RepairReport:
        """Rewrite component files matched by the source rules."""
        report = report if report is not None else RepairReport()
        for path in self._component_files(project_root):
            try:
                original = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("repair.file_skipped", path=str(path), error=str(e))
                report.skipped.append(str(path.relative_to(project_root)))
                continue

            updated, fired = apply_rules(original, self.rules)
            if updated == original:
                continue

            try:
                path.write_text(updated, encoding="utf-8")
            except OSError as e:
                logger.warning("repair.file_skipped", path=str(path), error=str(e))
                report.skipped.append(str(path.relative_to(project_root)))
                continue

            relative = str(path.relative_to(project_root))
            logger.info("repair.file_rewritten", path=relative, rules=fired)
            report.rewritten_files.append(relative)
        return report

    def ensure_framework_config(self, project_root: Path) -> bool:
        """Write a static-export config when none exists. True if created."""
        if has_framework_config(project_root):
            return False
        config_path = project_root / FRAMEWORK_CONFIG_FILES[0]
        try:
            config_path.write_text(STATIC_EXPORT_CONFIG, encoding="utf-8")
        except OSError as e:
            logger.warning("repair.file_skipped", path=str(config_path), error=str(e))
            return False
        logger.info("repair.config_created", file=FRAMEWORK_CONFIG_FILES[0])
        return True

    def ensure_manifest_scripts(self, project_root: Path) -> list[str]:
        """Add missing ``build`` and ``export`` scripts. Returns names added."""
        manifest = read_manifest(project_root)
        if manifest is None:
            return []

        scripts = manifest.get("scripts")
        if not isinstance(scripts, dict):
            scripts = {}
            manifest["scripts"] = scripts

        added = []
        for name, command in (("build", "next build"), ("export", "next export")):
            if not scripts.get(name):
                scripts[name] = command
                added.append(name)

        if not added:
            return []
        if not write_manifest(project_root, manifest):
            return []
        logger.info("repair.scripts_added", scripts=added)
        return added

    def convert_to_generic(self, project_root: Path) -> bool:
        """Point the manifest at generic bundler scripts.

        Returns True when neither ``react-scripts`` nor ``vite`` is declared,
        meaning a fallback bundler has to be installed.
        """
        manifest = read_manifest(project_root)
        if manifest is None:
            return True

        scripts = manifest.get("scripts")
        if not isinstance(scripts, dict):
            scripts = {}
        manifest["scripts"] = {**scripts, **GENERIC_SCRIPTS}
        if write_manifest(project_root, manifest):
            logger.info("repair.converted_to_generic")

        deps = declared_dependencies(manifest)
        return FALLBACK_BUNDLER not in deps and "vite" not in deps

    def _component_files(self, project_root: Path) -> Iterator[Path]:
        stack = [project_root]
        while stack:
            current = stack.pop()
            try:
                entries = sorted(current.iterdir(), key=lambda p: p.name)
            except OSError as e:
                logger.warning("repair.directory_skipped", path=str(current), error=str(e))
                continue
            for entry in entries:
                if entry.is_symlink():
                    continue
                if entry.is_dir():
                    if entry.name.startswith(".") or entry.name in SKIPPED_DIRS:
                        continue
                    stack.append(entry)
                elif entry.suffix in COMPONENT_EXTENSIONS:
                    yield entry
