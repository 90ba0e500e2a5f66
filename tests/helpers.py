"""Test doubles and sample repositories shared across the suite."""

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

from siteforge.models.build import ProcessResult

Effect = Callable[[Path, list[str]], None]


class FakeProcessRunner:
    """Scripted stand-in for ``SubprocessRunner``.

    Commands are described as ``"ENV=val cmd args"``. Exit codes and effects
    are looked up by exact description first, then by the longest configured
    prefix. A list of exit codes is consumed one call at a time; its last
    entry repeats.
    """

    def __init__(
        self,
        exit_codes: dict[str, int | list[int]] | None = None,
        effects: dict[str, Effect] | None = None,
        timeouts: set[str] | None = None,
        errors: dict[str, Exception] | None = None,
        default_exit_code: int = 0,
        delay: float = 0.0,
    ):
        self.exit_codes = {
            key: list(value) if isinstance(value, list) else [value]
            for key, value in (exit_codes or {}).items()
        }
        self.effects = effects or {}
        self.timeouts = timeouts or set()
        self.errors = errors or {}
        self.default_exit_code = default_exit_code
        self.delay = delay
        self.calls: list[str] = []
        self.cwds: list[Path] = []
        self.active = 0
        self.max_active = 0

    @staticmethod
    def describe(command: list[str], env: dict[str, str] | None = None) -> str:
        prefix = " ".join(f"{k}={v}" for k, v in sorted((env or {}).items()))
        return f"{prefix} {' '.join(command)}".strip()

    @staticmethod
    def _lookup(table: dict, key: str):
        if key in table:
            return key
        matches = [configured for configured in table if key.startswith(configured)]
        return max(matches, key=len) if matches else None

    async def run(
        self,
        command: list[str],
        cwd: Path,
        timeout: float,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        key = self.describe(command, env)
        self.calls.append(key)
        self.cwds.append(cwd)

        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1

        error_key = self._lookup(self.errors, key)
        if error_key is not None:
            raise self.errors[error_key]

        if self._lookup({k: None for k in self.timeouts}, key) is not None:
            return ProcessResult(command=command, exit_code=124, timed_out=True)

        matched = self._lookup(self.exit_codes, key)
        if matched is None:
            exit_code = self.default_exit_code
        else:
            codes = self.exit_codes[matched]
            exit_code = codes.pop(0) if len(codes) > 1 else codes[0]

        effect_key = self._lookup(self.effects, key)
        if exit_code == 0 and effect_key is not None:
            self.effects[effect_key](cwd, command)

        return ProcessResult(command=command, exit_code=exit_code, output_tail=key)


def write_repo(destination: Path, files: dict[str, str]) -> None:
    """Materialize ``files`` (relative path -> content) under ``destination``."""
    for relative, content in files.items():
        path = destination / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def clone_effect(files: dict[str, str]) -> Effect:
    """Effect for ``git clone``: write ``files`` into the clone destination."""

    def _effect(cwd: Path, command: list[str]) -> None:
        write_repo(Path(command[-1]), files)

    return _effect


def build_effect(output_dir: str, files: dict[str, str]) -> Effect:
    """Effect for a build command: write ``files`` into ``cwd/output_dir``."""

    def _effect(cwd: Path, command: list[str]) -> None:
        write_repo(cwd / output_dir, files)

    return _effect


SAMPLE_REPO = {
    "README.md": "# blog\n",
    "app/package.json": json.dumps(
        {"name": "blog", "scripts": {"build": "vite build"}, "devDependencies": {"vite": "^5.0.0"}}
    ),
    "app/src/main.jsx": "export default function App() { return null }\n",
}

SAMPLE_BUILD = {
    "index.html": "<!doctype html><title>blog</title>",
    "assets/app.js": "console.log('blog')",
    "assets/app.css": "body { margin: 0 }",
}

