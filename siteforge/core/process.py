"""External command execution.

The build pipeline never shells out directly; it goes through a
``ProcessRunner`` so tests can script exit codes without touching npm or git.
"""

import asyncio
import os
import signal
import time
from collections import deque
from pathlib import Path
from typing import Protocol

from siteforge.models.build import ProcessResult
from siteforge.utils.logging import get_logger

logger = get_logger(__name__)

# Exit code reported when the executable does not exist (matches sh)
COMMAND_NOT_FOUND = 127
TIMEOUT_EXIT_CODE = 124

READ_CHUNK_SIZE = 64 * 1024
MAX_LINE_CHARS = 2000
# How long to wait for a killed process group to be reaped
KILL_GRACE_SECONDS = 5.0


class ProcessRunner(Protocol):
    """Runs one command to completion and reports a structured result."""

    async def run(
        self,
        command: list[str],
        cwd: Path,
        timeout: float,
        env: dict[str, str] | None = None,
    ) -> ProcessResult: ...


class SubprocessRunner:
    """Runs commands with asyncio subprocesses, streaming output to the log.

    Each command runs in its own session so a timeout can kill the whole
    process group, including children such as ``node`` under ``npm``.
    """

    def __init__(self, tail_lines: int = 40, kill_grace: float = KILL_GRACE_SECONDS):
        self.tail_lines = tail_lines
        self.kill_grace = kill_grace

    async def run(
        self,
        command: list[str],
        cwd: Path,
        timeout: float,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        start_time = time.perf_counter()
        tail: deque[str] = deque(maxlen=self.tail_lines)

        process_env = os.environ.copy()
        if env:
            process_env.update(env)

        logger.info("process.started", command=" ".join(command), cwd=str(cwd))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=process_env,
                start_new_session=True,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.warning("process.spawn_failed", command=command[0], error=str(e))
            return ProcessResult(
                command=command,
                exit_code=COMMAND_NOT_FOUND,
                output_tail=str(e),
                duration_ms=self._elapsed_ms(start_time),
            )

        timed_out = False
        try:
            await asyncio.wait_for(self._drain(process, tail), timeout=timeout)
            exit_code = await process.wait()
        except asyncio.TimeoutError:
            timed_out = True
            await self._kill_group(process)
            exit_code = TIMEOUT_EXIT_CODE
            tail.append(f"timed out after {timeout:g}s")

        result = ProcessResult(
            command=command,
            exit_code=exit_code,
            output_tail="\n".join(tail),
            duration_ms=self._elapsed_ms(start_time),
            timed_out=timed_out,
        )
        logger.info(
            "process.completed",
            command=" ".join(command),
            exit_code=result.exit_code,
            timed_out=result.timed_out,
            duration_ms=result.duration_ms,
        )
        return result

    async def _drain(self, process: asyncio.subprocess.Process, tail: deque[str]) -> None:
        # Fixed-size reads: a single minified line can exceed the reader's line limit
        assert process.stdout is not None
        pending = b""
        while True:
            chunk = await process.stdout.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            *lines, pending = (pending + chunk).split(b"\n")
            for raw in lines:
                self._record(raw, tail)
            if len(pending) > READ_CHUNK_SIZE:
                self._record(pending, tail)
                pending = b""
        if pending:
            self._record(pending, tail)

    @staticmethod
    def _record(raw: bytes, tail: deque[str]) -> None:
        line = raw.decode(errors="replace").rstrip()
        if len(line) > MAX_LINE_CHARS:
            line = line[:MAX_LINE_CHARS] + "..."
        tail.append(line)
        logger.debug("process.output", line=line)

    async def _kill_group(self, process: asyncio.subprocess.Process) -> None:
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace)
        except asyncio.TimeoutError:
            # A descendant left the group and still holds the pipe open
            logger.warning("process.kill_incomplete", pid=process.pid)

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)
