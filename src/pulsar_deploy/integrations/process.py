"""
pulsar_deploy.integrations.process - Async Subprocess Runner
==============================================================

Runs an external command (the stellar CLI, cargo) without blocking the event
loop and with a hard timeout. Shared by the stellar CLI client and the
contract builder.
"""

from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path
from typing import Optional, Sequence

import structlog
from pydantic import BaseModel


logger = structlog.get_logger()


async def _reap(process: asyncio.subprocess.Process) -> None:
    """Kill ``process`` if it is still running and wait for it to exit."""
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    await process.wait()


class ProcessResult(BaseModel):
    """Captured result of a finished command."""

    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_process(
    argv: Sequence[str],
    *,
    timeout: float,
    cwd: Optional[Path] = None,
) -> ProcessResult:
    """Run ``argv`` to completion and capture its output.

    The process is killed on timeout and also when the caller is cancelled
    (for example by an enclosing asyncio.wait_for), so it never outlives
    the call.

    Args:
        argv: Executable and arguments.
        timeout: Seconds before the process is killed.
        cwd: Working directory.

    Returns:
        ProcessResult with decoded stdout/stderr.

    Raises:
        FileNotFoundError: If the executable does not exist.
        asyncio.TimeoutError: If the process ran longer than ``timeout``.
            The process is killed before this is raised.
    """
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd is not None else None,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _reap(process)
        logger.warning("process_timed_out", argv=list(argv), timeout=timeout)
        raise
    except BaseException:
        # Cancelled by an outer timeout or shutdown: the child must not outlive us
        await _reap(process)
        logger.warning("process_cancelled", argv=list(argv))
        raise

    return ProcessResult(
        argv=list(argv),
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
