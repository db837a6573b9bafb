"""Run an external tool with a deadline.

Used for the related-test lookup: one short-lived process per tracked file,
whose output is needed in full and whose exit status decides the answer.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class ProcessLaunchError(Exception):
    """The tool could not be started at all (missing executable, bad cwd, ...)."""


@dataclass(frozen=True)
class ProcessOutcome:
    """What a finished (or killed) tool run produced."""

    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    """The deadline passed and the process was killed."""

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


async def run_process(command: Sequence[str], *, cwd: Path, timeout: float) -> ProcessOutcome:
    """Run *command* in *cwd*, killing it if it outlives *timeout* seconds.

    Raises:
        ProcessLaunchError: If the process cannot be started.
    """
    logger.debug("Running %s in %s (timeout %ss)", " ".join(command), cwd, timeout)
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ProcessLaunchError(f"Cannot start {command[0]}: {exc}") from exc

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        logger.warning("%s killed after %ss", command[0], timeout)
        return ProcessOutcome(returncode=-1, stdout="", stderr="", timed_out=True)

    return ProcessOutcome(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=out.decode("utf-8", errors="replace"),
        stderr=err.decode("utf-8", errors="replace"),
    )
