"""Utility functions for running host commands."""

import asyncio
import os
import signal
from typing import List, Optional

from .exceptions import CommandSpawnError, CommandTimeoutError, ExecutionError
from .models import CommandResult
from ..logging_utility import logger


DEFAULT_TIMEOUT = 30.0
TERMINATE_GRACE = 2.0


def _signal_group(proc: asyncio.subprocess.Process, sig: int) -> None:
    """Signal the child's whole process group; the child leads its own session."""
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass
    except PermissionError:
        # the group may hold processes we cannot signal; the leader is still ours
        if proc.returncode is None:
            proc.send_signal(sig)


async def terminate_process(proc: asyncio.subprocess.Process, grace: float = TERMINATE_GRACE) -> None:
    """
    Stop a child and everything it started, then reap it.

    SIGTERM goes first so that sudo can relay it to the command it runs; whatever
    is still alive after ``grace`` seconds is killed.
    """
    _signal_group(proc, signal.SIGTERM)
    try:
        await asyncio.wait_for(proc.wait(), timeout=grace)
    except asyncio.TimeoutError:
        _signal_group(proc, signal.SIGKILL)
        await proc.wait()
    else:
        # the leader is gone; clear out stragglers still holding our pipes
        _signal_group(proc, signal.SIGKILL)


async def run_command(cmd: List[str], timeout: Optional[float] = None) -> CommandResult:
    """
    Run an external command and capture its output.

    Args:
        cmd: Command as list of strings, never passed through a shell
        timeout: Seconds before the process and its children are terminated

    Returns:
        CommandResult with exit code, stdout and stderr
    """
    if timeout is None:
        timeout = DEFAULT_TIMEOUT
    # arguments may carry credentials, so only the executable is logged
    logger.info(f"Running {cmd[0]} with {len(cmd) - 1} argument(s)")

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        logger.warning(f"Failed to start {cmd[0]}: {e}")
        raise CommandSpawnError(f"Failed to start {cmd[0]}: {e.strerror or e}")

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await terminate_process(proc)
        logger.warning(f"Command timed out after {timeout}s: {cmd[0]}")
        raise CommandTimeoutError(f"Command timed out after {timeout}s: {cmd[0]}")
    except asyncio.CancelledError:
        # the request went away; do not leave the child running detached
        await terminate_process(proc)
        raise

    result = CommandResult(
        args=list(cmd),
        exit_code=proc.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    if not result.ok:
        logger.warning(f"{cmd[0]} exited with {result.exit_code}: {result.stderr.strip()}")
    return result


def failure_message(result: CommandResult) -> str:
    """Diagnostic text for a failed command: stderr, else stdout, else the status."""
    return result.stderr.strip() or result.stdout.strip() or f"exit status {result.exit_code}"


def check_result(result: CommandResult) -> CommandResult:
    """Raise ExecutionError when the command exited non-zero."""
    if not result.ok:
        raise ExecutionError(failure_message(result), result)
    return result
