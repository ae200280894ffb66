"""
ec2tester/utils/async_command_runner.py

Runs a local command in a subprocess, asynchronously, with optional retries and
an optional per-attempt timeout. A timed-out or cancelled child process is
killed and reaped before control returns, so no attempt leaves a process behind.

Usage example:
    from ec2tester.utils.async_command_runner import run_command, CommandError

    try:
        output = await run_command(
            ["kubectl", "version", "--client"],
            timeout=15.0,
            combine_output=True,
        )
        print(output)
    except CommandError as err:
        print(f"Command failed: {err}")
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import Dict, List, Optional

from ec2tester.utils.async_retry import async_retry

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Represents a failure when executing a command.

    Attributes:
        message (str): The error message describing the command failure.
        return_code (Optional[int]): The exit code if available.
        output (str): Captured output, empty when the command is sensitive.
    """

    def __init__(
        self,
        message: str,
        return_code: Optional[int] = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.return_code = return_code
        self.output = output


class CommandTimeoutError(CommandError):
    """The command did not finish within its timeout and was killed."""


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    """Kill the child and everything it started, then reap it."""
    if proc.returncode is None:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    await proc.wait()


async def run_command(
    command: List[str],
    *,
    sensitive: bool = True,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[str] = None,
    input_data: Optional[str] = None,
    successful_return_codes: Optional[List[int]] = None,
    retries: int = 1,
    retry_delay: float = 1.0,
    timeout: Optional[float] = None,
    combine_output: bool = False,
) -> str:
    """
    Executes a local command and returns its stdout.

    When `sensitive=True`, the command and its output are left out of the
    raised error message.

    Args:
        command (List[str]):
            The command and arguments to execute.
        sensitive (bool):
            If True, hides command details in the raised error.
        env (Optional[Dict[str, str]]):
            Additional environment variables to add or override.
        cwd (Optional[str]):
            Working directory for the command.
        input_data (Optional[str]):
            If provided, passed to stdin.
        successful_return_codes (Optional[List[int]]):
            Return codes that are not errors. Defaults to [0].
        retries (int):
            Total number of attempts. Defaults to 1 (no retry); loops that
            track their own deadline keep it at 1.
        retry_delay (float):
            Delay in seconds between attempts.
        timeout (Optional[float]):
            Seconds allowed per attempt. None waits forever.
        combine_output (bool):
            If True, stderr is merged into the returned stdout.

    Returns:
        str: The captured (stripped) stdout of the command on success.

    Raises:
        CommandTimeoutError: If an attempt exceeds `timeout`.
        CommandError: If the command exits with an unexpected return code.
    """
    ok_codes = successful_return_codes or [0]

    @async_retry(retries=retries, delay=retry_delay, retry_on=(CommandError,))
    async def _inner_run_command() -> str:
        proc_env = None
        if env:
            proc_env = os.environ.copy()
            proc_env.update(env)

        stdin = asyncio.subprocess.PIPE if input_data else asyncio.subprocess.DEVNULL
        stderr = asyncio.subprocess.STDOUT if combine_output else asyncio.subprocess.PIPE

        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=stdin,
            stdout=asyncio.subprocess.PIPE,
            stderr=stderr,
            env=proc_env,
            cwd=cwd,
            start_new_session=True,
        )

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(input=input_data.encode() if input_data else None),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            await _terminate(proc)
            detail = "" if sensitive else f"\nCommand: {' '.join(command)}"
            raise CommandTimeoutError(
                f"Command timed out after {timeout}s.{detail}", proc.returncode
            ) from None
        except asyncio.CancelledError:
            await _terminate(proc)
            raise

        stdout_str = stdout_bytes.decode(errors="replace").strip()
        stderr_str = (stderr_bytes or b"").decode(errors="replace").strip()

        if proc.returncode not in ok_codes:
            detail = ""
            if not sensitive:
                detail = (
                    f"\nCommand: {' '.join(command)}"
                    f"\nStdout: {stdout_str}"
                    f"\nStderr: {stderr_str}"
                )
            raise CommandError(
                f"Command failed with return code {proc.returncode}.{detail}",
                proc.returncode,
                output="" if sensitive else stdout_str,
            )

        return stdout_str

    return await _inner_run_command()
