"""
Command execution engine.

ICMP echoes are delegated to the host ``ping`` command; this module runs such
commands as asyncio subprocesses with a hard timeout.
"""

import asyncio
import time
from typing import List

from loguru import logger
from pydantic import BaseModel


class CommandResult(BaseModel):
    """Result of a command execution."""

    command: str
    return_code: int
    stdout: str
    stderr: str
    duration: float
    success: bool
    timed_out: bool = False


class CommandExecutor:
    """Execute system commands without blocking the event loop."""

    async def run_command(
        self,
        command: List[str],
        timeout: float = 30.0,
    ) -> CommandResult:
        """
        Execute a system command.

        Args:
            command: Command and arguments as a list
            timeout: Timeout in seconds; the process is killed when it elapses

        Returns:
            CommandResult object (never raises for process failures)
        """
        start_time = time.monotonic()
        cmd_str = " ".join(command)

        logger.debug(f"Executing command: {cmd_str}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            duration = time.monotonic() - start_time
            logger.error(f"Command failed to start: {cmd_str} - {e}")
            return CommandResult(
                command=cmd_str,
                return_code=-1,
                stdout="",
                stderr=str(e),
                duration=duration,
                success=False,
            )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            duration = time.monotonic() - start_time
            logger.debug(f"Command timed out after {timeout}s: {cmd_str}")
            return CommandResult(
                command=cmd_str,
                return_code=-1,
                stdout="",
                stderr=f"Command timed out after {timeout} seconds",
                duration=duration,
                success=False,
                timed_out=True,
            )

        duration = time.monotonic() - start_time
        logger.debug(
            f"Command completed: {cmd_str} "
            f"(return code: {process.returncode}, duration: {duration:.2f}s)"
        )

        return CommandResult(
            command=cmd_str,
            return_code=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            duration=duration,
            success=(process.returncode == 0),
        )
