"""
Command executor for shell steps and git introspection.
Runs one external process synchronously and captures its output.
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from ..exceptions import CommandError

logger = logging.getLogger(__name__)

# Exit code recorded when a command exceeds its timeout
TIMEOUT_EXIT_CODE = 124


@dataclass
class CommandResult:
    """Captured outcome of one process execution."""
    command: Union[str, List[str]]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and self.error is None

    def failure_text(self) -> str:
        """Best available description of why the command failed."""
        if self.stderr.strip():
            return self.stderr.strip()
        if self.error:
            return self.error
        return f"Command exited with code {self.exit_code}"


class CommandExecutor:
    """
    Executes external commands with output capture.

    String commands run through the shell so that pipes, redirection and
    quoting in workflow definitions behave as written. List commands run as
    an argv array without a shell.
    """

    def __init__(self, default_timeout_sec: Optional[float] = None):
        """
        Initialize command executor.

        Args:
            default_timeout_sec: Timeout applied when run() gets none
        """
        self.default_timeout_sec = default_timeout_sec

    def run(
        self,
        command: Union[str, List[str]],
        cwd: Optional[Path] = None,
        timeout_sec: Optional[float] = None,
        input_text: Optional[str] = None,
    ) -> CommandResult:
        """
        Execute a command and capture its output.

        Args:
            command: Shell command line or argv array
            cwd: Working directory (default: current directory)
            timeout_sec: Timeout in seconds
            input_text: Text written to stdin (stdin is closed when None)

        Returns:
            CommandResult; never raises for process failures
        """
        if not isinstance(command, (str, list)):
            raise ValueError(f"Invalid command type: {type(command)}. Expected str or list.")

        timeout = timeout_sec if timeout_sec is not None else self.default_timeout_sec
        start_time = time.time()

        try:
            completed = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                shell=isinstance(command, str),
                input=input_text,
                stdin=subprocess.DEVNULL if input_text is None else None,
                capture_output=True,
                text=True,
                errors='replace',
                timeout=timeout,
            )
            exit_code = completed.returncode
            stdout = completed.stdout or ""
            stderr = completed.stderr or ""
            error = None

        except subprocess.TimeoutExpired as e:
            exit_code = TIMEOUT_EXIT_CODE
            stdout = _decode(e.stdout)
            stderr = _decode(e.stderr)
            error = f"Command timed out after {timeout} seconds"

        except OSError as e:
            exit_code = 1
            stdout = ""
            stderr = str(e)
            error = str(e)

        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"Command {command!r} exited with {exit_code} in {duration_ms}ms")

        return CommandResult(
            command=command,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            error=error,
        )

    def check_output(self, command: Union[str, List[str]], cwd: Optional[Path] = None) -> str:
        """
        Execute a command and return its stdout.

        Raises:
            CommandError: If the command does not exit cleanly
        """
        result = self.run(command, cwd=cwd)
        if not result.ok:
            raise CommandError(command, result.exit_code, result.failure_text(), result.stdout)
        return result.stdout


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode('utf-8', errors='replace')
    return data
