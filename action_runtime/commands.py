"""
Shell command execution for actions.

Runs a command through the shell and captures its output. A non-zero
exit status is reported in the result, never raised.
"""

import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when a command cannot be started or times out."""
    pass


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command invocation."""
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner:
    """
    Executes shell commands on behalf of actions.

    Output is read on two threads so neither pipe can fill up and stall
    the child; each line is also logged at debug level as it arrives.
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize command runner.

        Args:
            timeout: Default timeout in seconds (None waits indefinitely)
        """
        self.timeout = timeout

    def run(
        self,
        command: str,
        working_directory: Optional[str] = None,
        environment: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """
        Execute a shell command.

        Args:
            command: Shell command to execute
            working_directory: Working directory for the command
            environment: Variables merged over the inherited environment
            timeout: Overrides the runner's default timeout

        Returns:
            CommandResult with exit code and the full stdout/stderr text

        Raises:
            CommandError: If the command could not be started or timed out
        """
        timeout = timeout if timeout is not None else self.timeout
        env = {**os.environ, **(environment or {})}

        logger.debug(f"Executing command: {command}")

        try:
            process = subprocess.Popen(
                command,
                shell=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                cwd=working_directory,
                env=env
            )
        except OSError as e:
            logger.error(f"Failed to start command: {command}: {e}")
            raise CommandError(f"Failed to start command: {e}") from e

        stdout_chunks: List[str] = []
        stderr_chunks: List[str] = []

        def read_stream(stream, output_list, prefix):
            for line in stream:
                output_list.append(line)
                logger.debug(f"{prefix}{line.rstrip()}")
            stream.close()

        stdout_thread = threading.Thread(
            target=read_stream,
            args=(process.stdout, stdout_chunks, ""),
            daemon=True
        )
        stderr_thread = threading.Thread(
            target=read_stream,
            args=(process.stderr, stderr_chunks, "stderr: "),
            daemon=True
        )
        stdout_thread.start()
        stderr_thread.start()

        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            process.kill()
            process.wait()
            stdout_thread.join()
            stderr_thread.join()
            logger.error(f"Command timed out after {timeout}s: {command}")
            raise CommandError(f"Command timed out after {timeout}s") from e

        stdout_thread.join()
        stderr_thread.join()

        result = CommandResult(
            exit_code=process.returncode,
            stdout=''.join(stdout_chunks),
            stderr=''.join(stderr_chunks)
        )
        logger.debug(f"Command exited with code {result.exit_code}: {command}")
        return result
