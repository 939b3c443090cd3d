"""Run external commands with a deadline"""

import os
import shlex
import signal
import subprocess
from typing import Optional, Sequence, Union

from git.cmd import Git
from git.exc import GitCommandNotFound

from git_peek.constants import DEFAULT_COMMAND_TIMEOUT
from git_peek.exceptions import (
    CommandFailedError,
    CommandTimeoutError,
    GitNotFoundError,
    PermissionDeniedError,
)
from git_peek.logging_config import get_logger

logger = get_logger(__name__)

# Never block on a credential prompt in a background refresh
_COMMAND_ENV = {"GIT_TERMINAL_PROMPT": "0"}

# Children get their own process group so helpers git spawns (ssh,
# git-remote-https) can be killed along with it
_USE_PROCESS_GROUP = hasattr(os, "killpg")

# Seconds to wait for pipes to close after the process group was killed
REAP_TIMEOUT = 1.0


class CommandRunner:
    """Runs commands in a working directory and returns their output.

    Processes are spawned through GitPython so the environment matches what the
    rest of GitPython does (C locale, so git's messages can be matched on).
    """

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT):
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self.timeout = timeout

    def run(
        self,
        command: Union[str, Sequence[str]],
        working_directory: str,
        timeout: Optional[float] = None,
    ) -> str:
        """Run a command and return its standard output.

        Args:
            command: Argument list, or a string that is split shell-style
            working_directory: Directory to run the command in
            timeout: Seconds to wait before the process is killed (default: runner timeout)

        Returns:
            Standard output with a single trailing newline removed

        Raises:
            CommandTimeoutError: The process did not finish in time; it has been killed and reaped
            CommandFailedError: The process exited with a non-zero status
            PermissionDeniedError: The process could not be started or git reported an access failure
            GitNotFoundError: The executable does not exist
        """
        argv = shlex.split(command) if isinstance(command, str) else list(command)
        command_str = " ".join(argv)
        deadline = self.timeout if timeout is None else timeout

        logger.debug(f"Running '{command_str}' in {working_directory} (timeout {deadline:g}s)")
        try:
            handle = Git(working_directory).execute(
                argv,
                as_process=True,
                env=_COMMAND_ENV,
                start_new_session=_USE_PROCESS_GROUP,
            )
        except GitCommandNotFound as e:
            if isinstance(e.__cause__, PermissionError):
                raise PermissionDeniedError(working_directory, command_str, str(e.__cause__)) from e
            raise GitNotFoundError(command_str) from e
        except PermissionError as e:
            raise PermissionDeniedError(working_directory, command_str, str(e)) from e

        proc = handle.proc
        try:
            stdout, stderr = proc.communicate(timeout=deadline)
        except subprocess.TimeoutExpired:
            self._terminate(proc)
            logger.warning(f"'{command_str}' timed out after {deadline:g}s in {working_directory}")
            raise CommandTimeoutError(command_str, deadline)

        output = self._decode(stdout)
        error_output = self._decode(stderr).strip()
        if output.endswith("\n"):
            output = output[:-1]

        if proc.returncode != 0:
            if "Permission denied" in error_output:
                raise PermissionDeniedError(
                    working_directory, command_str, error_output.splitlines()[0]
                )
            raise CommandFailedError(
                command_str, error_output or output.strip(), proc.returncode
            )

        return output

    @staticmethod
    def _decode(data) -> str:
        if data is None:
            return ""
        if isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        return data

    @staticmethod
    def _terminate(proc: subprocess.Popen) -> None:
        """Kill a timed-out process and everything it started, then reap it."""
        if _USE_PROCESS_GROUP:
            try:
                os.killpg(proc.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            except PermissionError as e:
                logger.debug(f"Could not kill process group {proc.pid}: {e}")
                proc.kill()
        else:
            proc.kill()

        try:
            proc.communicate(timeout=REAP_TIMEOUT)
        except subprocess.TimeoutExpired:
            # A descendant left the group and still holds the pipes
            for stream in (proc.stdout, proc.stderr):
                if stream is not None:
                    stream.close()
            proc.wait()
