"""Custom exceptions for git-peek"""

from typing import Optional


class GitPeekError(Exception):
    """Base exception for all git-peek errors."""

    reason: Optional[str] = None


class RepositoryError(GitPeekError):
    """Base exception for errors about tracked repositories."""
    pass


class InvalidPathError(RepositoryError):
    """Exception raised when a path is missing or is not a directory."""

    reason = "The specified path does not exist or is not accessible"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Invalid path: {path}")


class NotAGitRepositoryError(RepositoryError):
    """Exception raised when a directory has no .git entry."""

    reason = "The specified directory does not contain a .git folder"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not a valid Git repository at: {path}")


class RepositoryAlreadyExistsError(RepositoryError):
    """Exception raised when adding a path that is already tracked."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"This repository has already been added: {path}")


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when no tracked repository has the given id."""

    def __init__(self, repository_id: str):
        self.repository_id = repository_id
        super().__init__(f"Repository not found: {repository_id}")


class GitCommandError(GitPeekError):
    """Base exception for errors running external commands."""

    def __init__(self, command: str, message: str):
        self.command = command
        super().__init__(message)


class CommandFailedError(GitCommandError):
    """Exception raised when a command exits with a non-zero status."""

    def __init__(self, command: str, output: str, exit_code: int):
        self.output = output
        self.exit_code = exit_code
        self.reason = output or None
        super().__init__(
            command, f"Git command '{command}' failed with exit code {exit_code}: {output}"
        )


class CommandTimeoutError(GitCommandError):
    """Exception raised when a command does not finish before its deadline."""

    reason = "The operation took too long to complete"

    def __init__(self, command: str, timeout: float):
        self.timeout = timeout
        super().__init__(command, f"Git command timed out after {timeout:g}s: {command}")


class PermissionDeniedError(GitCommandError):
    """Exception raised when the command could not access the repository."""

    reason = "Check file permissions for the repository"

    def __init__(self, path: str, command: str = "", message: Optional[str] = None):
        self.path = path
        error_msg = f"Permission denied accessing: {path}"
        if message:
            error_msg += f" ({message})"
        super().__init__(command, error_msg)


class GitNotFoundError(GitCommandError):
    """Exception raised when the executable cannot be found."""

    reason = "Please ensure Git is installed and accessible"

    def __init__(self, command: str):
        super().__init__(command, f"Executable not found for command: {command}")
