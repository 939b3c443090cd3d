"""Git-related services for git-peek."""

from .command_runner import CommandRunner
from .status_parser import parse_status
from .worktrees import parse_worktree_list
from .probe import RepositoryProbe

__all__ = [
    "CommandRunner",
    "parse_status",
    "parse_worktree_list",
    "RepositoryProbe",
]
