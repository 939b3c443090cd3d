"""Data models for git-peek."""

from .status import RepositoryStatus
from .worktree import Worktree
from .repository import CommitDifference, Repository, RepositoryUpdate

__all__ = [
    "RepositoryStatus",
    "Worktree",
    "CommitDifference",
    "Repository",
    "RepositoryUpdate",
]
