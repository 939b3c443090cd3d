"""Worktree data models."""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Worktree:
    """A working directory attached to a repository."""

    path: str
    branch: str  # Empty when the worktree has a detached HEAD
    commit: str
    is_main: bool  # Is this the main working tree?

    def to_dict(self) -> Dict:
        return {
            "path": self.path,
            "branch": self.branch,
            "commit": self.commit,
            "is_main": self.is_main,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Worktree":
        return cls(
            path=data["path"],
            branch=data.get("branch", ""),
            commit=data.get("commit", ""),
            is_main=bool(data.get("is_main", False)),
        )

    def __str__(self) -> str:
        """String representation of worktree."""
        main_marker = " (main)" if self.is_main else ""
        branch = self.branch or "(detached)"
        return f"{branch} @ {self.path}{main_marker}"
