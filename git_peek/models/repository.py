"""Repository model and probe results"""
import copy
import os
import uuid
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from git_peek.constants import SYMBOL_AHEAD, SYMBOL_BEHIND
from git_peek.models.status import RepositoryStatus
from git_peek.models.worktree import Worktree


@dataclass(frozen=True)
class CommitDifference:
    """Divergence of the current branch from its upstream."""
    ahead: int = 0
    behind: int = 0

    @classmethod
    def none(cls) -> "CommitDifference":
        """No upstream, or nothing to report."""
        return cls(0, 0)


@dataclass
class RepositoryUpdate:
    """Everything one refresh of a repository found out.

    Applied to a Repository in one step so readers never see half of it.
    """
    status: RepositoryStatus
    branch: str
    remote_url: Optional[str]
    worktrees: Tuple[Worktree, ...]
    commit_difference: CommitDifference
    is_worktree: bool = False
    main_worktree_path: Optional[str] = None
    # Slow path: fetch from the remote, then recount ahead/behind
    remote_refresh: Optional["Future[CommitDifference]"] = field(default=None, compare=False)


@dataclass
class Repository:
    """A tracked Git repository and the last state seen for it."""
    path: str
    name: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    current_branch: Optional[str] = None
    git_status: Optional[RepositoryStatus] = None
    last_fetched_at: Optional[datetime] = None
    remote_url: Optional[str] = None
    worktrees: Optional[Tuple[Worktree, ...]] = None
    is_worktree: Optional[bool] = None
    main_worktree_path: Optional[str] = None
    commits_behind: Optional[int] = None
    commits_ahead: Optional[int] = None
    is_pulling: bool = False  # Transient, never persisted

    def __post_init__(self):
        if not self.name:
            self.name = os.path.basename(self.path.rstrip(os.sep)) or self.path

    @property
    def has_changes(self) -> bool:
        return bool(self.git_status and self.git_status.has_changes)

    @property
    def sync_label(self) -> str:
        """Short ahead/behind text, e.g. '↑2 ↓1'."""
        if self.commits_ahead is None and self.commits_behind is None:
            return "-"
        parts = []
        if self.commits_ahead:
            parts.append(f"{SYMBOL_AHEAD}{self.commits_ahead}")
        if self.commits_behind:
            parts.append(f"{SYMBOL_BEHIND}{self.commits_behind}")
        return " ".join(parts) if parts else "synced"

    def apply_update(self, update: RepositoryUpdate) -> None:
        """Merge a complete refresh result."""
        self.git_status = update.status
        self.current_branch = update.branch
        self.remote_url = update.remote_url
        self.worktrees = tuple(update.worktrees)
        self.is_worktree = update.is_worktree
        self.main_worktree_path = update.main_worktree_path
        self.apply_commit_difference(update.commit_difference)
        self.last_fetched_at = datetime.now(timezone.utc)

    def apply_commit_difference(self, difference: CommitDifference) -> None:
        self.commits_ahead = difference.ahead
        self.commits_behind = difference.behind

    def copy(self) -> "Repository":
        """Independent copy for handing out to readers."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict:
        """Convert to a JSON-friendly dictionary (is_pulling is left out)."""
        return {
            "id": self.id,
            "path": self.path,
            "name": self.name,
            "current_branch": self.current_branch,
            "git_status": self.git_status.to_dict() if self.git_status else None,
            "last_fetched_at": self.last_fetched_at.isoformat() if self.last_fetched_at else None,
            "remote_url": self.remote_url,
            "worktrees": [wt.to_dict() for wt in self.worktrees] if self.worktrees is not None else None,
            "is_worktree": self.is_worktree,
            "main_worktree_path": self.main_worktree_path,
            "commits_behind": self.commits_behind,
            "commits_ahead": self.commits_ahead,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Repository":
        """Rebuild a repository from its dictionary form.

        Raises:
            KeyError, TypeError, ValueError: if required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise TypeError(f"repository entry must be an object, got {type(data).__name__}")

        status_data = data.get("git_status")
        worktree_data: Optional[List[Dict]] = data.get("worktrees")
        fetched_at = data.get("last_fetched_at")

        return cls(
            id=str(data["id"]),
            path=str(data["path"]),
            name=data.get("name") or "",
            current_branch=data.get("current_branch"),
            git_status=RepositoryStatus.from_dict(status_data) if status_data else None,
            last_fetched_at=datetime.fromisoformat(fetched_at) if fetched_at else None,
            remote_url=data.get("remote_url"),
            worktrees=tuple(Worktree.from_dict(wt) for wt in worktree_data) if worktree_data is not None else None,
            is_worktree=data.get("is_worktree"),
            main_worktree_path=data.get("main_worktree_path"),
            commits_behind=data.get("commits_behind"),
            commits_ahead=data.get("commits_ahead"),
        )
