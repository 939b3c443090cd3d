"""Formatting utilities for displaying repository information."""

from datetime import datetime, timezone
from typing import Optional

from git_peek.constants import (
    SYMBOL_CLEAN,
    SYMBOL_DIRTY,
    SYMBOL_UNKNOWN,
    SYMBOL_WORKTREE,
)
from git_peek.models.repository import Repository
from git_peek.models.status import RepositoryStatus


def format_state_symbol(status: Optional[RepositoryStatus]) -> str:
    """
    Format the overall state of a repository as a symbol.

    Args:
        status: Last known status, None if never refreshed

    Returns:
        Clean, dirty or unknown symbol
    """
    if status is None:
        return SYMBOL_UNKNOWN
    return SYMBOL_CLEAN if status.is_clean else SYMBOL_DIRTY


def format_changes(status: Optional[RepositoryStatus]) -> str:
    """
    Format change counts, e.g. "S1 M2 U3".

    Args:
        status: Last known status

    Returns:
        Counts per category, "clean" or "-" when unknown
    """
    if status is None:
        return "-"
    if status.is_clean:
        return "clean"

    parts = []
    if status.staged_files:
        parts.append(f"S{len(status.staged_files)}")
    if status.modified_files:
        parts.append(f"M{len(status.modified_files)}")
    if status.untracked_files:
        parts.append(f"U{len(status.untracked_files)}")
    return " ".join(parts)


def format_branch(repository: Repository) -> str:
    """
    Format the current branch, marking linked worktrees.

    Args:
        repository: Repository to describe

    Returns:
        Branch name with worktree marker
    """
    branch = repository.current_branch or "-"
    if repository.is_worktree:
        return f"{SYMBOL_WORKTREE} {branch}"
    return branch


def format_relative_time(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Format how long ago something happened, e.g. "5s ago", "3m ago".

    Args:
        moment: Time to describe
        now: Reference time (default: current time)

    Returns:
        Short relative description, "never" when moment is None
    """
    if moment is None:
        return "never"

    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - moment).total_seconds()))
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_remote_url(url: Optional[str]) -> str:
    """
    Shorten a remote URL for display.

    SSH and HTTPS GitHub remotes become "owner/repo"; other URLs are shown as-is.

    Args:
        url: Remote URL

    Returns:
        Display text, "-" without a remote
    """
    if not url:
        return "-"

    for prefix in ("git@github.com:", "https://github.com/"):
        if url.startswith(prefix):
            short = url[len(prefix):]
            return short[:-4] if short.endswith(".git") else short
    return url
