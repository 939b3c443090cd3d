"""Services for git-peek."""

from .git import CommandRunner, RepositoryProbe, parse_status, parse_worktree_list
from .persistence import RepositoryFile
from .repository_store import RepositoryStore, StatusSummary
from .monitor import ChangeEvent, GitMonitor, detect_changes
from .notifier import ConsoleNotifier, Notifier, NullNotifier

__all__ = [
    "CommandRunner",
    "RepositoryProbe",
    "parse_status",
    "parse_worktree_list",
    "RepositoryFile",
    "RepositoryStore",
    "StatusSummary",
    "ChangeEvent",
    "GitMonitor",
    "detect_changes",
    "ConsoleNotifier",
    "Notifier",
    "NullNotifier",
]
