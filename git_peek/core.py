"""Core functionality for git-peek"""

from pathlib import Path
from typing import List, Optional

from git_peek.config import Settings
from git_peek.exceptions import GitPeekError
from git_peek.logging_config import get_logger
from git_peek.models.repository import Repository
from git_peek.services.git import CommandRunner, RepositoryProbe
from git_peek.services.monitor import ChangeEvent, GitMonitor
from git_peek.services.notifier import Notifier
from git_peek.services.repository_store import RepositoryStore, StatusSummary

logger = get_logger(__name__)


class GitPeek:
    """Entry point for user interfaces.

    Wires the probe, store and monitor together from the settings and keeps
    the last user-visible error. Every method can be called from any thread.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage_path: Optional[Path] = None,
        notifier: Optional[Notifier] = None,
        interval: Optional[float] = None,
    ):
        """Initialize GitPeek.

        Args:
            settings: User settings (defaults when omitted)
            storage_path: Override for the repository file
            notifier: Receiver of change notifications
            interval: Override for the refresh interval in seconds
        """
        self.settings = settings or Settings()
        runner = CommandRunner(timeout=self.settings.command_timeout)
        probe = RepositoryProbe(runner=runner, max_workers=self.settings.workers)
        self.store = RepositoryStore(
            storage_path=storage_path or self.settings.repositories_file,
            probe=probe,
            max_workers=self.settings.workers,
        )
        self.monitor = GitMonitor(
            self.store, interval=interval, settings=self.settings, notifier=notifier
        )
        self.error_message: Optional[str] = None

    def _fail(self, message: str, error: Exception) -> None:
        self.error_message = f"{message}: {error}"
        logger.error(self.error_message)

    def dismiss_error(self) -> None:
        """Acknowledge the current error."""
        self.error_message = None

    # Read API

    def list_repositories(self) -> List[Repository]:
        return self.store.list_repositories()

    def status_summary(self) -> StatusSummary:
        return self.store.status_summary()

    # Write API

    def add_repository(self, path: str) -> Repository:
        """Track a new repository.

        Raises:
            GitPeekError: the path was rejected; the message is also kept in error_message
        """
        try:
            repository = self.store.add(path)
        except GitPeekError as e:
            self._fail("Failed to add repository", e)
            raise
        self.dismiss_error()
        return repository

    def remove_repository(self, repository_id: str) -> bool:
        removed = self.store.remove(repository_id)
        if removed:
            self.dismiss_error()
        return removed

    def refresh_one(self, repository_id: str, should_fetch: bool = False) -> bool:
        """Refresh one repository now.

        Returns:
            True if it was updated; on failure error_message says why
        """
        try:
            updated = self.store.refresh(repository_id, should_fetch=should_fetch)
        except GitPeekError as e:
            self._fail("Failed to refresh repository", e)
            return False
        if updated:
            self.dismiss_error()
        return updated

    def refresh_all(self) -> List[ChangeEvent]:
        """Refresh everything now, fetching from remotes."""
        return self.monitor.force_update()

    def pull(self, repository_id: str) -> Optional[str]:
        """Pull a repository.

        Returns:
            Git's pull summary, or None if the pull failed (see error_message)
        """
        try:
            message = self.store.pull(repository_id)
        except GitPeekError as e:
            self._fail("Failed to pull", e)
            return None
        self.dismiss_error()
        return message

    # Lifecycle

    def start(self) -> None:
        self.monitor.start()

    def close(self) -> None:
        """Stop monitoring, save and release the worker pools."""
        self.monitor.stop()
        self.store.save()
        self.store.close()
