"""The collection of tracked repositories"""

import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed, wait
from dataclasses import dataclass
from pathlib import Path
from threading import Lock, RLock
from typing import Callable, List, Optional, Set

from git_peek.constants import TITLE_EMPTY
from git_peek.exceptions import GitPeekError, RepositoryAlreadyExistsError, RepositoryNotFoundError
from git_peek.logging_config import get_logger
from git_peek.models.repository import CommitDifference, Repository
from git_peek.services.git.probe import RepositoryProbe
from git_peek.services.persistence import RepositoryFile
from git_peek.utils.paths import normalize_path
from git_peek.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)


@dataclass(frozen=True)
class StatusSummary:
    """Aggregate numbers for a menu title or icon."""

    count: int
    repositories_with_changes: int

    @property
    def has_changes(self) -> bool:
        return self.repositories_with_changes > 0

    @property
    def title(self) -> str:
        return TITLE_EMPTY if self.count == 0 else f"{TITLE_EMPTY} ({self.count})"


class RepositoryStore:
    """Owns the ordered list of tracked repositories.

    The list is only touched while holding the store lock, and readers always
    get copies. Git work runs on the store's thread pool and the results are
    merged back under the lock, one repository at a time.
    """

    def __init__(
        self,
        storage_path: Optional[Path] = None,
        probe: Optional[RepositoryProbe] = None,
        max_workers: Optional[int] = None,
        autoload: bool = True,
    ):
        """Initialize the store.

        Args:
            storage_path: JSON file the list is persisted to (default ~/.git-peek/repositories.json)
            probe: Probe used to query repositories
            max_workers: Number of repositories refreshed in parallel (None = auto-detect)
            autoload: Load the persisted list right away
        """
        self.storage = RepositoryFile(storage_path)
        self.probe = probe or RepositoryProbe(max_workers=max_workers)
        self._repositories: List[Repository] = []
        self._lock = RLock()
        self._save_lock = Lock()  # Keeps snapshots and writes in the same order
        self._pending: Set[Future] = set()
        self._pending_lock = Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=get_optimal_worker_count(max_workers),
            thread_name_prefix="git-peek-store",
        )

        if autoload:
            self.load()

    # Lookup helpers, callers hold self._lock

    def _find(self, repository_id: str) -> Optional[Repository]:
        return next((r for r in self._repositories if r.id == repository_id), None)

    def _contains_path(self, path: str) -> bool:
        return any(r.path == path for r in self._repositories)

    # Background work

    def _submit(self, fn: Callable, *args) -> Optional[Future]:
        """Run fn on the store pool and track it until it finishes."""
        try:
            future = self._executor.submit(fn, *args)
        except RuntimeError as e:
            # Pool already shut down
            logger.debug(f"Not scheduling background work: {e}")
            return None

        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """Block until background refreshes have finished.

        Background work can schedule more work (a refresh starts a remote
        fetch), so this keeps waiting until nothing is left.

        Returns:
            False if the timeout expired first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._pending_lock:
                pending = {f for f in self._pending if not f.done()}
            if not pending:
                return True

            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            wait(pending, timeout=remaining)

    # Mutations

    def add(self, path: str) -> Repository:
        """Start tracking a repository.

        The repository is appended and saved right away with no status; the
        first refresh runs in the background.

        Args:
            path: Directory of the repository

        Returns:
            A copy of the new repository

        Raises:
            RepositoryAlreadyExistsError: path is already tracked
            InvalidPathError: path is missing or not a directory
            NotAGitRepositoryError: path has no .git entry
        """
        path = normalize_path(path)
        with self._lock:
            if self._contains_path(path):
                raise RepositoryAlreadyExistsError(path)

        self.probe.validate_path(path, use_cache=False)

        repository = Repository(path=path)
        with self._lock:
            # Another thread may have added it while we were validating
            if self._contains_path(path):
                raise RepositoryAlreadyExistsError(path)
            self._repositories.append(repository)
            added = repository.copy()

        logger.info(f"Added repository {added.name} ({path})")
        self.save()
        self._submit(self.update_one, repository.id)
        return added

    def remove(self, repository_id: str) -> bool:
        """Stop tracking a repository. Unknown ids are ignored.

        Returns:
            True if a repository was removed
        """
        with self._lock:
            repository = self._find(repository_id)
            if repository is None:
                logger.debug(f"Nothing to remove for id {repository_id}")
                return False
            self._repositories.remove(repository)

        logger.info(f"Removed repository {repository.name}")
        self.save()
        return True

    def update_one(self, repository_id: str, should_fetch: bool = False) -> bool:
        """Refresh one repository.

        On failure the error is logged and the stored state is left as it was.

        Args:
            repository_id: Repository to refresh
            should_fetch: Also fetch from the remote; ahead/behind is updated
                again when the fetch completes

        Returns:
            True if the repository was updated
        """
        with self._lock:
            repository = self._find(repository_id)
            if repository is None:
                logger.debug(f"Cannot update unknown repository {repository_id}")
                return False
            path, name = repository.path, repository.name

        try:
            return self._refresh(repository_id, path, name, should_fetch)
        except GitPeekError as e:
            logger.warning(f"Failed to update repository {name}: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error updating repository {name}: {e}", exc_info=True)
            return False

    def refresh(self, repository_id: str, should_fetch: bool = False) -> bool:
        """Refresh one repository and let failures reach the caller.

        The stored state is left as it was when the probe fails.

        Returns:
            True if the repository was updated, False if it was removed meanwhile

        Raises:
            RepositoryNotFoundError: unknown id
            GitPeekError: the probe failed
        """
        with self._lock:
            repository = self._find(repository_id)
            if repository is None:
                raise RepositoryNotFoundError(repository_id)
            path, name = repository.path, repository.name

        return self._refresh(repository_id, path, name, should_fetch)

    def _refresh(self, repository_id: str, path: str, name: str, should_fetch: bool) -> bool:
        update = self.probe.refresh(path, should_fetch_remote=should_fetch)

        with self._lock:
            repository = self._find(repository_id)
            if repository is None:
                logger.debug(f"Repository {name} was removed during refresh")
                return False
            repository.apply_update(update)

        logger.debug(f"Updated {name}: {update.status}, branch {update.branch}")

        if update.remote_refresh is not None:
            self._submit(self._merge_remote_refresh, repository_id, name, update.remote_refresh)
        return True

    def _merge_remote_refresh(self, repository_id: str, name: str, remote_refresh: Future) -> None:
        """Wait for a fetch to finish and store the new ahead/behind counts."""
        try:
            difference: CommitDifference = remote_refresh.result()
        except GitPeekError as e:
            logger.info(f"Remote refresh of {name} failed: {e}")
            return
        except Exception as e:
            logger.error(f"Unexpected error during remote refresh of {name}: {e}", exc_info=True)
            return

        with self._lock:
            repository = self._find(repository_id)
            if repository is not None:
                repository.apply_commit_difference(difference)
        logger.debug(f"Remote refresh of {name}: ahead {difference.ahead}, behind {difference.behind}")

    def update_all(self, should_fetch: bool = False) -> None:
        """Refresh every repository in parallel and wait for all of them.

        One repository failing does not affect the others.
        """
        with self._lock:
            targets = [(r.id, r.name) for r in self._repositories]

        if not targets:
            return

        logger.debug(f"Refreshing {len(targets)} repositories (fetch={should_fetch})")
        future_to_name = {
            self._executor.submit(self.update_one, repository_id, should_fetch): name
            for repository_id, name in targets
        }

        for future in as_completed(future_to_name):
            name = future_to_name[future]
            try:
                future.result()
            except Exception as e:
                logger.error(f"Error refreshing repository {name}: {e}")

    def pull(self, repository_id: str) -> str:
        """Pull a repository and refresh it.

        ``is_pulling`` is set for the duration of the call and always cleared.

        Returns:
            Git's pull summary

        Raises:
            RepositoryNotFoundError: unknown id
            GitPeekError: the pull failed
        """
        with self._lock:
            repository = self._find(repository_id)
            if repository is None:
                raise RepositoryNotFoundError(repository_id)
            repository.is_pulling = True
            path, name = repository.path, repository.name

        try:
            message = self.probe.pull(path)
            logger.info(f"Pulled {name}: {message}")
            self.update_one(repository_id)
            return message
        finally:
            with self._lock:
                repository = self._find(repository_id)
                if repository is not None:
                    repository.is_pulling = False

    def clear_all(self) -> None:
        """Stop tracking every repository."""
        with self._lock:
            self._repositories.clear()
        logger.info("Cleared all repositories")
        self.save()

    # Persistence

    def save(self) -> bool:
        """Persist the current list. Failures are logged, not raised."""
        with self._save_lock:
            with self._lock:
                snapshot = [r.copy() for r in self._repositories]
            return self.storage.save(snapshot)

    def load(self) -> None:
        """Replace the in-memory list with the persisted one.

        A missing file leaves the store empty, and so does a corrupt one.
        """
        repositories = self.storage.load()

        unique: List[Repository] = []
        seen: Set[str] = set()
        for repository in repositories:
            if repository.path in seen:
                logger.warning(f"Skipping duplicate stored repository {repository.path}")
                continue
            seen.add(repository.path)
            unique.append(repository)

        with self._lock:
            self._repositories = unique
        logger.debug(f"Loaded {len(unique)} repositories")

    # Read API

    def list_repositories(self) -> List[Repository]:
        """Copies of all repositories in display order."""
        with self._lock:
            return [r.copy() for r in self._repositories]

    def get(self, repository_id: str) -> Optional[Repository]:
        with self._lock:
            repository = self._find(repository_id)
            return repository.copy() if repository else None

    def find_by_path(self, path: str) -> Optional[Repository]:
        path = normalize_path(path)
        with self._lock:
            repository = next((r for r in self._repositories if r.path == path), None)
            return repository.copy() if repository else None

    def status_summary(self) -> StatusSummary:
        with self._lock:
            return StatusSummary(
                count=len(self._repositories),
                repositories_with_changes=sum(1 for r in self._repositories if r.has_changes),
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._repositories)

    def close(self) -> None:
        """Shut down the worker pools."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.probe.shutdown()
