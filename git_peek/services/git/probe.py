"""Query a repository's state with git"""

import os
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from threading import Lock
from typing import Callable, Dict, List, Optional

from git_peek.constants import DEFAULT_BRANCH, DEFAULT_REMOTE, GIT_EXECUTABLE, GIT_MARKER
from git_peek.exceptions import (
    CommandFailedError,
    InvalidPathError,
    NotAGitRepositoryError,
)
from git_peek.logging_config import get_logger
from git_peek.models.repository import CommitDifference, RepositoryUpdate
from git_peek.models.status import RepositoryStatus
from git_peek.models.worktree import Worktree
from git_peek.services.git.command_runner import CommandRunner
from git_peek.services.git.status_parser import parse_status
from git_peek.services.git.worktrees import parse_worktree_list
from git_peek.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)

NO_SUCH_REMOTE = "No such remote"


class RepositoryProbe:
    """Collects branch, status, remote and worktree information for a path.

    One probe is shared by every repository; all state it keeps is the
    validation cache.
    """

    def __init__(self, runner: Optional[CommandRunner] = None, max_workers: Optional[int] = None):
        """Initialize the probe.

        Args:
            runner: Command runner to use (default: one with the standard timeout)
            max_workers: Size of the pool running the individual git queries, and of
                the separate pool running network fetches
        """
        self.runner = runner or CommandRunner()
        self.remote_name = DEFAULT_REMOTE
        self._validation_cache: Dict[str, bool] = {}
        self._cache_lock = Lock()  # Thread safety for cache access
        self._executor = ThreadPoolExecutor(
            max_workers=get_optimal_worker_count(max_workers),
            thread_name_prefix="git-peek-probe",
        )
        # Fetches wait on the network; local queries must never queue behind them
        self._fetch_executor = ThreadPoolExecutor(
            max_workers=get_optimal_worker_count(max_workers),
            thread_name_prefix="git-peek-fetch",
        )

    # Validation

    @staticmethod
    def is_valid_repository(path: str) -> bool:
        """Check for a .git entry (a directory, or a file for linked worktrees)."""
        return os.path.exists(os.path.join(path, GIT_MARKER))

    def validate_path(self, path: str, use_cache: bool = True) -> None:
        """Make sure path is an existing directory holding a repository.

        Raises:
            InvalidPathError: path is missing or not a directory
            NotAGitRepositoryError: the directory has no .git entry
        """
        if not os.path.isdir(path):
            raise InvalidPathError(path)

        is_valid = None
        if use_cache:
            with self._cache_lock:
                is_valid = self._validation_cache.get(path)

        if is_valid is None:
            is_valid = self.is_valid_repository(path)
            with self._cache_lock:
                self._validation_cache[path] = is_valid

        if not is_valid:
            raise NotAGitRepositoryError(path)

    def clear_cache(self) -> None:
        """Clear the validation cache."""
        with self._cache_lock:
            self._validation_cache.clear()
        logger.debug("Validation cache cleared")

    # Individual queries

    def _git(self, path: str, *args: str, timeout: Optional[float] = None) -> str:
        return self.runner.run([GIT_EXECUTABLE, *args], path, timeout=timeout)

    def get_status(self, path: str) -> RepositoryStatus:
        """Get the working tree status."""
        return parse_status(self._git(path, "status", "--porcelain"))

    def get_current_branch(self, path: str) -> str:
        """Get the current branch name.

        Falls back to rev-parse when ``branch --show-current`` prints nothing
        (detached HEAD, or git older than 2.22), and to "main" after that.
        """
        branch = self._git(path, "branch", "--show-current").strip()
        if branch:
            return branch

        branch = self._git(path, "rev-parse", "--abbrev-ref", "HEAD").strip()
        return branch or DEFAULT_BRANCH

    def get_remote_url(self, path: str) -> Optional[str]:
        """Get the URL of the default remote, or None when there is no such remote."""
        try:
            url = self._git(path, "remote", "get-url", self.remote_name).strip()
        except CommandFailedError as e:
            if NO_SUCH_REMOTE in e.output:
                logger.debug(f"No '{self.remote_name}' remote configured for {path}")
                return None
            raise
        return url or None

    def get_worktrees(self, path: str) -> List[Worktree]:
        """List the repository's worktrees, main worktree first."""
        return parse_worktree_list(self._git(path, "worktree", "list", "--porcelain"))

    def get_commit_difference(self, path: str) -> CommitDifference:
        """Count commits ahead of and behind the upstream branch.

        A branch without an upstream (or an unborn or detached HEAD) reports (0, 0).
        """
        try:
            upstream = self._git(
                path, "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}"
            ).strip()
        except CommandFailedError as e:
            logger.debug(f"No upstream for {path}: {e.output}")
            return CommitDifference.none()

        counts = self._git(path, "rev-list", "--left-right", "--count", f"{upstream}...HEAD").split()
        if len(counts) != 2:
            logger.warning(f"Unexpected rev-list output for {path}: {counts!r}")
            return CommitDifference.none()

        behind, ahead = (int(count) for count in counts)
        return CommitDifference(ahead=ahead, behind=behind)

    def fetch(self, path: str) -> None:
        """Fetch from the remotes (network)."""
        self._git(path, "fetch", "--quiet")

    def pull(self, path: str) -> str:
        """Pull the current branch, fast-forward only.

        Returns:
            Git's summary of the pull
        """
        self.validate_path(path)
        output = self._git(path, "pull", "--ff-only").strip()
        return output or "Already up to date."

    def fetch_commit_difference(self, path: str) -> CommitDifference:
        """Slow path: fetch, then recount ahead/behind."""
        self.fetch(path)
        return self.get_commit_difference(path)

    # Full refresh

    def refresh(self, path: str, should_fetch_remote: bool = False) -> RepositoryUpdate:
        """Run every query for a repository and bundle the results.

        The local queries run concurrently and are joined before returning.
        If any of them fails the others are cancelled and the error is raised,
        so callers never get a partial result.

        Args:
            path: Repository path
            should_fetch_remote: Also start a fetch after the local queries;
                its ahead/behind result is exposed as ``remote_refresh``

        Returns:
            The combined update
        """
        self.validate_path(path)

        queries: Dict[str, Callable] = {
            "status": self.get_status,
            "branch": self.get_current_branch,
            "remote_url": self.get_remote_url,
            "worktrees": self.get_worktrees,
            "commit_difference": self.get_commit_difference,
        }
        futures: Dict[str, Future] = {
            name: self._executor.submit(query, path) for name, query in queries.items()
        }

        done, not_done = wait(futures.values(), return_when=FIRST_EXCEPTION)
        failed = [future for future in futures.values() if future in done and future.exception()]
        if failed:
            for future in not_done:
                future.cancel()
            error = failed[0].exception()
            logger.debug(f"Refresh of {path} failed: {error}")
            raise error

        results = {name: future.result() for name, future in futures.items()}
        worktrees = tuple(results["worktrees"])
        is_worktree = os.path.isfile(os.path.join(path, GIT_MARKER))
        main_worktree_path = next((wt.path for wt in worktrees if wt.is_main), None)

        update = RepositoryUpdate(
            status=results["status"],
            branch=results["branch"],
            remote_url=results["remote_url"],
            worktrees=worktrees,
            commit_difference=results["commit_difference"],
            is_worktree=is_worktree,
            main_worktree_path=main_worktree_path if is_worktree else None,
        )

        if should_fetch_remote:
            update.remote_refresh = self._fetch_executor.submit(
                self.fetch_commit_difference, path
            )

        return update

    def shutdown(self) -> None:
        """Stop the query and fetch pools."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._fetch_executor.shutdown(wait=False, cancel_futures=True)
