"""Pytest fixtures for git-peek tests"""
import tempfile
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

import git
import pytest

from git_peek.exceptions import InvalidPathError, NotAGitRepositoryError
from git_peek.models.repository import CommitDifference, RepositoryUpdate
from git_peek.models.status import RepositoryStatus
from git_peek.services.git.probe import RepositoryProbe
from git_peek.services.repository_store import RepositoryStore


def make_update(
    staged=(),
    modified=(),
    untracked=(),
    branch: str = "main",
    remote_url: Optional[str] = None,
    ahead: int = 0,
    behind: int = 0,
) -> RepositoryUpdate:
    """Build a RepositoryUpdate with sensible defaults."""
    return RepositoryUpdate(
        status=RepositoryStatus.from_files(staged, modified, untracked),
        branch=branch,
        remote_url=remote_url,
        worktrees=(),
        commit_difference=CommitDifference(ahead=ahead, behind=behind),
    )


class FakeProbe:
    """Stands in for RepositoryProbe without running git.

    Results are configured per path: either a RepositoryUpdate or an exception
    to raise.
    """

    def __init__(self):
        self.results: Dict[str, object] = {}
        self.pull_results: Dict[str, object] = {}
        self.refresh_calls: List[str] = []
        self.on_pull = None
        self._lock = Lock()

    def validate_path(self, path: str, use_cache: bool = True) -> None:
        if not Path(path).is_dir():
            raise InvalidPathError(path)
        if not RepositoryProbe.is_valid_repository(path):
            raise NotAGitRepositoryError(path)

    def refresh(self, path: str, should_fetch_remote: bool = False) -> RepositoryUpdate:
        with self._lock:
            self.refresh_calls.append(path)
        result = self.results.get(path, make_update())
        if isinstance(result, Exception):
            raise result
        return result

    def pull(self, path: str) -> str:
        if self.on_pull:
            self.on_pull(path)
        result = self.pull_results.get(path, "Already up to date.")
        if isinstance(result, Exception):
            raise result
        return result

    def shutdown(self) -> None:
        pass


def init_repo(path: Path) -> git.Repo:
    """Create a repository with one commit on 'main'."""
    path.mkdir(parents=True, exist_ok=True)
    repo = git.Repo.init(path)

    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")

    readme = path / "README.md"
    readme.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")
    repo.git.branch("-M", "main")
    return repo


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo = init_repo(temp_dir / "test_repo")
    yield repo
    repo.close()


@pytest.fixture
def git_repo_with_upstream(git_repo, temp_dir):
    """Repository whose 'main' tracks a bare 'origin' repository."""
    remote_path = temp_dir / "origin.git"
    git.Repo.init(remote_path, bare=True)
    git_repo.create_remote("origin", str(remote_path))
    git_repo.git.push("-u", "origin", "main")
    yield git_repo


@pytest.fixture
def plain_dir(temp_dir):
    """A directory that is not a Git repository."""
    path = temp_dir / "not-a-repo"
    path.mkdir()
    return path


@pytest.fixture
def fake_repo_dirs(temp_dir):
    """Directories that look like repositories (they have a .git folder)."""
    paths = []
    for name in ("alpha", "beta", "gamma"):
        path = temp_dir / name
        (path / ".git").mkdir(parents=True)
        paths.append(path)
    return paths


@pytest.fixture
def storage_file(temp_dir):
    """Location for the persisted repository list."""
    return temp_dir / "data" / "repositories.json"


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest.fixture
def store(storage_file, fake_probe):
    """Store backed by a FakeProbe and a temporary file."""
    repository_store = RepositoryStore(storage_path=storage_file, probe=fake_probe, max_workers=4)
    yield repository_store
    repository_store.close()


@pytest.fixture
def real_store(storage_file):
    """Store that runs real git commands."""
    repository_store = RepositoryStore(storage_path=storage_file, max_workers=4)
    yield repository_store
    repository_store.close()
