"""Tests for RepositoryStore."""
import json
import os
import threading
from concurrent.futures import Future

import pytest

from conftest import make_update
from git_peek.exceptions import (
    CommandFailedError,
    CommandTimeoutError,
    GitPeekError,
    InvalidPathError,
    NotAGitRepositoryError,
    RepositoryAlreadyExistsError,
    RepositoryNotFoundError,
)
from git_peek.models.repository import CommitDifference, Repository
from git_peek.services.persistence import RepositoryFile
from git_peek.services.repository_store import RepositoryStore


class TestAdd:
    """Adding repositories."""

    def test_add_appends_and_persists(self, store, fake_repo_dirs, storage_file):
        repository = store.add(str(fake_repo_dirs[0]))

        assert repository.name == "alpha"
        assert repository.path == str(fake_repo_dirs[0])
        assert [r.id for r in store.list_repositories()] == [repository.id]
        assert storage_file.exists()

    def test_first_refresh_runs_in_background(self, store, fake_probe, fake_repo_dirs):
        path = str(fake_repo_dirs[0])
        fake_probe.results[path] = make_update(untracked=["new.txt"], branch="develop")

        repository = store.add(path)
        assert store.wait_for_pending(timeout=10)

        stored = store.get(repository.id)
        assert stored.current_branch == "develop"
        assert stored.git_status.untracked_files == ("new.txt",)
        assert stored.last_fetched_at is not None

    def test_not_a_repository(self, store, plain_dir):
        with pytest.raises(NotAGitRepositoryError):
            store.add(str(plain_dir))

        assert store.list_repositories() == []

    def test_missing_path(self, store, temp_dir):
        with pytest.raises(InvalidPathError):
            store.add(str(temp_dir / "missing"))

        assert len(store) == 0

    def test_duplicate_path_is_rejected(self, store, fake_repo_dirs):
        """A second add of the same path fails and leaves the entry alone."""
        first = store.add(str(fake_repo_dirs[0]))
        store.wait_for_pending(timeout=10)
        before = store.get(first.id)

        for attempt in (str(fake_repo_dirs[0]), str(fake_repo_dirs[0]) + os.sep):
            with pytest.raises(RepositoryAlreadyExistsError):
                store.add(attempt)

        assert len(store) == 1
        assert store.get(first.id) == before

    def test_insertion_order(self, store, fake_repo_dirs):
        for path in fake_repo_dirs:
            store.add(str(path))

        assert [r.name for r in store.list_repositories()] == ["alpha", "beta", "gamma"]

    def test_concurrent_adds_of_same_path(self, store, fake_repo_dirs):
        errors = []

        def add():
            try:
                store.add(str(fake_repo_dirs[0]))
            except RepositoryAlreadyExistsError as e:
                errors.append(e)

        threads = [threading.Thread(target=add) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 1
        assert len(errors) == 7


class TestRemove:
    def test_remove(self, store, fake_repo_dirs, storage_file):
        repository = store.add(str(fake_repo_dirs[0]))

        assert store.remove(repository.id) is True

        assert store.list_repositories() == []
        data = json.loads(storage_file.read_text())
        assert data["repositories"] == []

    def test_remove_unknown_id(self, store, fake_repo_dirs):
        store.add(str(fake_repo_dirs[0]))

        assert store.remove("no-such-id") is False
        assert len(store) == 1

    def test_clear_all(self, store, fake_repo_dirs, storage_file):
        for path in fake_repo_dirs:
            store.add(str(path))

        store.clear_all()

        assert len(store) == 0
        assert json.loads(storage_file.read_text())["repositories"] == []


class TestUpdate:
    """Refreshing repositories."""

    def test_update_one(self, store, fake_probe, fake_repo_dirs):
        path = str(fake_repo_dirs[0])
        repository = store.add(path)
        store.wait_for_pending(timeout=10)
        fake_probe.results[path] = make_update(modified=["a.py", "b.py"], ahead=1)

        assert store.update_one(repository.id) is True

        stored = store.get(repository.id)
        assert stored.git_status.modified_files == ("a.py", "b.py")
        assert stored.commits_ahead == 1

    def test_update_unknown_id(self, store):
        assert store.update_one("missing") is False

    def test_refresh_raises_errors(self, store, fake_probe, fake_repo_dirs):
        """refresh() reports the failure to the caller and keeps the old state."""
        path = str(fake_repo_dirs[0])
        repository = store.add(path)
        store.wait_for_pending(timeout=10)
        before = store.get(repository.id)
        fake_probe.results[path] = CommandTimeoutError("git status --porcelain", 30)

        with pytest.raises(CommandTimeoutError):
            store.refresh(repository.id)

        assert store.get(repository.id) == before

    def test_refresh_unknown_id(self, store):
        with pytest.raises(RepositoryNotFoundError):
            store.refresh("missing")

    @pytest.mark.parametrize(
        "error",
        [
            CommandFailedError("git status --porcelain", "fatal: bad object", 128),
            CommandTimeoutError("git status --porcelain", 30),
            RuntimeError("unexpected"),
        ],
    )
    def test_failed_update_keeps_previous_state(self, store, fake_probe, fake_repo_dirs, error):
        """No field is touched when a refresh fails."""
        path = str(fake_repo_dirs[0])
        fake_probe.results[path] = make_update(
            staged=["s.txt"], branch="feature", remote_url="https://example.com/r.git", behind=4
        )
        repository = store.add(path)
        store.wait_for_pending(timeout=10)
        before = store.get(repository.id)

        fake_probe.results[path] = error
        assert store.update_one(repository.id) is False

        assert store.get(repository.id) == before

    def test_update_all_isolates_failures(self, store, fake_probe, fake_repo_dirs):
        """One failing repository does not stop the others."""
        repositories = [store.add(str(path)) for path in fake_repo_dirs]
        store.wait_for_pending(timeout=10)
        fake_probe.refresh_calls.clear()

        fake_probe.results[str(fake_repo_dirs[0])] = make_update(untracked=["a"])
        fake_probe.results[str(fake_repo_dirs[1])] = CommandFailedError("git status", "boom", 1)
        fake_probe.results[str(fake_repo_dirs[2])] = make_update(untracked=["c"])

        store.update_all()

        assert sorted(fake_probe.refresh_calls) == sorted(str(p) for p in fake_repo_dirs)
        assert store.get(repositories[0].id).git_status.untracked_files == ("a",)
        assert store.get(repositories[1].id).git_status.is_clean
        assert store.get(repositories[2].id).git_status.untracked_files == ("c",)

    def test_update_all_empty(self, store, fake_probe):
        store.update_all()

        assert fake_probe.refresh_calls == []

    def test_remote_refresh_is_merged_later(self, store, fake_probe, fake_repo_dirs):
        """Counts from the fetch replace the local ones when it completes."""
        path = str(fake_repo_dirs[0])
        repository = store.add(path)
        store.wait_for_pending(timeout=10)

        remote_refresh = Future()
        update = make_update(ahead=1, behind=0)
        update.remote_refresh = remote_refresh
        fake_probe.results[path] = update

        store.update_one(repository.id, should_fetch=True)
        assert store.get(repository.id).commits_behind == 0

        remote_refresh.set_result(CommitDifference(ahead=1, behind=5))
        assert store.wait_for_pending(timeout=10)
        assert store.get(repository.id).commits_behind == 5

    def test_failed_remote_refresh_keeps_local_counts(self, store, fake_probe, fake_repo_dirs):
        path = str(fake_repo_dirs[0])
        repository = store.add(path)
        store.wait_for_pending(timeout=10)

        remote_refresh = Future()
        update = make_update(ahead=2)
        update.remote_refresh = remote_refresh
        fake_probe.results[path] = update

        store.update_one(repository.id, should_fetch=True)
        remote_refresh.set_exception(CommandTimeoutError("git fetch --quiet", 30))
        store.wait_for_pending(timeout=10)

        assert store.get(repository.id).commits_ahead == 2


class TestPull:
    """Pulling repositories."""

    def test_pull_sets_and_clears_flag(self, store, fake_probe, fake_repo_dirs):
        path = str(fake_repo_dirs[0])
        repository = store.add(path)
        store.wait_for_pending(timeout=10)
        seen = []
        fake_probe.on_pull = lambda _: seen.append(store.get(repository.id).is_pulling)
        fake_probe.pull_results[path] = "Fast-forward"

        assert store.pull(repository.id) == "Fast-forward"

        assert seen == [True]
        assert store.get(repository.id).is_pulling is False

    def test_pull_refreshes_afterwards(self, store, fake_probe, fake_repo_dirs):
        path = str(fake_repo_dirs[0])
        repository = store.add(path)
        store.wait_for_pending(timeout=10)
        fake_probe.results[path] = make_update(branch="after-pull")

        store.pull(repository.id)

        assert store.get(repository.id).current_branch == "after-pull"

    def test_failed_pull_clears_flag(self, store, fake_probe, fake_repo_dirs):
        path = str(fake_repo_dirs[0])
        repository = store.add(path)
        fake_probe.pull_results[path] = CommandFailedError("git pull --ff-only", "no remote", 1)

        with pytest.raises(CommandFailedError):
            store.pull(repository.id)

        assert store.get(repository.id).is_pulling is False

    def test_pull_unknown_id(self, store):
        with pytest.raises(RepositoryNotFoundError):
            store.pull("missing")

    def test_pull_without_remote(self, real_store, git_repo):
        """A real repository with no remote cannot be pulled."""
        repository = real_store.add(git_repo.working_dir)
        real_store.wait_for_pending(timeout=30)
        assert real_store.get(repository.id).is_pulling is False

        with pytest.raises(GitPeekError):
            real_store.pull(repository.id)

        assert real_store.get(repository.id).is_pulling is False


class TestPersistence:
    """Saving and loading."""

    def test_round_trip(self, store, fake_probe, fake_repo_dirs, storage_file):
        fake_probe.results[str(fake_repo_dirs[1])] = make_update(modified=["m.txt"], ahead=3)
        added = [store.add(str(path)) for path in fake_repo_dirs]
        store.wait_for_pending(timeout=10)
        store.save()

        reloaded = RepositoryStore(storage_path=storage_file, probe=fake_probe)
        try:
            restored = reloaded.list_repositories()
        finally:
            reloaded.close()

        assert [(r.id, r.path) for r in restored] == [(r.id, r.path) for r in added]
        assert restored[1].git_status.modified_files == ("m.txt",)
        assert restored[1].commits_ahead == 3
        assert restored == store.list_repositories()

    def test_file_is_indented_json(self, store, fake_repo_dirs, storage_file):
        store.add(str(fake_repo_dirs[0]))

        text = storage_file.read_text()
        data = json.loads(text)
        assert data["version"] == 1
        assert "\n  " in text

    def test_missing_file_is_empty(self, temp_dir, fake_probe):
        empty = RepositoryStore(storage_path=temp_dir / "nothing" / "repos.json", probe=fake_probe)
        try:
            assert empty.list_repositories() == []
        finally:
            empty.close()

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            '"a string"',
            '{"repositories": [{"name": "no id or path"}]}',
            '{"repositories": [42]}',
        ],
    )
    def test_corrupt_file_is_empty(self, temp_dir, fake_probe, content):
        storage_file = temp_dir / "repos.json"
        storage_file.write_text(content)

        corrupt = RepositoryStore(storage_path=storage_file, probe=fake_probe)
        try:
            assert corrupt.list_repositories() == []
        finally:
            corrupt.close()

    def test_bare_list_is_accepted(self, temp_dir, fake_probe):
        storage_file = temp_dir / "repos.json"
        storage_file.write_text(json.dumps([{"id": "1", "path": "/srv/one"}]))

        loaded = RepositoryStore(storage_path=storage_file, probe=fake_probe)
        try:
            assert [r.name for r in loaded.list_repositories()] == ["one"]
        finally:
            loaded.close()

    def test_duplicate_paths_are_dropped_on_load(self, temp_dir, fake_probe):
        storage_file = temp_dir / "repos.json"
        storage_file.write_text(json.dumps([
            {"id": "1", "path": "/srv/one"},
            {"id": "2", "path": "/srv/one"},
        ]))

        loaded = RepositoryStore(storage_path=storage_file, probe=fake_probe)
        try:
            assert [r.id for r in loaded.list_repositories()] == ["1"]
        finally:
            loaded.close()

    def test_concurrent_writers_do_not_collide(self, temp_dir):
        """Separate writers (like two processes) never share a temp file."""
        storage_file = temp_dir / "repos.json"
        writers = [RepositoryFile(storage_file), RepositoryFile(storage_file)]
        repositories = [Repository(path=f"/srv/repo{i}") for i in range(20)]
        results = []

        def save_repeatedly(writer):
            for _ in range(25):
                results.append(writer.save(repositories))

        threads = [threading.Thread(target=save_repeatedly, args=(w,)) for w in writers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(results)
        assert len(results) == 50
        assert [r.path for r in RepositoryFile(storage_file).load()] == [r.path for r in repositories]
        assert [p.name for p in temp_dir.iterdir()] == ["repos.json"]

    def test_save_failure_is_not_raised(self, temp_dir, fake_probe):
        blocker = temp_dir / "blocker"
        blocker.write_text("a file where a directory should be")

        unwritable = RepositoryStore(storage_path=blocker / "repos.json", probe=fake_probe)
        try:
            assert unwritable.save() is False
        finally:
            unwritable.close()


class TestReadApi:
    """Copies and summaries."""

    def test_list_returns_copies(self, store, fake_repo_dirs):
        repository = store.add(str(fake_repo_dirs[0]))
        store.wait_for_pending(timeout=10)

        listed = store.list_repositories()
        listed[0].current_branch = "mutated"
        listed[0].name = "mutated"
        listed.clear()

        stored = store.get(repository.id)
        assert stored.current_branch == "main"
        assert stored.name == "alpha"

    def test_find_by_path(self, store, fake_repo_dirs):
        repository = store.add(str(fake_repo_dirs[0]))

        assert store.find_by_path(str(fake_repo_dirs[0]) + os.sep).id == repository.id
        assert store.find_by_path(str(fake_repo_dirs[1])) is None

    def test_status_summary(self, store, fake_probe, fake_repo_dirs):
        assert store.status_summary().title == "GitPeek"
        fake_probe.results[str(fake_repo_dirs[0])] = make_update(untracked=["x"])
        for path in fake_repo_dirs:
            store.add(str(path))
        store.wait_for_pending(timeout=10)

        summary = store.status_summary()

        assert summary.count == 3
        assert summary.repositories_with_changes == 1
        assert summary.has_changes is True
        assert summary.title == "GitPeek (3)"
