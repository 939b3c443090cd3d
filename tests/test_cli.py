"""Tests for the command-line interface."""
import json
import logging
from pathlib import Path

import pytest

from git_peek.cli import main, parse_args
from git_peek.cli.main import resolve_repository
from git_peek.exceptions import RepositoryNotFoundError
from git_peek.models.repository import Repository


@pytest.fixture(autouse=True)
def restore_logging():
    """main() reconfigures the root logger; put it back afterwards."""
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def cli_args(temp_dir, storage_file):
    """Global options pointing the CLI at temporary files."""
    return ["--storage", str(storage_file), "--settings", str(temp_dir / "settings.json")]


class TestParseArgs:
    def test_default_command_is_list(self):
        assert parse_args([]).command == "list"

    def test_refresh_options(self):
        args = parse_args(["refresh", "app", "--fetch"])

        assert args.command == "refresh"
        assert args.repo == "app"
        assert args.fetch is True

    def test_watch_options(self):
        args = parse_args(["watch", "--interval", "15", "--no-notify"])

        assert args.interval == 15.0
        assert args.no_notify is True


class TestResolveRepository:
    """Finding a repository from user input."""

    @pytest.fixture
    def repositories(self):
        return [
            Repository(path="/srv/app", id="aaaa1111"),
            Repository(path="/srv/api", id="aaaa2222"),
            Repository(path="/other/app", id="bbbb3333"),
        ]

    def test_by_id(self, repositories):
        assert resolve_repository(repositories, "aaaa2222").path == "/srv/api"

    def test_by_path(self, repositories):
        assert resolve_repository(repositories, "/other/app/").id == "bbbb3333"

    def test_by_unique_name(self, repositories):
        assert resolve_repository(repositories, "api").id == "aaaa2222"

    def test_by_unique_id_prefix(self, repositories):
        assert resolve_repository(repositories, "bbbb").path == "/other/app"

    @pytest.mark.parametrize("query", ["app", "aaaa", "nothing"])
    def test_ambiguous_or_unknown(self, repositories, query):
        with pytest.raises(RepositoryNotFoundError):
            resolve_repository(repositories, query)


class TestMain:
    """Running commands end to end."""

    def test_list_empty(self, cli_args, capsys):
        assert main(cli_args + ["list"]) == 0

        assert "No repositories tracked yet" in capsys.readouterr().out

    def test_add_then_list(self, cli_args, git_repo, storage_file, capsys):
        assert main(cli_args + ["add", git_repo.working_dir]) == 0
        assert "Added test_repo" in capsys.readouterr().out

        data = json.loads(storage_file.read_text())
        assert [r["name"] for r in data["repositories"]] == ["test_repo"]
        assert data["repositories"][0]["current_branch"] == "main"

        assert main(cli_args) == 0
        output = capsys.readouterr().out
        assert "test_repo" in output
        assert "GitPeek (1)" in output

    def test_add_rejects_plain_directory(self, cli_args, plain_dir, capsys):
        assert main(cli_args + ["add", str(plain_dir)]) == 1

        assert "Not a valid Git repository" in capsys.readouterr().out

    def test_remove(self, cli_args, git_repo, storage_file, capsys):
        main(cli_args + ["add", git_repo.working_dir])

        assert main(cli_args + ["remove", "test_repo"]) == 0

        assert json.loads(storage_file.read_text())["repositories"] == []
        assert "Removed test_repo" in capsys.readouterr().out

    def test_remove_unknown(self, cli_args, capsys):
        assert main(cli_args + ["remove", "ghost"]) == 1

        assert "Repository not found" in capsys.readouterr().out

    def test_refresh(self, cli_args, git_repo, capsys):
        main(cli_args + ["add", git_repo.working_dir])
        Path(git_repo.working_dir, "x.txt").write_text("x")
        capsys.readouterr()

        assert main(cli_args + ["refresh", "test_repo"]) == 0

        assert "U1" in capsys.readouterr().out

    def test_pull_without_remote(self, cli_args, git_repo, capsys):
        main(cli_args + ["add", git_repo.working_dir])

        assert main(cli_args + ["pull", "test_repo"]) == 1

        assert "Failed to pull" in capsys.readouterr().out

    def test_clear(self, cli_args, git_repo, storage_file):
        main(cli_args + ["add", git_repo.working_dir])

        assert main(cli_args + ["clear", "--yes"]) == 0

        assert json.loads(storage_file.read_text())["repositories"] == []
