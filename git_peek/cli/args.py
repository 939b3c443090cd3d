"""Command-line argument parsing for git-peek."""

import argparse
from typing import List, Optional

from git_peek.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="git-peek",
        description="Keep an eye on the status of your local Git repositories",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-peek {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "--storage",
        metavar="FILE",
        help="Repository list file (default: ~/.git-peek/repositories.json)",
    )
    parser.add_argument(
        "--settings",
        metavar="FILE",
        help="Settings file (default: ~/.git-peek/settings.json)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    subparsers.add_parser("list", help="Show tracked repositories (default)")

    add_parser = subparsers.add_parser("add", help="Start tracking a repository")
    add_parser.add_argument("path", help="Path to the repository")

    remove_parser = subparsers.add_parser("remove", help="Stop tracking a repository")
    remove_parser.add_argument("repo", help="Repository id, id prefix, name or path")

    refresh_parser = subparsers.add_parser("refresh", help="Refresh repository status")
    refresh_parser.add_argument(
        "repo", nargs="?", help="Repository to refresh (default: all repositories)"
    )
    refresh_parser.add_argument(
        "--fetch", action="store_true", help="Also fetch from remotes to update ahead/behind"
    )

    pull_parser = subparsers.add_parser("pull", help="Pull a repository (fast-forward only)")
    pull_parser.add_argument("repo", help="Repository id, id prefix, name or path")

    watch_parser = subparsers.add_parser("watch", help="Monitor repositories continuously")
    watch_parser.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        help="Seconds between refreshes (default: refresh_interval setting)",
    )
    watch_parser.add_argument(
        "--no-notify", action="store_true", help="Do not print change notifications"
    )

    clear_parser = subparsers.add_parser("clear", help="Stop tracking every repository")
    clear_parser.add_argument("--yes", action="store_true", help="Skip confirmation")

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    args = build_parser().parse_args(argv)
    if args.command is None:
        args.command = "list"
    return args
