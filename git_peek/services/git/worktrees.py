"""Parse `git worktree list --porcelain` output."""

from typing import Any, Dict, List

from git_peek.models.worktree import Worktree
from git_peek.logging_config import get_logger

logger = get_logger(__name__)

BRANCH_REF_PREFIX = "refs/heads/"


def parse_worktree_list(output: str) -> List[Worktree]:
    """Turn porcelain worktree output into Worktree entries.

    Format (one block per worktree, blank line between blocks)::

        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name

    A detached worktree has a ``detached`` line instead of ``branch``, a bare
    repository has ``bare``. The first block is always the main worktree.

    Args:
        output: Raw output of ``git worktree list --porcelain``

    Returns:
        Worktrees in the order git listed them
    """
    worktrees: List[Worktree] = []
    current: Dict[str, Any] = {}

    def flush() -> None:
        path = current.get("path")
        if path:
            worktrees.append(
                Worktree(
                    path=path,
                    branch=current.get("branch", ""),
                    commit=current.get("HEAD", ""),
                    is_main=not worktrees,
                )
            )
        current.clear()

    for line in output.split("\n"):
        line = line.strip()

        if not line:
            # Empty line marks end of worktree entry
            flush()
            continue

        if line.startswith("worktree "):
            # Tolerate output that skips the blank separator
            if current:
                flush()
            current["path"] = line.split(" ", 1)[1]
        elif line.startswith("HEAD "):
            current["HEAD"] = line.split(" ", 1)[1]
        elif line.startswith("branch "):
            branch_ref = line.split(" ", 1)[1]
            if branch_ref.startswith(BRANCH_REF_PREFIX):
                current["branch"] = branch_ref[len(BRANCH_REF_PREFIX):]
            else:
                current["branch"] = branch_ref
        elif line == "detached":
            current["branch"] = ""

    # Last entry when there is no trailing blank line
    flush()

    logger.debug(f"Found {len(worktrees)} worktrees")
    return worktrees
