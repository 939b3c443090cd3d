"""Parse `git status --porcelain` output."""

from typing import List

from git_peek.constants import (
    MODIFIED_CODES,
    RENAME_SEPARATOR,
    RENAMED_CODES,
    STAGED_CODES,
    UNTRACKED_CODE,
)
from git_peek.models.status import RepositoryStatus


def parse_status(output: str) -> RepositoryStatus:
    """Turn porcelain status text into a RepositoryStatus.

    Each line is ``XY path``: a two character code, a space and the path.
    Lines of three characters or fewer carry no path and are skipped.
    Codes outside the known table count as modified. A file that is staged and
    also changed in the working tree may be listed twice, once per line.

    Args:
        output: Raw output of ``git status --porcelain``

    Returns:
        The classified status
    """
    staged: List[str] = []
    modified: List[str] = []
    untracked: List[str] = []

    for line in output.splitlines():
        line = line.rstrip("\r")
        if len(line) <= 3:
            continue

        code = line[:2]
        path = line[3:]

        if code in STAGED_CODES:
            staged.append(path)
        elif code in MODIFIED_CODES:
            modified.append(path)
        elif code == UNTRACKED_CODE:
            untracked.append(path)
        elif code in RENAMED_CODES:
            # "old -> new", keep the new name
            staged.append(path.split(RENAME_SEPARATOR)[-1])
        elif path:
            modified.append(path)

    return RepositoryStatus.from_files(staged, modified, untracked)
