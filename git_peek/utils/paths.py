"""Path helpers."""

import os


def normalize_path(path: str) -> str:
    """Normalize a repository path into its tracking key.

    Expands ``~``, makes the path absolute and collapses ``..`` and trailing
    separators. Symlinks are not resolved: two different spellings of the same
    directory through a symlink are tracked as two repositories.
    """
    return os.path.normpath(os.path.abspath(os.path.expanduser(path)))
