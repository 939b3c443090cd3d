"""Shared constants for git-peek."""

from pathlib import Path

APP_NAME = "git-peek"

# Per-user application data
DEFAULT_DATA_DIR = Path.home() / ".git-peek"
REPOSITORIES_FILE_NAME = "repositories.json"
SETTINGS_FILE_NAME = "settings.json"
LOG_FILE_NAME = "git-peek.log"
STORAGE_FORMAT_VERSION = 1

# Git defaults
GIT_EXECUTABLE = "git"
DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "main"
GIT_MARKER = ".git"

# Timing (seconds)
DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_REFRESH_INTERVAL = 10.0
MIN_REFRESH_INTERVAL = 10.0
MAX_REFRESH_INTERVAL = 300.0

# Porcelain status classification, checked in this order by the parser
STAGED_CODES = frozenset({"A ", "AM", "AD", "M ", "MA", "D ", "DA", "C ", "CM"})
MODIFIED_CODES = frozenset({" M", "MM", "MD", " D"})
RENAMED_CODES = frozenset({"R ", "RM"})
UNTRACKED_CODE = "??"
RENAME_SEPARATOR = " -> "

# Status summary titles
TITLE_EMPTY = "GitPeek"

# CLI symbols
SYMBOL_CLEAN = "✓"
SYMBOL_DIRTY = "●"
SYMBOL_UNKNOWN = "?"
SYMBOL_AHEAD = "↑"
SYMBOL_BEHIND = "↓"
SYMBOL_WORKTREE = "⊢"

LEGEND_TEXT = """
Legend:
✓ = Clean             ● = Has changes
S = Staged files      M = Modified files      U = Untracked files
↑ = Commits ahead     ↓ = Commits behind      ⊢ = Linked worktree
"""
