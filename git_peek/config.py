"""Configuration handling for git-peek"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from git_peek.constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_DATA_DIR,
    DEFAULT_REFRESH_INTERVAL,
    MAX_REFRESH_INTERVAL,
    MIN_REFRESH_INTERVAL,
    REPOSITORIES_FILE_NAME,
    SETTINGS_FILE_NAME,
)
from git_peek.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Settings:
    """User settings for git-peek with validation.

    Read once when the store and monitor are built; changing them takes effect
    after the monitor is re-created.
    """

    # Monitoring
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL  # seconds
    show_notifications: bool = False

    # Diagnostics
    debug_logging: bool = False

    # Execution
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT  # seconds, per git command
    workers: Optional[int] = None  # Number of parallel workers (None = auto-detect)

    # Storage
    storage_path: Optional[str] = None  # None = ~/.git-peek/repositories.json

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_refresh_interval()
        self._validate_command_timeout()
        self._validate_workers()

    def _validate_refresh_interval(self):
        """Validate refresh_interval is within the user range."""
        if not MIN_REFRESH_INTERVAL <= self.refresh_interval <= MAX_REFRESH_INTERVAL:
            raise ValueError(
                f"refresh_interval must be between {MIN_REFRESH_INTERVAL:g} and "
                f"{MAX_REFRESH_INTERVAL:g} seconds, got {self.refresh_interval}"
            )

    def _validate_command_timeout(self):
        """Validate command_timeout is positive."""
        if self.command_timeout <= 0:
            raise ValueError(f"command_timeout must be positive, got {self.command_timeout}")

    def _validate_workers(self):
        """Validate workers is positive when given."""
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")

    @property
    def repositories_file(self) -> Path:
        """Location of the persisted repository list."""
        if self.storage_path:
            return Path(self.storage_path).expanduser()
        return DEFAULT_DATA_DIR / REPOSITORIES_FILE_NAME

    def to_dict(self) -> dict:
        """Convert settings to a dictionary."""
        return {
            "refresh_interval": self.refresh_interval,
            "show_notifications": self.show_notifications,
            "debug_logging": self.debug_logging,
            "command_timeout": self.command_timeout,
            "workers": self.workers,
            "storage_path": self.storage_path,
        }

    def get(self, key: str, default=None):
        """Get a setting by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, settings_dict: dict) -> "Settings":
        """Create Settings from dictionary, ignoring unknown keys."""
        known_fields = {
            "refresh_interval",
            "show_notifications",
            "debug_logging",
            "command_timeout",
            "workers",
            "storage_path",
        }

        filtered = {k: v for k, v in settings_dict.items() if k in known_fields}
        return cls(**filtered)


def default_settings_path() -> Path:
    """Location of the settings file."""
    return DEFAULT_DATA_DIR / SETTINGS_FILE_NAME


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from disk.

    A missing file gives the defaults. A file that cannot be parsed or holds
    invalid values is reported and the defaults are used instead.
    """
    path = Path(path) if path else default_settings_path()
    if not path.exists():
        logger.debug(f"No settings file at {path}, using defaults")
        return Settings()

    try:
        with open(path, 'r') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("settings file must contain a JSON object")
        return Settings.from_dict(data)
    except (json.JSONDecodeError, ValueError, TypeError) as e:
        logger.warning(f"Ignoring invalid settings file {path}: {e}")
        return Settings()
    except OSError as e:
        logger.warning(f"Could not read settings file {path}: {e}")
        return Settings()


def save_settings(settings: Settings, path: Optional[Path] = None) -> None:
    """Write settings to disk, creating the parent directory if needed."""
    path = Path(path) if path else default_settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(settings.to_dict(), f, indent=2)
        logger.debug(f"Saved settings to {path}")
    except OSError as e:
        logger.warning(f"Failed to save settings: {e}")
