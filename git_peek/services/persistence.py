"""On-disk storage for the tracked repository list."""
import json
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from git_peek.constants import DEFAULT_DATA_DIR, REPOSITORIES_FILE_NAME, STORAGE_FORMAT_VERSION
from git_peek.logging_config import get_logger
from git_peek.models.repository import Repository

# Import fcntl for POSIX file locking (Unix/Linux/macOS)
try:
    import fcntl
    HAS_FCNTL = True
except ImportError:
    HAS_FCNTL = False

logger = get_logger(__name__)


class RepositoryFile:
    """Reads and writes the repository list as one pretty-printed JSON document.

    Document layout::

        {"version": 1, "saved_at": "...", "repositories": [{...}, ...]}

    A bare JSON list of repositories is accepted on load as well.
    """

    def __init__(self, path: Optional[Path] = None):
        """Initialize storage.

        Args:
            path: File to use, defaults to ~/.git-peek/repositories.json
        """
        self.path = Path(path).expanduser() if path else DEFAULT_DATA_DIR / REPOSITORIES_FILE_NAME

    @contextmanager
    def _acquire_lock(self, file_handle, operation: str = "read"):
        """Acquire an advisory lock on an open file.

        Args:
            file_handle: Open file handle to lock
            operation: Type of operation ("read" or "write")
        """
        if not HAS_FCNTL:
            yield
            return

        lock_type = fcntl.LOCK_EX if operation == "write" else fcntl.LOCK_SH
        fcntl.flock(file_handle.fileno(), lock_type)
        try:
            yield
        finally:
            try:
                fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)
            except OSError as e:
                logger.debug(f"Error releasing lock: {e}")

    def load(self) -> List[Repository]:
        """Load repositories from disk.

        Returns:
            The stored repositories in order. Empty when the file is missing or
            cannot be read; a corrupt file is reported and treated as empty.
        """
        if not self.path.exists():
            logger.debug(f"No repository file at {self.path}")
            return []

        try:
            with open(self.path, 'r') as f:
                with self._acquire_lock(f, operation="read"):
                    data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in repository file {self.path}: {e}")
            return []
        except OSError as e:
            logger.warning(f"Failed to read repository file {self.path}: {e}")
            return []

        entries = self._extract_entries(data)
        if entries is None:
            logger.warning(f"Unrecognized repository file layout in {self.path}, ignoring it")
            return []

        try:
            repositories = [Repository.from_dict(entry) for entry in entries]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed repository entry in {self.path}: {e}")
            return []

        logger.debug(f"Loaded {len(repositories)} repositories from {self.path}")
        return repositories

    @staticmethod
    def _extract_entries(data: Any) -> Optional[list]:
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("repositories"), list):
            return data["repositories"]
        return None

    def save(self, repositories: List[Repository]) -> bool:
        """Write repositories to disk atomically.

        Failures are logged, never raised.

        Returns:
            True if the file was written
        """
        document = {
            "version": STORAGE_FORMAT_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "repositories": [repository.to_dict() for repository in repositories],
        }

        temp_file: Optional[Path] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            # Atomic write: unique temp file in the same directory, then rename.
            # Other processes saving at the same time get their own temp file.
            with tempfile.NamedTemporaryFile(
                'w',
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix='.tmp',
                delete=False,
            ) as f:
                temp_file = Path(f.name)
                with self._acquire_lock(f, operation="write"):
                    json.dump(document, f, indent=2)
                    f.write("\n")
                    f.flush()
            temp_file.replace(self.path)
            temp_file = None

            logger.debug(f"Saved {len(repositories)} repositories to {self.path}")
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to save repositories: {e}")
            return False
        finally:
            if temp_file is not None:
                try:
                    temp_file.unlink()
                except OSError:
                    pass
