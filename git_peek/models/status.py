"""Working tree status model"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple


@dataclass(frozen=True)
class RepositoryStatus:
    """Snapshot of a repository's working tree changes.

    File lists keep the order git reported them in. The same path can show up
    in two lists (staged and modified at once).
    """
    has_changes: bool = False
    staged_files: Tuple[str, ...] = field(default_factory=tuple)
    modified_files: Tuple[str, ...] = field(default_factory=tuple)
    untracked_files: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "RepositoryStatus":
        """A clean status."""
        return cls()

    @classmethod
    def from_files(
        cls,
        staged: Iterable[str] = (),
        modified: Iterable[str] = (),
        untracked: Iterable[str] = (),
    ) -> "RepositoryStatus":
        """Build a status from file lists, deriving has_changes."""
        staged, modified, untracked = tuple(staged), tuple(modified), tuple(untracked)
        return cls(
            has_changes=bool(staged or modified or untracked),
            staged_files=staged,
            modified_files=modified,
            untracked_files=untracked,
        )

    @property
    def total_changed_files(self) -> int:
        """Total number of changed files across all categories."""
        return len(self.staged_files) + len(self.modified_files) + len(self.untracked_files)

    @property
    def is_clean(self) -> bool:
        return not self.has_changes

    @property
    def all_changed_files(self) -> Tuple[str, ...]:
        return self.staged_files + self.modified_files + self.untracked_files

    def to_dict(self) -> Dict:
        return {
            "has_changes": self.has_changes,
            "staged_files": list(self.staged_files),
            "modified_files": list(self.modified_files),
            "untracked_files": list(self.untracked_files),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "RepositoryStatus":
        status = cls.from_files(
            data.get("staged_files", []),
            data.get("modified_files", []),
            data.get("untracked_files", []),
        )
        return status

    def __str__(self) -> str:
        return (
            f"RepositoryStatus(staged: {len(self.staged_files)}, "
            f"modified: {len(self.modified_files)}, untracked: {len(self.untracked_files)})"
        )
