#!/usr/bin/env python3
"""
Status records for teamsync.

A repository status query produces one ``FileStatusRecord`` per file, holding
two statuses: the local one (working tree against the last synchronisation)
and the remote one (local head against the repository head). Which of the
two matters depends on the ``Perspective`` of the caller: commit reads the
local status, push and update read the remote status.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class FileStatus(Enum):
    """Status of a single file from one perspective."""
    UP_TO_DATE = "up_to_date"
    NEEDS_ADD = "needs_add"
    DELETED = "deleted"
    MODIFIED = "modified"
    NEEDS_CHECKOUT = "needs_checkout"  # new in the repository
    NEEDS_UPDATE = "needs_update"      # modified in the repository
    REMOVED = "removed"                # deleted in the repository
    NEEDS_MERGE = "needs_merge"
    MERGE_CONFLICT = "merge_conflict"
    CONFLICT_ADD = "conflict_add"      # added on both sides
    CONFLICT_LMRD = "conflict_lmrd"    # locally modified, remotely deleted
    CONFLICT_LDRM = "conflict_ldrm"    # locally deleted, remotely modified
    UNRESOLVED = "unresolved"


class Perspective(Enum):
    """Which status field of a record drives classification."""
    LOCAL = "local"
    REMOTE = "remote"


# Statuses that change whether a file exists at all.
EXISTENCE_CHANGES = frozenset({
    FileStatus.NEEDS_ADD,
    FileStatus.DELETED,
    FileStatus.CONFLICT_LDRM,
})

# Statuses that count as removals when committing.
REMOVALS = frozenset({
    FileStatus.DELETED,
    FileStatus.CONFLICT_LDRM,
})

# Statuses that block an update outright.
UNRESOLVED_CONFLICTS = frozenset({
    FileStatus.UNRESOLVED,
    FileStatus.CONFLICT_ADD,
    FileStatus.CONFLICT_LMRD,
})


@dataclass(frozen=True)
class FileStatusRecord:
    """Status of one file as reported by a status query."""

    path: Path
    local_status: FileStatus
    remote_status: FileStatus = FileStatus.UP_TO_DATE

    def __post_init__(self):
        if not isinstance(self.path, Path):
            object.__setattr__(self, 'path', Path(self.path))

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def parent(self) -> Path:
        return self.path.parent

    def status(self, perspective: Perspective) -> FileStatus:
        """Return the status field selected by ``perspective``."""
        if perspective is Perspective.LOCAL:
            return self.local_status
        return self.remote_status


@dataclass(frozen=True)
class StatusHandle:
    """Terminal result of a status query.

    ``push_needed`` and ``pull_needed`` cover histories that differ without
    any individual file differing (fast-forward or merge-only states).
    ``resume_token`` is opaque to the core; executors use it to avoid asking
    the repository for head positions again.
    """

    push_needed: bool = False
    pull_needed: bool = False
    resume_token: Optional[Any] = field(default=None, compare=False)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a repository command."""

    error: bool = False
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> 'CommandResult':
        return cls(False, message)

    @classmethod
    def failure(cls, message: str) -> 'CommandResult':
        return cls(True, message)

    @property
    def is_error(self) -> bool:
        return self.error
