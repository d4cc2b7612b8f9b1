#!/usr/bin/env python3
"""
Commit/push classification for teamsync.

This module partitions the records of one status query into the action sets
a commit or push works with: files to commit, to add and to delete, the
conflict categories that block the action, and the package-layout files
that the user may choose to include.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .errors import StatusClassificationError
from .filters import CommitFilter, LayoutMatcher, StatusFilter
from .status import EXISTENCE_CHANGES, REMOVALS, FileStatus, FileStatusRecord, Perspective
from ..utils.logger import get_logger

logger = get_logger(__name__)


# Bucket for records the filter rejects, keyed by status.
CONFLICT_BUCKETS: Dict[FileStatus, str] = {
    FileStatus.MERGE_CONFLICT: 'merge_conflicts',
    FileStatus.UNRESOLVED: 'delete_conflicts',
    FileStatus.CONFLICT_ADD: 'delete_conflicts',
    FileStatus.CONFLICT_LMRD: 'delete_conflicts',
    FileStatus.CONFLICT_LDRM: 'other_conflicts',
    FileStatus.NEEDS_MERGE: 'needs_merge',
}

# Statuses that leave a rejected record in no bucket at all.
NO_BUCKET: FrozenSet[FileStatus] = frozenset(FileStatus) - frozenset(CONFLICT_BUCKETS)


def check_status(record: FileStatusRecord, perspective: Perspective) -> FileStatus:
    """Return the record's status for ``perspective``, refusing unknown values."""
    status = record.status(perspective)
    if not isinstance(status, FileStatus):
        raise StatusClassificationError(
            f"Unrecognised {perspective.value} status {status!r} for {record.path}"
        )
    return status


@dataclass(frozen=True)
class ActionSets:
    """Immutable snapshot of one classification pass."""

    perspective: Perspective
    to_commit: FrozenSet[Path] = frozenset()
    to_add: FrozenSet[Path] = frozenset()
    to_delete: FrozenSet[Path] = frozenset()
    merge_conflicts: FrozenSet[Path] = frozenset()
    delete_conflicts: FrozenSet[Path] = frozenset()
    other_conflicts: FrozenSet[Path] = frozenset()
    needs_merge: FrozenSet[Path] = frozenset()
    modified_layout: FrozenSet[Path] = frozenset()
    # Representative record per directory, in the order first seen
    changed_layout: Tuple[FileStatusRecord, ...] = field(default=(), compare=False)

    @property
    def staged(self) -> FrozenSet[Path]:
        """Files the user has already chosen to commit, add or delete."""
        return self.to_commit | self.to_add | self.to_delete

    @property
    def conflicting(self) -> FrozenSet[Path]:
        return self.merge_conflicts | self.delete_conflicts | self.other_conflicts | self.needs_merge

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicting)

    @property
    def layout_changed(self) -> bool:
        return bool(self.modified_layout)

    def pushable(self) -> FrozenSet[Path]:
        """Every file that a push would carry."""
        return self.staged | self.modified_layout


class DirectoryState(Enum):
    """What happened to a layout record offered for its directory."""
    FIRST_SEEN = "first_seen"
    ESCALATED = "escalated"


class LayoutAggregator:
    """Keeps at most one modified layout file per directory.

    The first record offered for a directory becomes its representative.
    Every later record for the same directory is escalated: the caller must
    commit it unconditionally instead of treating it as an optional layout
    change.
    """

    def __init__(self):
        self._representatives: Dict[Path, FileStatusRecord] = {}

    def offer(self, record: FileStatusRecord) -> DirectoryState:
        directory = record.parent
        if directory in self._representatives:
            logger.debug(f"Escalating layout file {record.path}: {directory} already represented")
            return DirectoryState.ESCALATED
        self._representatives[directory] = record
        return DirectoryState.FIRST_SEEN

    def state_of(self, directory: Path) -> Optional[FileStatusRecord]:
        return self._representatives.get(directory)

    @property
    def representatives(self) -> Tuple[FileStatusRecord, ...]:
        return tuple(self._representatives.values())


class _Buckets:
    """Mutable accumulator for one classification pass."""

    def __init__(self):
        self.to_commit: Set[Path] = set()
        self.to_add: Set[Path] = set()
        self.to_delete: Set[Path] = set()
        self.merge_conflicts: Set[Path] = set()
        self.delete_conflicts: Set[Path] = set()
        self.other_conflicts: Set[Path] = set()
        self.needs_merge: Set[Path] = set()
        self.modified_layout: Set[Path] = set()

    def freeze(self, perspective: Perspective, changed_layout: Tuple[FileStatusRecord, ...]) -> ActionSets:
        return ActionSets(
            perspective=perspective,
            to_commit=frozenset(self.to_commit),
            to_add=frozenset(self.to_add),
            to_delete=frozenset(self.to_delete),
            merge_conflicts=frozenset(self.merge_conflicts),
            delete_conflicts=frozenset(self.delete_conflicts),
            other_conflicts=frozenset(self.other_conflicts),
            needs_merge=frozenset(self.needs_merge),
            modified_layout=frozenset(self.modified_layout),
            changed_layout=changed_layout,
        )


class StatusClassifier:
    """Partitions status records into commit/push action sets."""

    def __init__(
        self,
        commit_filter: Optional[StatusFilter] = None,
        layout_matcher: Optional[LayoutMatcher] = None
    ):
        self.commit_filter = commit_filter or CommitFilter()
        self.layout_matcher = layout_matcher or LayoutMatcher()

    def classify(self, records: Iterable[FileStatusRecord], perspective: Perspective) -> ActionSets:
        """
        Classify ``records`` from the given perspective.

        Args:
            records: Records from one completed status query
            perspective: LOCAL for commit, REMOTE for push

        Returns:
            A frozen ActionSets snapshot

        Raises:
            StatusClassificationError: If a record carries an unknown status
        """
        buckets = _Buckets()
        layouts = LayoutAggregator()
        records: List[FileStatusRecord] = list(records)

        for record in records:
            status = check_status(record, perspective)
            is_layout = self.layout_matcher.is_layout_file(record.path)

            if self.commit_filter.accept(record, perspective):
                self._place_accepted(record, status, is_layout, buckets, layouts)
            elif not is_layout:
                bucket = CONFLICT_BUCKETS.get(status)
                if bucket is not None:
                    getattr(buckets, bucket).add(record.path)
            else:
                logger.debug(f"Ignoring layout file {record.path} ({status.value}) from {perspective.value} view")

        sets = buckets.freeze(perspective, layouts.representatives)
        logger.debug(
            f"Classified {len(records)} records ({perspective.value}): "
            f"{len(sets.to_commit)} to commit, {len(sets.to_add)} to add, "
            f"{len(sets.to_delete)} to delete, {len(sets.conflicting)} conflicting, "
            f"{len(sets.modified_layout)} layout"
        )
        return sets

    @staticmethod
    def _place_accepted(
        record: FileStatusRecord,
        status: FileStatus,
        is_layout: bool,
        buckets: _Buckets,
        layouts: LayoutAggregator
    ):
        path = record.path
        if not is_layout or status in EXISTENCE_CHANGES:
            # Existence changes to a layout file are never optional, and
            # take no part in the per-directory bookkeeping.
            buckets.to_commit.add(path)
        elif layouts.offer(record) is DirectoryState.FIRST_SEEN:
            buckets.modified_layout.add(path)
        else:
            buckets.to_commit.add(path)

        if status is FileStatus.NEEDS_ADD:
            buckets.to_add.add(path)
        elif status in REMOVALS:
            buckets.to_delete.add(path)
