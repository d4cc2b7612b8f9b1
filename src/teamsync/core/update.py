#!/usr/bin/env python3
"""
Update (pull) classification for teamsync.

Works out which files an update brings in, which layout files it forces
and which conflicts stop it. Unlike push, an update has no override: any
unresolved conflict blocks it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Set

from .classifier import check_status
from .filters import LayoutMatcher, LayoutViewFilter, UpdateFilter
from .status import UNRESOLVED_CONFLICTS, FileStatusRecord, Perspective
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UpdateFileSets:
    """Immutable result of one update classification pass."""

    files_to_update: FrozenSet[Path] = frozenset()
    conflicts: FrozenSet[Path] = frozenset()
    modified_layout: FrozenSet[Path] = frozenset()
    forced_layout: FrozenSet[Path] = frozenset()

    @property
    def blocked(self) -> bool:
        return bool(self.conflicts)

    @property
    def layout_changed(self) -> bool:
        return bool(self.modified_layout)

    def forced_files(self, include_layout: bool) -> FrozenSet[Path]:
        """Layout files to force-update for the current toggle position."""
        if include_layout:
            return self.forced_layout | self.modified_layout
        return self.forced_layout

    def has_changes(self, include_layout: bool) -> bool:
        return bool(self.files_to_update or self.forced_files(include_layout))


def suppress_nested(files: Iterable[Path], directories: FrozenSet[Path]) -> FrozenSet[Path]:
    """Drop every file whose parent directory is itself in ``directories``.

    A directory being added or removed as a whole supersedes the entries
    for the files inside it.
    """
    return frozenset(path for path in files if path.parent not in directories)


class UpdateFileSetBuilder:
    """Partitions status records for an update."""

    def __init__(
        self,
        update_filter: Optional[UpdateFilter] = None,
        view_filter: Optional[LayoutViewFilter] = None,
        layout_matcher: Optional[LayoutMatcher] = None,
        perspective: Perspective = Perspective.REMOTE
    ):
        self.update_filter = update_filter or UpdateFilter()
        self.view_filter = view_filter or LayoutViewFilter()
        self.layout_matcher = layout_matcher or LayoutMatcher()
        self.perspective = perspective

    def classify(self, records: Iterable[FileStatusRecord]) -> UpdateFileSets:
        perspective = self.perspective
        candidates: Set[Path] = set()
        conflicts: Set[Path] = set()
        modified_layout: Set[Path] = set()
        forced_layout: Set[Path] = set()

        for record in records:
            status = check_status(record, perspective)
            is_layout = self.layout_matcher.is_layout_file(record.path)

            if self.update_filter.accept(record, perspective):
                if not is_layout:
                    candidates.add(record.path)
                elif not self.view_filter.accept(record, perspective):
                    logger.debug(f"Hiding layout file {record.path} from update")
                elif self.update_filter.update_always(record, perspective):
                    forced_layout.add(record.path)
                else:
                    modified_layout.add(record.path)

            elif status in UNRESOLVED_CONFLICTS:
                if is_layout:
                    # Layout conflicts cannot be resolved by the user here;
                    # take the repository version.
                    forced_layout.add(record.path)
                else:
                    conflicts.add(record.path)

        directories = frozenset(candidates)
        files_to_update = suppress_nested(candidates, directories)
        dropped = len(candidates) - len(files_to_update)
        if dropped:
            logger.debug(f"{dropped} file(s) covered by a directory-level update")

        sets = UpdateFileSets(
            files_to_update=files_to_update,
            conflicts=frozenset(conflicts),
            modified_layout=frozenset(modified_layout),
            forced_layout=suppress_nested(forced_layout, directories),
        )
        logger.debug(
            f"Update classification: {len(sets.files_to_update)} to update, "
            f"{len(sets.conflicts)} conflicts, {len(sets.modified_layout)} layout, "
            f"{len(sets.forced_layout)} forced"
        )
        return sets
