#!/usr/bin/env python3
"""
Conflict resolution for teamsync.

Decides whether conflicts block an action, applies the push override for
files the user has already resolved locally, and builds the report shown
when an action stays blocked.
"""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import AbstractSet, Iterable, Optional, Tuple

from .classifier import ActionSets
from ..utils.logger import get_logger
from ..utils.path import display_name

logger = get_logger(__name__)

DEFAULT_MAX_LISTED = 10
MORE_FILES_MARKER = "(and more - check status)"


class ConflictCategory(Enum):
    """Kind of conflict report, in the order reports are chosen."""
    MERGE_CONFLICT = "team-resolve-merge-conflicts"
    DELETE_CONFLICT = "team-resolve-conflicts-delete"
    OTHER_CONFLICT = "team-update-first"
    UP_TO_DATE_FAILED = "team-uptodate-failed"
    UNRESOLVED = "team-unresolved-conflicts"


CATEGORY_MESSAGES = {
    ConflictCategory.MERGE_CONFLICT:
        "The following files have merge conflicts. Resolve them and commit before pushing:",
    ConflictCategory.DELETE_CONFLICT:
        "The following files were changed on one side and deleted on the other. "
        "Delete or restore them locally first:",
    ConflictCategory.OTHER_CONFLICT:
        "The following files were deleted locally but modified in the repository. "
        "Update first:",
    ConflictCategory.UP_TO_DATE_FAILED:
        "The working copy is not up to date with the repository. Update first.",
    ConflictCategory.UNRESOLVED:
        "The update cannot proceed while these files have unresolved conflicts:",
}


@dataclass(frozen=True)
class ConflictReport:
    """What the surrounding system shows when an action is blocked."""

    category: ConflictCategory
    names: Tuple[str, ...] = ()
    more: bool = False

    @property
    def message(self) -> str:
        return CATEGORY_MESSAGES[self.category]

    def lines(self) -> Tuple[str, ...]:
        """File names followed by the elision marker, if any."""
        if self.more:
            return self.names + (MORE_FILES_MARKER,)
        return self.names

    def format_files(self) -> str:
        return "".join(f"    {line}\n" for line in self.lines())

    def __str__(self) -> str:
        files = self.format_files()
        return f"{self.message}\n{files}" if files else self.message


def build_conflicts_list(
    conflicts: Iterable[Path],
    max_listed: int = DEFAULT_MAX_LISTED
) -> Tuple[Tuple[str, ...], bool]:
    """
    Return up to ``max_listed`` file names and whether more were left out.

    Files are listed in path order so the same conflicts always produce the
    same listing.
    """
    ordered = sorted(conflicts, key=str)
    names = tuple(display_name(path) for path in ordered[:max_listed])
    return names, len(ordered) > max_listed


class ConflictResolver:
    """Turns conflict sets into pass/block decisions and reports."""

    def __init__(self, max_listed: int = DEFAULT_MAX_LISTED):
        self.max_listed = max_listed

    def resolve_push_conflicts(self, local: ActionSets, remote: ActionSets) -> ActionSets:
        """
        Drop remote conflicts the user has already resolved locally.

        A file that conflicts with the repository head but is staged for
        commit, add or delete in the local view is the user's resolution of
        that conflict, so it no longer blocks the push.
        """
        resolved = local.staged
        overridden = remote.conflicting & resolved
        if overridden:
            logger.info(f"{len(overridden)} conflicting file(s) already resolved locally")

        return replace(
            remote,
            merge_conflicts=remote.merge_conflicts - resolved,
            delete_conflicts=remote.delete_conflicts - resolved,
            other_conflicts=remote.other_conflicts - resolved,
            needs_merge=remote.needs_merge - resolved,
        )

    @staticmethod
    def has_conflicts(sets: ActionSets) -> bool:
        return sets.has_conflicts

    def report(
        self,
        merge_conflicts: AbstractSet[Path],
        delete_conflicts: AbstractSet[Path],
        other_conflicts: AbstractSet[Path],
        needs_merge: Optional[AbstractSet[Path]] = None
    ) -> ConflictReport:
        """
        Choose the report for a blocked action.

        Merge conflicts come first, then delete conflicts, then other
        conflicts. If none of those remain the caller still believed the
        action was blocked (typically by ``needs_merge``), so the generic
        "up to date check failed" report is returned.
        """
        for category, files in (
            (ConflictCategory.MERGE_CONFLICT, merge_conflicts),
            (ConflictCategory.DELETE_CONFLICT, delete_conflicts),
            (ConflictCategory.OTHER_CONFLICT, other_conflicts),
        ):
            if files:
                names, more = build_conflicts_list(files, self.max_listed)
                return ConflictReport(category, names, more)

        if needs_merge:
            logger.debug(f"{len(needs_merge)} file(s) need merging")
        return ConflictReport(ConflictCategory.UP_TO_DATE_FAILED)

    def report_for(self, sets: ActionSets, include_needs_merge: bool = True) -> ConflictReport:
        return self.report(
            sets.merge_conflicts,
            sets.delete_conflicts,
            sets.other_conflicts,
            sets.needs_merge if include_needs_merge else None,
        )

    def unresolved_report(self, conflicts: AbstractSet[Path]) -> ConflictReport:
        """Report for an update blocked by unresolved conflicts."""
        names, more = build_conflicts_list(conflicts, self.max_listed)
        return ConflictReport(ConflictCategory.UNRESOLVED, names, more)
