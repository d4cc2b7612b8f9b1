#!/usr/bin/env python3
"""
Action availability for teamsync.

Computes whether commit, push and update are enabled and which placeholder
the surrounding system shows when a file list is empty. Everything here is
a pure function of the snapshots held from the last completed query, so
toggling "include layout" never needs a new status query.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Optional

from .classifier import ActionSets
from .status import StatusHandle
from .update import UpdateFileSets


class Placeholder(Enum):
    """Placeholder state for an empty file list."""
    NONE = "none"
    NOTHING_TO_COMMIT = "team.nocommitfiles"
    NOTHING_TO_PUSH = "team.nopushfiles"
    PUSH_NEEDED = "team.pushNeeded"
    NOTHING_TO_UPDATE = "team.noupdatefiles"
    PULL_NEEDED = "team.pullNeeded"


PLACEHOLDER_MESSAGES = {
    Placeholder.NONE: "",
    Placeholder.NOTHING_TO_COMMIT: "No files to commit",
    Placeholder.NOTHING_TO_PUSH: "No files to push",
    Placeholder.PUSH_NEEDED: "Push needed (no file changes)",
    Placeholder.NOTHING_TO_UPDATE: "No files to update",
    Placeholder.PULL_NEEDED: "Pull needed (no file changes)",
}


def push_available(remote: ActionSets, handle: Optional[StatusHandle]) -> bool:
    """Push is possible when the history says so or any file would be pushed."""
    if handle is not None and handle.push_needed:
        return True
    return bool(remote.pushable())


def commit_files(local: ActionSets, include_layout: bool) -> FrozenSet[Path]:
    """Files listed for commit, with layout representatives when included."""
    if include_layout:
        return local.staged | local.modified_layout
    return local.staged


@dataclass(frozen=True)
class CommitPushAvailability:
    """Enabled state and file lists for the commit and push actions."""

    commit_files: FrozenSet[Path]
    layout_files: FrozenSet[Path]
    push_files: FrozenSet[Path]
    commit_enabled: bool
    push_enabled: bool
    layout_toggle_enabled: bool
    commit_placeholder: Placeholder
    push_placeholder: Placeholder


def evaluate_commit_push(
    local: ActionSets,
    remote: ActionSets,
    handle: Optional[StatusHandle],
    include_layout: bool = False
) -> CommitPushAvailability:
    files = commit_files(local, include_layout)
    push_files = remote.pushable()
    can_push = push_available(remote, handle)

    if push_files:
        push_placeholder = Placeholder.NONE
    elif can_push:
        push_placeholder = Placeholder.PUSH_NEEDED
    else:
        push_placeholder = Placeholder.NOTHING_TO_PUSH

    return CommitPushAvailability(
        commit_files=files,
        layout_files=local.modified_layout if include_layout else frozenset(),
        push_files=push_files,
        commit_enabled=bool(files),
        push_enabled=can_push,
        layout_toggle_enabled=local.layout_changed,
        commit_placeholder=Placeholder.NONE if files else Placeholder.NOTHING_TO_COMMIT,
        push_placeholder=push_placeholder,
    )


@dataclass(frozen=True)
class UpdateAvailability:
    """Enabled state and file lists for the update action."""

    files_to_update: FrozenSet[Path]
    forced_files: FrozenSet[Path]
    enabled: bool
    layout_toggle_enabled: bool
    placeholder: Placeholder


def evaluate_update(
    sets: UpdateFileSets,
    handle: Optional[StatusHandle],
    include_layout: bool = True
) -> UpdateAvailability:
    forced = sets.forced_files(include_layout)
    pull_needed = handle is not None and handle.pull_needed

    if sets.blocked:
        enabled = False
        placeholder = Placeholder.NONE
    elif sets.has_changes(include_layout):
        enabled = True
        placeholder = Placeholder.NONE
    elif pull_needed:
        enabled = True
        placeholder = Placeholder.PULL_NEEDED
    else:
        enabled = False
        placeholder = Placeholder.NOTHING_TO_UPDATE

    return UpdateAvailability(
        files_to_update=sets.files_to_update,
        forced_files=forced,
        enabled=enabled,
        layout_toggle_enabled=sets.layout_changed,
        placeholder=placeholder,
    )
