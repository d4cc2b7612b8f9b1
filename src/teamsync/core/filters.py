#!/usr/bin/env python3
"""
Acceptance filters used by the classifiers.

Classifiers treat filters as opaque predicates over a record and a
perspective. The classes here are the defaults used by the Git front end;
callers can pass any object with the same methods.
"""

from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable, Protocol, Tuple, Union

from .status import FileStatus, FileStatusRecord, Perspective

DEFAULT_LAYOUT_PATTERNS: Tuple[str, ...] = ('package.bluej', 'bluej.pkg', 'bluej.pkh')
DEFAULT_HIDDEN_LAYOUT_PATTERNS: Tuple[str, ...] = ('*.pkh', '*~')


class StatusFilter(Protocol):
    def accept(self, record: FileStatusRecord, perspective: Perspective) -> bool:
        ...


class LayoutMatcher:
    """Recognises package-layout metadata files by file name pattern."""

    def __init__(self, patterns: Iterable[str] = DEFAULT_LAYOUT_PATTERNS):
        self.patterns = tuple(patterns)

    def is_layout_file(self, path: Union[str, Path]) -> bool:
        name = Path(path).name
        return any(fnmatch(name, pattern) for pattern in self.patterns)

    def __repr__(self) -> str:
        return f"LayoutMatcher({list(self.patterns)!r})"


class CommitFilter:
    """Accepts records that a commit (or push) would carry.

    A local delete against a remote modification is accepted from the local
    perspective only: committing it is how the user resolves that conflict.
    From the remote perspective it stays a conflict.
    """

    COMMITTABLE = frozenset({
        FileStatus.NEEDS_ADD,
        FileStatus.DELETED,
        FileStatus.MODIFIED,
    })

    def accept(self, record: FileStatusRecord, perspective: Perspective) -> bool:
        status = record.status(perspective)
        if status in self.COMMITTABLE:
            return True
        return perspective is Perspective.LOCAL and status is FileStatus.CONFLICT_LDRM


class UpdateFilter:
    """Accepts records that an update (pull) would bring in."""

    UPDATABLE = frozenset({
        FileStatus.NEEDS_CHECKOUT,
        FileStatus.NEEDS_UPDATE,
        FileStatus.NEEDS_MERGE,
        FileStatus.REMOVED,
        FileStatus.CONFLICT_LDRM,
    })

    # New or removed files; these cannot be left out of an update.
    ALWAYS = frozenset({
        FileStatus.NEEDS_CHECKOUT,
        FileStatus.REMOVED,
        FileStatus.CONFLICT_LDRM,
    })

    def accept(self, record: FileStatusRecord, perspective: Perspective = Perspective.REMOTE) -> bool:
        return record.status(perspective) in self.UPDATABLE

    def update_always(self, record: FileStatusRecord, perspective: Perspective = Perspective.REMOTE) -> bool:
        return record.status(perspective) in self.ALWAYS


class LayoutViewFilter:
    """Hides layout files the user should never see, such as backups."""

    def __init__(self, hidden_patterns: Iterable[str] = DEFAULT_HIDDEN_LAYOUT_PATTERNS):
        self.hidden_patterns = tuple(hidden_patterns)

    def accept(self, record: FileStatusRecord, perspective: Perspective = Perspective.REMOTE) -> bool:
        return not any(fnmatch(record.name, pattern) for pattern in self.hidden_patterns)
