#!/usr/bin/env python3
"""
Interfaces between the teamsync core and a repository.

A repository answers status queries by streaming records to a listener and
executes commit, push and update commands. Every call returns a
``TeamworkCommand`` that the session runs on a background thread and may
cancel.
"""

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import AbstractSet, Callable, Optional

from .status import CommandResult, FileStatusRecord, StatusHandle

FileFilter = Callable[[Path], bool]


class StatusListener(ABC):
    """Receives the results of a status query."""

    @abstractmethod
    def got_status(self, record: FileStatusRecord):
        """Called once per file, zero or more times."""
        ...

    @abstractmethod
    def status_complete(self, handle: StatusHandle):
        """Called once after the last record."""
        ...


class TeamworkCommand(ABC):
    """A repository command that can be run once and cancelled."""

    @abstractmethod
    def get_result(self) -> CommandResult:
        """Run the command to completion. Blocks the calling thread."""
        ...

    @abstractmethod
    def cancel(self):
        """Ask the command to stop. It may still complete."""
        ...


class FunctionCommand(TeamworkCommand):
    """Runs a function that reports its own ``CommandResult``.

    The function receives a ``threading.Event`` that is set on cancel, so
    long-running work can stop between steps.
    """

    def __init__(self, function: Callable[[threading.Event], CommandResult]):
        self._function = function
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def get_result(self) -> CommandResult:
        if self._cancelled.is_set():
            return CommandResult.failure("Command cancelled")
        return self._function(self._cancelled)

    def cancel(self):
        self._cancelled.set()


class Repository(ABC):
    """Status query and executors for one working copy."""

    @abstractmethod
    def get_status(
        self,
        listener: StatusListener,
        file_filter: Optional[FileFilter] = None,
        want_remote_info: bool = True
    ) -> TeamworkCommand:
        """Query the status of every file accepted by ``file_filter``."""
        ...

    @abstractmethod
    def commit(
        self,
        files: AbstractSet[Path],
        new_files: AbstractSet[Path],
        deleted_files: AbstractSet[Path],
        layout_files: AbstractSet[Path],
        message: str,
        handle: Optional[StatusHandle] = None
    ) -> TeamworkCommand:
        """Commit `files`; layout files are committed whatever their status."""
        ...

    @abstractmethod
    def push(self, handle: Optional[StatusHandle] = None) -> TeamworkCommand:
        ...

    @abstractmethod
    def update(
        self,
        files: AbstractSet[Path],
        forced_files: AbstractSet[Path],
        handle: Optional[StatusHandle] = None
    ) -> TeamworkCommand:
        ...
