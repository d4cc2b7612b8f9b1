#!/usr/bin/env python3
"""
Shared fixtures for teamsync tests.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

import pytest

from teamsync.core.query import FunctionCommand, Repository
from teamsync.core.status import CommandResult, FileStatus, FileStatusRecord, StatusHandle


def rec(path, local=FileStatus.UP_TO_DATE, remote=FileStatus.UP_TO_DATE) -> FileStatusRecord:
    """Shorthand for building a status record."""
    return FileStatusRecord(Path(path), local, remote)


class FakeRepository(Repository):
    """In-memory repository that replays canned status records.

    Set ``gate`` to hold a status query until the test releases it.
    Executor calls are recorded in ``calls`` and answered with
    ``execute_result``.
    """

    def __init__(
        self,
        records: Optional[List[FileStatusRecord]] = None,
        handle: Optional[StatusHandle] = None,
        status_result: Optional[CommandResult] = None
    ):
        self.records = list(records or [])
        self.handle = handle or StatusHandle()
        self.status_result = status_result or CommandResult.success()
        self.execute_result = CommandResult.success()
        self.gate: Optional[threading.Event] = None
        self.calls = []
        self.queries = 0

    def get_status(self, listener, file_filter=None, want_remote_info=True):
        self.queries += 1

        def run(cancelled):
            if self.gate is not None:
                self.gate.wait(5)
            for record in self.records:
                if file_filter is None or file_filter(record.path):
                    listener.got_status(record)
            listener.status_complete(self.handle)
            return self.status_result

        return FunctionCommand(run)

    def commit(self, files, new_files, deleted_files, layout_files, message, handle=None):
        self.calls.append(('commit', frozenset(files), frozenset(new_files),
                           frozenset(deleted_files), frozenset(layout_files), message))
        return FunctionCommand(lambda cancelled: self.execute_result)

    def push(self, handle=None):
        self.calls.append(('push', handle))
        return FunctionCommand(lambda cancelled: self.execute_result)

    def update(self, files, forced_files, handle=None):
        self.calls.append(('update', frozenset(files), frozenset(forced_files)))
        return FunctionCommand(lambda cancelled: self.execute_result)


@pytest.fixture
def fake_repo():
    """Create an empty FakeRepository for testing."""
    return FakeRepository()


@pytest.fixture
def executor():
    """Single worker executor, shut down after the test."""
    pool = ThreadPoolExecutor(max_workers=1)
    yield pool
    pool.shutdown(wait=True)
