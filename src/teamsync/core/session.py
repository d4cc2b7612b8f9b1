#!/usr/bin/env python3
"""
Commit/push and update sessions for teamsync.

A session covers one opening of the commit/push or update "dialog": it runs
a single status query in the background, classifies the result once, and
then optionally executes one command. Sessions move through

    IDLE -> QUERYING -> READY | BLOCKED | FAILED
    READY -> EXECUTING -> IDLE | FAILED

and ``abort()`` returns a querying or executing session to IDLE. Each piece
of background work carries its own cancellation token; its completion
handler checks the token first and drops the result of an aborted session
without touching any state.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from .availability import (
    CommitPushAvailability,
    UpdateAvailability,
    commit_files,
    evaluate_commit_push,
    evaluate_update,
)
from .classifier import ActionSets, StatusClassifier
from .config import TeamSettings, save_preferences
from .conflicts import ConflictReport, ConflictResolver
from .errors import ConfigError, SessionStateError
from .query import FileFilter, Repository, StatusListener, TeamworkCommand
from .status import CommandResult, FileStatusRecord, Perspective, StatusHandle
from .update import UpdateFileSetBuilder, UpdateFileSets
from ..utils.logger import get_logger


class SessionState(Enum):
    """Lifecycle of a session."""
    IDLE = "idle"
    QUERYING = "querying"
    READY = "ready"
    BLOCKED = "blocked"
    EXECUTING = "executing"
    FAILED = "failed"


class CancellationToken:
    """Cancellation flag shared between a session and one work item."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class StatusCollector(StatusListener):
    """Accumulates records as a status query streams them.

    Written only by the query while it runs, read only by the completion
    handler after it finished.
    """

    def __init__(self):
        self.records: List[FileStatusRecord] = []
        self.handle: Optional[StatusHandle] = None

    def got_status(self, record: FileStatusRecord):
        self.records.append(record)

    def status_complete(self, handle: StatusHandle):
        self.handle = handle


class TeamSession:
    """Shared state machine for commit/push and update sessions."""

    def __init__(
        self,
        repository: Repository,
        executor: ThreadPoolExecutor,
        settings: Optional[TeamSettings] = None,
        file_filter: Optional[FileFilter] = None,
        previous_handle: Optional[StatusHandle] = None,
        on_change: Optional[Callable[['TeamSession'], None]] = None
    ):
        self.logger = get_logger(f"{__name__}.{type(self).__name__}")
        self.repository = repository
        self.settings = settings or TeamSettings()
        self.file_filter = file_filter
        self.previous_handle = previous_handle
        self.on_change = on_change
        self.resolver = ConflictResolver(self.settings.max_listed_conflicts)

        self.state = SessionState.IDLE
        self.aborted = False
        self.handle: Optional[StatusHandle] = None
        self.records: Tuple[FileStatusRecord, ...] = ()
        self.report: Optional[ConflictReport] = None
        self.error: Optional[CommandResult] = None
        self.exception: Optional[BaseException] = None
        self.last_result: Optional[CommandResult] = None

        self._executor = executor
        self._started = False
        self._command: Optional[TeamworkCommand] = None
        self._token: Optional[CancellationToken] = None
        self._future: Optional[Future] = None
        self._settled = threading.Event()
        # Guards state changes made by abort() and the completion handler
        self._lock = threading.RLock()

    # Subclass hooks

    want_remote_info = True

    def _classify(self, records: List[FileStatusRecord], handle: Optional[StatusHandle]) -> Any:
        """Classify the finished query. Runs on the worker thread."""
        raise NotImplementedError

    def _apply(self, outcome: Any):
        """Apply a classification outcome. Runs in the completion handler."""
        raise NotImplementedError

    # Lifecycle

    @property
    def active(self) -> bool:
        return self.state in (SessionState.QUERYING, SessionState.EXECUTING)

    @property
    def effective_handle(self) -> Optional[StatusHandle]:
        return self.handle if self.handle is not None else self.previous_handle

    def start(self) -> 'TeamSession':
        """Start the status query."""
        if self._started:
            raise SessionStateError("A session runs its status query only once; open a new session")
        self._started = True

        collector = StatusCollector()
        command = self.repository.get_status(collector, self.file_filter, self.want_remote_info)
        self.logger.debug("Starting status query")
        self._submit(
            SessionState.QUERYING,
            command,
            lambda: self._query(command, collector),
            self._query_finished,
        )
        return self

    def abort(self):
        """Cancel the running query or command and discard its result."""
        with self._lock:
            if not self.active:
                raise SessionStateError(f"Cannot abort a session that is {self.state.value}")

            self.logger.info(f"Aborting session while {self.state.value}")
            if self._command is not None:
                self._command.cancel()
            if self._token is not None:
                self._token.cancel()
            self.aborted = True
            self.state = SessionState.IDLE
            self._settled.set()

    def wait(self, timeout: Optional[float] = None) -> SessionState:
        """
        Block until the current work item has been handled.

        Raises:
            TimeoutError: If the work does not finish within ``timeout``
            Exception: Whatever the work item raised, e.g. a classification error
        """
        if not self._settled.wait(timeout):
            raise TimeoutError(f"Session still {self.state.value} after {timeout}s")
        if self.exception is not None:
            raise self.exception
        return self.state

    def _submit(
        self,
        state: SessionState,
        command: TeamworkCommand,
        work: Callable[[], Any],
        on_done: Callable[[Any], None]
    ):
        token = CancellationToken()
        self._command = command
        self._token = token
        self._settled.clear()
        self.state = state

        self._future = self._executor.submit(work)
        self._future.add_done_callback(lambda future: self._finished(future, token, on_done))

    def _finished(self, future: Future, token: CancellationToken, on_done: Callable[[Any], None]):
        """Single completion handler for every work item of this session."""
        with self._lock:
            try:
                if token.cancelled:
                    self.logger.debug("Discarding result of aborted work")
                    return

                exception = future.exception()
                if exception is not None:
                    self.logger.error(f"Session failed: {exception}")
                    self.exception = exception
                    self.state = SessionState.FAILED
                    self._notify()
                    return

                on_done(future.result())
            finally:
                if not token.cancelled:
                    self._settled.set()

    def _notify(self):
        if self.on_change is not None:
            self.on_change(self)

    # Query

    def _query(self, command: TeamworkCommand, collector: StatusCollector):
        result = command.get_result()
        if result.is_error:
            return result, collector, None
        return result, collector, self._classify(collector.records, collector.handle)

    def _query_finished(self, value):
        result, collector, outcome = value
        if result.is_error:
            self.logger.error(f"Status query failed: {result.message}")
            self.error = result
            self.state = SessionState.FAILED
            self._notify()
            return

        self.records = tuple(collector.records)
        self.handle = collector.handle
        self._apply(outcome)
        self._notify()

    # Execution

    def _require_ready(self, description: str):
        if self.state is not SessionState.READY:
            raise SessionStateError(f"Cannot {description} while {self.state.value}")

    def _execute(self, command: TeamworkCommand, description: str):
        self._require_ready(description)
        self.logger.info(f"Executing {description}")
        self._submit(
            SessionState.EXECUTING,
            command,
            command.get_result,
            lambda result: self._execution_finished(result, description),
        )

    def _execution_finished(self, result: CommandResult, description: str):
        self.last_result = result
        if result.is_error:
            self.logger.error(f"{description.capitalize()} failed: {result.message}")
            self.error = result
            self.state = SessionState.FAILED
        else:
            self.logger.info(f"{description.capitalize()} completed")
            self.state = SessionState.IDLE
        self._notify()


class CommitPushSession(TeamSession):
    """Classifies a status query for commit and push."""

    want_remote_info = False

    def __init__(self, *args, include_layout: Optional[bool] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.classifier = StatusClassifier(
            self.settings.commit_filter(), self.settings.layout_matcher()
        )
        if include_layout is None:
            include_layout = self.settings.include_layout_commit
        self.include_layout = include_layout

        self.local: Optional[ActionSets] = None
        self.remote: Optional[ActionSets] = None
        self.availability: Optional[CommitPushAvailability] = None

    def _classify(self, records, handle):
        local = self.classifier.classify(records, Perspective.LOCAL)
        if local.has_conflicts:
            return local, None, self.resolver.report_for(local)

        remote = self.classifier.classify(records, Perspective.REMOTE)
        if remote.has_conflicts:
            remote = self.resolver.resolve_push_conflicts(local, remote)
            # Push-side conflicts only block when there is nothing to commit
            if remote.has_conflicts and not commit_files(local, self.include_layout):
                return local, remote, self.resolver.report_for(remote, include_needs_merge=False)

        return local, remote, None

    def _apply(self, outcome):
        local, remote, report = outcome
        self.local = local
        self.remote = remote
        if report is not None:
            self.logger.warning(f"Blocked: {report.category.value} ({len(report.names)} file(s) listed)")
            self.report = report
            self.state = SessionState.BLOCKED
            return

        self.availability = evaluate_commit_push(local, remote, self.handle, self.include_layout)
        self.state = SessionState.READY

    def set_include_layout(self, include: bool) -> Optional[CommitPushAvailability]:
        """Recompute the commit list for the toggle without a new query."""
        self.include_layout = include
        if self.state is SessionState.READY:
            self.availability = evaluate_commit_push(self.local, self.remote, self.handle, include)
        return self.availability

    @property
    def layout_files(self) -> List[Path]:
        """Layout representatives, one per directory."""
        if self.local is None:
            return []
        return [record.path for record in self.local.changed_layout]

    def commit(self, message: str):
        self._require_ready("commit")
        if not self.availability.commit_enabled:
            raise SessionStateError("Nothing to commit")
        if not message or not message.strip():
            raise SessionStateError("A commit message is required")

        command = self.repository.commit(
            self.availability.commit_files,
            self.local.to_add,
            self.local.to_delete,
            self.availability.layout_files,
            message,
            self.effective_handle,
        )
        self._execute(command, "commit")

    def push(self):
        self._require_ready("push")
        if not self.availability.push_enabled:
            raise SessionStateError("Nothing to push")
        self._execute(self.repository.push(self.effective_handle), "push")


class UpdateSession(TeamSession):
    """Classifies a status query for an update."""

    def __init__(self, *args, include_layout: Optional[bool] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.builder = UpdateFileSetBuilder(
            self.settings.update_filter(),
            self.settings.view_filter(),
            self.settings.layout_matcher(),
        )
        if include_layout is None:
            include_layout = self.settings.include_layout_update
        self.include_layout = include_layout

        self.update_sets: Optional[UpdateFileSets] = None
        self.availability: Optional[UpdateAvailability] = None

    def _classify(self, records, handle):
        sets = self.builder.classify(records)
        report = self.resolver.unresolved_report(sets.conflicts) if sets.blocked else None
        return sets, report

    def _apply(self, outcome):
        sets, report = outcome
        self.update_sets = sets
        self.availability = evaluate_update(sets, self.handle, self.include_layout)
        if report is not None:
            self.logger.warning(f"Update blocked by {len(sets.conflicts)} unresolved conflict(s)")
            self.report = report
            self.state = SessionState.BLOCKED
            return
        self.state = SessionState.READY

    def set_include_layout(self, include: bool) -> Optional[UpdateAvailability]:
        """Recompute forced files and enablement without a new query."""
        self.include_layout = include
        if self.update_sets is not None:
            self.availability = evaluate_update(self.update_sets, self.handle, include)
        return self.availability

    def update(self):
        self._require_ready("update")
        if not self.availability.enabled:
            raise SessionStateError("Nothing to update")
        command = self.repository.update(
            self.availability.files_to_update,
            self.availability.forced_files,
            self.effective_handle,
        )
        self._execute(command, "update")


class TeamController:
    """Opens sessions and keeps what survives between them.

    Only the include-layout preferences and the last status handle carry
    over; every session starts with empty action sets. At most one session
    is active at a time.
    """

    def __init__(
        self,
        repository: Repository,
        settings: Optional[TeamSettings] = None,
        persist_preferences: bool = False
    ):
        self.logger = get_logger(f"{__name__}.TeamController")
        self.repository = repository
        self.settings = settings or TeamSettings()
        self.persist_preferences = persist_preferences
        self.last_handle: Optional[StatusHandle] = None
        self.session: Optional[TeamSession] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="teamsync")

    def _open(self, session_class, on_change, file_filter, include_layout):
        if self.session is not None and self.session.active:
            self.session.abort()

        def changed(session: TeamSession):
            if session.handle is not None:
                self.last_handle = session.handle
            if on_change is not None:
                on_change(session)

        self.session = session_class(
            self.repository,
            self._executor,
            settings=self.settings,
            file_filter=file_filter,
            previous_handle=self.last_handle,
            on_change=changed,
            include_layout=include_layout,
        )
        return self.session.start()

    def open_commit_push(
        self,
        on_change: Optional[Callable[[TeamSession], None]] = None,
        file_filter: Optional[FileFilter] = None,
        include_layout: Optional[bool] = None
    ) -> CommitPushSession:
        return self._open(CommitPushSession, on_change, file_filter, include_layout)

    def open_update(
        self,
        on_change: Optional[Callable[[TeamSession], None]] = None,
        file_filter: Optional[FileFilter] = None,
        include_layout: Optional[bool] = None
    ) -> UpdateSession:
        return self._open(UpdateSession, on_change, file_filter, include_layout)

    def toggle_layout(self, include: bool):
        """Apply the include-layout toggle to the current session and remember it."""
        session = self.session
        if isinstance(session, CommitPushSession):
            self.settings.include_layout_commit = include
        elif isinstance(session, UpdateSession):
            self.settings.include_layout_update = include
        else:
            raise SessionStateError("No session to apply the layout toggle to")

        availability = session.set_include_layout(include)
        if self.persist_preferences:
            try:
                save_preferences(self.settings)
            except ConfigError as e:
                self.logger.warning(f"Could not save preferences: {e}")
        return availability

    def shutdown(self):
        if self.session is not None and self.session.active:
            self.session.abort()
        self._executor.shutdown(wait=False)
