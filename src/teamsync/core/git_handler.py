#!/usr/bin/env python3
"""
Git repository handler for teamsync.

This module answers status queries for a Git working copy and executes the
commit, push and update commands the sessions ask for. Local statuses come
from ``git status --porcelain``; remote statuses compare the commits on each
side of the merge base between HEAD and the upstream branch.
"""

import threading
from pathlib import Path
from typing import AbstractSet, Dict, Iterator, List, Optional, Tuple, Union

from git import Repo, InvalidGitRepositoryError, NoSuchPathError, GitCommandError
from git.remote import PushInfo

from .errors import GitError
from .filters import LayoutMatcher
from .query import FileFilter, FunctionCommand, Repository, StatusListener, TeamworkCommand
from .status import CommandResult, FileStatus, FileStatusRecord, StatusHandle
from ..utils.logger import get_logger

# Unmerged index entries, see git-status(1)
UNMERGED_CODES: Dict[str, FileStatus] = {
    'DD': FileStatus.UNRESOLVED,
    'AU': FileStatus.CONFLICT_ADD,
    'UA': FileStatus.CONFLICT_ADD,
    'AA': FileStatus.CONFLICT_ADD,
    'UD': FileStatus.CONFLICT_LMRD,
    'DU': FileStatus.CONFLICT_LDRM,
    'UU': FileStatus.MERGE_CONFLICT,
}

UNMERGED_STATUSES = frozenset(UNMERGED_CODES.values())


def parse_porcelain_code(code: str) -> Optional[FileStatus]:
    """Map a two-letter ``git status --porcelain`` code to a local status."""
    if code in UNMERGED_CODES:
        return UNMERGED_CODES[code]
    if code == '??' or 'A' in code:
        return FileStatus.NEEDS_ADD
    if 'D' in code:
        return FileStatus.DELETED
    if code == '!!':
        return None
    if code.strip():
        return FileStatus.MODIFIED
    return None


def parse_porcelain(output: str) -> Dict[str, FileStatus]:
    """Parse ``git status --porcelain=v1 -z`` output into path -> status.

    A rename is reported as the removal of the old path and the addition of
    the new one.
    """
    statuses: Dict[str, FileStatus] = {}
    entries = output.split('\0')
    index = 0

    while index < len(entries):
        entry = entries[index]
        index += 1
        if len(entry) < 4:
            continue

        code, path = entry[:2], entry[3:]
        if code[0] in ('R', 'C') and index < len(entries):
            original = entries[index]
            index += 1
            if code[0] == 'R' and original:
                statuses[original] = FileStatus.DELETED
            statuses[path] = FileStatus.NEEDS_ADD
            continue

        status = parse_porcelain_code(code)
        if status is not None:
            statuses[path] = status

    return statuses


def parse_name_status(output: str) -> Dict[str, str]:
    """Parse ``git diff --name-status -z --no-renames`` output into path -> letter."""
    changes: Dict[str, str] = {}
    entries = [entry for entry in output.split('\0') if entry]
    for letter, path in zip(entries[0::2], entries[1::2]):
        changes[path] = letter[0]
    return changes


def remote_status(ahead: Optional[str], behind: Optional[str]) -> FileStatus:
    """
    Combine what changed locally and remotely since the merge base.

    Args:
        ahead: Change letter (A/D/M...) in local commits not yet pushed
        behind: Change letter in upstream commits not yet pulled
    """
    if ahead and behind:
        if ahead == 'D' and behind != 'D':
            return FileStatus.CONFLICT_LDRM
        if behind == 'D' and ahead != 'D':
            return FileStatus.CONFLICT_LMRD
        if ahead == 'A' and behind == 'A':
            return FileStatus.CONFLICT_ADD
        if ahead == 'D' and behind == 'D':
            return FileStatus.UP_TO_DATE
        return FileStatus.NEEDS_MERGE
    if ahead:
        return {'A': FileStatus.NEEDS_ADD, 'D': FileStatus.DELETED}.get(ahead, FileStatus.MODIFIED)
    if behind:
        return {'A': FileStatus.NEEDS_CHECKOUT, 'D': FileStatus.REMOVED}.get(behind, FileStatus.NEEDS_UPDATE)
    return FileStatus.UP_TO_DATE


class GitRepository(Repository):
    """Handles Git repository operations for teamsync."""

    def __init__(
        self,
        repo_path: Union[str, Path],
        remote: str = 'origin',
        layout_matcher: Optional[LayoutMatcher] = None
    ):
        """
        Initialize Git repository handler.

        Args:
            repo_path: Path to the Git working copy
            remote: Name of the remote to push to and pull from
            layout_matcher: Recognises layout files when resolving update conflicts
        """
        self.logger = get_logger(f"{__name__}.GitRepository")
        self.repo_path = Path(repo_path).resolve()
        self.remote_name = remote
        self.layout_matcher = layout_matcher or LayoutMatcher()

        try:
            self.repo = Repo(self.repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise GitError(f"Not a Git repository: {self.repo_path}") from e

        self.logger.debug(f"Using repository at {self.repo_path}")

    @property
    def current_branch(self) -> str:
        try:
            return self.repo.active_branch.name
        except TypeError:
            # Detached HEAD
            return 'HEAD'

    @property
    def has_remote(self) -> bool:
        return self.remote_name in [remote.name for remote in self.repo.remotes]

    def _upstream(self) -> Optional[str]:
        """Name of the remote-tracking ref for the current branch, if any."""
        if not self.has_remote:
            return None
        ref = f"{self.remote_name}/{self.current_branch}"
        try:
            self.repo.git.rev_parse('--verify', '--quiet', ref)
        except GitCommandError:
            return None
        return ref

    def _head_sha(self) -> Optional[str]:
        try:
            return self.repo.head.commit.hexsha
        except ValueError:
            # No commits yet
            return None

    # Status query

    def local_statuses(self) -> Dict[str, FileStatus]:
        output = self.repo.git.status('--porcelain=v1', '-z', '--untracked-files=all')
        return parse_porcelain(output)

    def remote_statuses(self, fetch: bool = False) -> Tuple[Dict[str, FileStatus], StatusHandle]:
        """Statuses of HEAD against the upstream branch, plus the status handle."""
        if fetch and self.has_remote:
            self.logger.debug(f"Fetching from {self.remote_name}")
            self.repo.remote(self.remote_name).fetch()

        head = self._head_sha()
        upstream = self._upstream()
        if head is None or upstream is None:
            # Nothing pushed yet: every commit still has to go out
            return {}, StatusHandle(push_needed=head is not None, resume_token=(head, None))

        upstream_sha = self.repo.commit(upstream).hexsha
        base = self.repo.git.merge_base(head, upstream_sha)
        ahead_count = int(self.repo.git.rev_list('--count', f"{base}..{head}"))
        behind_count = int(self.repo.git.rev_list('--count', f"{base}..{upstream_sha}"))

        ahead = parse_name_status(self.repo.git.diff('--name-status', '-z', '--no-renames', base, head))
        behind = parse_name_status(self.repo.git.diff('--name-status', '-z', '--no-renames', base, upstream_sha))

        statuses = {
            path: remote_status(ahead.get(path), behind.get(path))
            for path in set(ahead) | set(behind)
        }
        handle = StatusHandle(
            push_needed=ahead_count > 0,
            pull_needed=behind_count > 0,
            resume_token=(head, upstream_sha),
        )
        self.logger.debug(f"{ahead_count} commit(s) ahead, {behind_count} behind {upstream}")
        return statuses, handle

    def iter_records(
        self,
        file_filter: Optional[FileFilter] = None,
        fetch: bool = False
    ) -> Tuple[Iterator[FileStatusRecord], StatusHandle]:
        local = self.local_statuses()
        remote, handle = self.remote_statuses(fetch=fetch)

        def records() -> Iterator[FileStatusRecord]:
            for path in sorted(set(local) | set(remote)):
                file_path = Path(path)
                if file_filter is not None and not file_filter(file_path):
                    continue
                yield FileStatusRecord(
                    file_path,
                    local.get(path, FileStatus.UP_TO_DATE),
                    remote.get(path, FileStatus.UP_TO_DATE),
                )

        return records(), handle

    def get_status(
        self,
        listener: StatusListener,
        file_filter: Optional[FileFilter] = None,
        want_remote_info: bool = True
    ) -> TeamworkCommand:
        def run(cancelled: threading.Event) -> CommandResult:
            try:
                records, handle = self.iter_records(file_filter, fetch=want_remote_info)
                count = 0
                for record in records:
                    if cancelled.is_set():
                        return CommandResult.failure("Status query cancelled")
                    listener.got_status(record)
                    count += 1
                listener.status_complete(handle)
            except GitCommandError as e:
                self.logger.error(f"Status query failed: {e}")
                return CommandResult.failure(_command_message(e))

            return CommandResult.success(f"{count} file(s) with status")

        return FunctionCommand(run)

    # Executors

    def commit(
        self,
        files: AbstractSet[Path],
        new_files: AbstractSet[Path],
        deleted_files: AbstractSet[Path],
        layout_files: AbstractSet[Path],
        message: str,
        handle: Optional[StatusHandle] = None
    ) -> TeamworkCommand:
        def run(cancelled: threading.Event) -> CommandResult:
            staged = set(files) | set(new_files) | set(layout_files)
            to_stage = sorted(str(path) for path in staged if path not in deleted_files)
            to_remove = sorted(str(path) for path in deleted_files)
            try:
                if to_stage:
                    self.repo.git.add('--', *to_stage)
                if to_remove:
                    self.repo.git.rm('--cached', '--quiet', '--ignore-unmatch', '--', *to_remove)
                if cancelled.is_set():
                    self.repo.git.reset('--quiet', '--', *(to_stage + to_remove))
                    return CommandResult.failure("Commit cancelled")
                commit = self.repo.index.commit(message)
            except GitCommandError as e:
                self.logger.error(f"Failed to create commit: {e}")
                return CommandResult.failure(_command_message(e))

            self.logger.info(f"Created commit {commit.hexsha[:8]}: {message}")
            return CommandResult.success(commit.hexsha)

        return FunctionCommand(run)

    def push(self, handle: Optional[StatusHandle] = None) -> TeamworkCommand:
        def run(cancelled: threading.Event) -> CommandResult:
            if not self.has_remote:
                return CommandResult.failure(f"No remote named '{self.remote_name}' configured")

            branch = self.current_branch
            try:
                infos = self.repo.remote(self.remote_name).push(branch)
            except GitCommandError as e:
                self.logger.error(f"Failed to push to {self.remote_name}: {e}")
                return CommandResult.failure(_command_message(e))

            rejected = [info.summary.strip() for info in infos if info.flags & PushInfo.ERROR]
            if rejected:
                return CommandResult.failure(f"Push rejected: {'; '.join(rejected)}")

            self.logger.info(f"Pushed to {self.remote_name}/{branch}")
            return CommandResult.success(f"{self.remote_name}/{branch}")

        return FunctionCommand(run)

    def update(
        self,
        files: AbstractSet[Path],
        forced_files: AbstractSet[Path],
        handle: Optional[StatusHandle] = None
    ) -> TeamworkCommand:
        def run(cancelled: threading.Event) -> CommandResult:
            if not self.has_remote:
                return CommandResult.failure(f"No remote named '{self.remote_name}' configured")

            branch = self.current_branch
            before = self._head_sha()
            try:
                self.repo.git.pull('--no-rebase', '--no-edit', self.remote_name, branch)
            except GitCommandError as e:
                result = self._settle_layout_conflicts(e, forced_files)
                if result.is_error:
                    return result
            else:
                self.logger.info(f"Updated {len(files)} file(s) from {self.remote_name}/{branch}")
                result = CommandResult.success(f"{self.remote_name}/{branch}")

            return self._keep_local_layout(before, forced_files) or result

        return FunctionCommand(run)

    def _keep_local_layout(self, before: Optional[str], forced_files: AbstractSet[Path]) -> Optional[CommandResult]:
        """Restore layout files the update changed but was not asked to take.

        Layout files that existed before the pull and are not in
        ``forced_files`` get their pre-pull content back, committed on top of
        the merge. Layout files the repository added are kept.

        Returns:
            A failure result if restoring failed, otherwise None
        """
        if before is None or before == self._head_sha():
            return None

        forced = {str(path) for path in forced_files}
        changed = parse_name_status(self.repo.git.diff('--name-status', '-z', '--no-renames', before, 'HEAD'))
        keep = sorted(
            path for path, code in changed.items()
            if code != 'A' and path not in forced and self.layout_matcher.is_layout_file(path)
        )
        if not keep:
            return None

        try:
            self.repo.git.checkout(before, '--', *keep)
            self.repo.git.commit('-m', f"Keep local layout for {len(keep)} file(s)")
        except GitCommandError as e:
            self.logger.error(f"Failed to keep local layout files: {e}")
            return CommandResult.failure(_command_message(e))

        self.logger.info(f"Kept local version of {len(keep)} layout file(s)")
        return None

    def unmerged_paths(self) -> List[str]:
        return [
            path for path, status in self.local_statuses().items()
            if status in UNMERGED_STATUSES
        ]

    def _settle_layout_conflicts(self, error: GitCommandError, forced_files: AbstractSet[Path]) -> CommandResult:
        """Finish a pull whose only conflicts are in layout files.

        Forced layout files take the repository version, the others keep the
        local one. Any other conflict aborts the merge.
        """
        conflicted = self.unmerged_paths()
        if not conflicted or not all(self.layout_matcher.is_layout_file(path) for path in conflicted):
            self.logger.error(f"Update failed: {error}")
            if conflicted:
                self.repo.git.merge('--abort')
            return CommandResult.failure(_command_message(error))

        forced = {str(path) for path in forced_files}
        try:
            for path in conflicted:
                side = '--theirs' if path in forced else '--ours'
                self.repo.git.checkout(side, '--', path)
                self.repo.git.add('--', path)
            self.repo.git.commit('--no-edit')
        except GitCommandError as e:
            self.logger.error(f"Failed to resolve layout conflicts: {e}")
            self.repo.git.merge('--abort')
            return CommandResult.failure(_command_message(e))

        self.logger.info(f"Resolved {len(conflicted)} layout conflict(s) during update")
        return CommandResult.success(f"{len(conflicted)} layout conflict(s) resolved")


def _command_message(error: GitCommandError) -> str:
    stderr = (error.stderr or '').strip()
    return stderr or str(error)
