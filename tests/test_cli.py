#!/usr/bin/env python3
"""
Tests for the command-line interface.
"""

import pytest
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from teamsync.cli import cli, make_file_filter
from teamsync.core.config import TeamSettings
from teamsync.core.errors import GitError
from teamsync.core.status import CommandResult, FileStatus, StatusHandle

from .conftest import FakeRepository, rec


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, tmp_path):
    """Run the CLI against a FakeRepository with default settings."""
    def run(repo, *args):
        with patch('teamsync.cli.GitRepository', return_value=repo), \
                patch('teamsync.cli.load_settings', return_value=TeamSettings()):
            return runner.invoke(cli, ['--repo-path', str(tmp_path), *args])
    return run


class TestStatusCommand:
    """Test the status command."""

    def test_lists_files(self, invoke):
        repo = FakeRepository([
            rec('A.java', FileStatus.NEEDS_ADD),
            rec('B.java', FileStatus.UP_TO_DATE, FileStatus.MODIFIED),
        ])

        result = invoke(repo, 'status')

        assert result.exit_code == 0
        assert 'A.java' in result.output
        assert 'B.java' in result.output

    def test_nothing_to_do(self, invoke):
        result = invoke(FakeRepository(), 'status')

        assert result.exit_code == 0
        assert 'No files to commit' in result.output
        assert 'No files to push' in result.output

    def test_layout_hint(self, invoke):
        repo = FakeRepository([rec('pkg/package.bluej', FileStatus.MODIFIED)])

        result = invoke(repo, 'status')

        assert '--include-layout' in result.output

    def test_blocked_exits_non_zero(self, invoke):
        repo = FakeRepository([rec('X.java', FileStatus.MERGE_CONFLICT, FileStatus.MERGE_CONFLICT)])

        result = invoke(repo, 'status')

        assert result.exit_code == 1
        assert 'X.java' in result.output

    def test_query_failure(self, invoke):
        repo = FakeRepository(status_result=CommandResult.failure("fetch failed"))

        result = invoke(repo, 'status')

        assert result.exit_code == 1
        assert 'fetch failed' in result.output

    def test_not_a_repository(self, runner, tmp_path):
        with patch('teamsync.cli.GitRepository', side_effect=GitError("Not a Git repository")), \
                patch('teamsync.cli.load_settings', return_value=TeamSettings()):
            result = runner.invoke(cli, ['--repo-path', str(tmp_path), 'status'])

        assert result.exit_code == 1
        assert 'Not a Git repository' in result.output


class TestCommitCommand:
    """Test the commit command."""

    def test_commit(self, invoke):
        repo = FakeRepository([rec('A.java', FileStatus.MODIFIED)])

        result = invoke(repo, 'commit', '-m', 'Change A')

        assert result.exit_code == 0
        assert repo.calls[0][0] == 'commit'
        assert repo.calls[0][1] == {Path('A.java')}
        assert repo.calls[0][5] == 'Change A'

    def test_commit_with_layout(self, invoke):
        repo = FakeRepository([
            rec('A.java', FileStatus.MODIFIED),
            rec('pkg/package.bluej', FileStatus.MODIFIED),
        ])

        result = invoke(repo, 'commit', '-m', 'Move classes', '--include-layout')

        assert result.exit_code == 0
        assert repo.calls[0][1] == {Path('A.java'), Path('pkg/package.bluej')}
        assert repo.calls[0][4] == {Path('pkg/package.bluej')}

    def test_commit_and_push(self, invoke):
        repo = FakeRepository([rec('A.java', FileStatus.MODIFIED)], handle=StatusHandle(push_needed=True))

        result = invoke(repo, 'commit', '-m', 'Change A', '--push')

        assert result.exit_code == 0
        assert [call[0] for call in repo.calls] == ['commit', 'push']

    def test_nothing_to_commit(self, invoke):
        repo = FakeRepository()

        result = invoke(repo, 'commit', '-m', 'Nothing')

        assert result.exit_code == 0
        assert repo.calls == []
        assert 'No files to commit' in result.output

    def test_message_required(self, invoke):
        result = invoke(FakeRepository(), 'commit')
        assert result.exit_code != 0

    def test_commit_failure(self, invoke):
        repo = FakeRepository([rec('A.java', FileStatus.MODIFIED)])
        repo.execute_result = CommandResult.failure("hook rejected commit")

        result = invoke(repo, 'commit', '-m', 'Change A')

        assert result.exit_code == 1
        assert 'hook rejected commit' in result.output

    def test_commit_with_remote_conflict_elsewhere(self, invoke):
        repo = FakeRepository([
            rec('X.java', FileStatus.MODIFIED),
            rec('Y.java', FileStatus.UP_TO_DATE, FileStatus.NEEDS_MERGE),
        ])

        result = invoke(repo, 'commit', '-m', 'Change X')

        assert result.exit_code == 0
        assert [call[0] for call in repo.calls] == ['commit']
        assert repo.calls[0][1] == {Path('X.java')}


class TestPushCommand:
    """Test the push command."""

    def test_push(self, invoke):
        repo = FakeRepository(handle=StatusHandle(push_needed=True))

        result = invoke(repo, 'push')

        assert result.exit_code == 0
        assert repo.calls[0][0] == 'push'

    def test_nothing_to_push(self, invoke):
        repo = FakeRepository()

        result = invoke(repo, 'push')

        assert result.exit_code == 0
        assert repo.calls == []
        assert 'No files to push' in result.output


class TestUpdateCommand:
    """Test the update command."""

    def test_update(self, invoke):
        repo = FakeRepository([rec('new.txt', remote=FileStatus.NEEDS_CHECKOUT)])

        result = invoke(repo, 'update')

        assert result.exit_code == 0
        assert repo.calls == [('update', frozenset({Path('new.txt')}), frozenset())]

    def test_dry_run(self, invoke):
        repo = FakeRepository([rec('new.txt', remote=FileStatus.NEEDS_CHECKOUT)])

        result = invoke(repo, 'update', '--dry-run')

        assert result.exit_code == 0
        assert 'new.txt' in result.output
        assert repo.calls == []

    def test_exclude_layout(self, invoke):
        repo = FakeRepository([
            rec('new.txt', remote=FileStatus.NEEDS_CHECKOUT),
            rec('pkg/package.bluej', remote=FileStatus.NEEDS_UPDATE),
        ])

        result = invoke(repo, 'update', '--no-include-layout')

        assert result.exit_code == 0
        assert repo.calls == [('update', frozenset({Path('new.txt')}), frozenset())]

    def test_pull_needed(self, invoke):
        repo = FakeRepository(handle=StatusHandle(pull_needed=True))

        result = invoke(repo, 'update')

        assert result.exit_code == 0
        assert 'Pull needed' in result.output
        assert repo.calls[0][0] == 'update'

    def test_unresolved_conflicts(self, invoke):
        repo = FakeRepository([
            rec('broken.txt', remote=FileStatus.UNRESOLVED),
            rec('fine.txt', remote=FileStatus.NEEDS_UPDATE),
        ])

        result = invoke(repo, 'update')

        assert result.exit_code == 1
        assert 'broken.txt' in result.output
        assert repo.calls == []


class TestFileFilter:
    """Test path arguments."""

    def test_no_paths(self, tmp_path):
        assert make_file_filter(tmp_path, ()) is None

    def test_paths_inside_repository(self, tmp_path):
        root = tmp_path.resolve()
        accept = make_file_filter(root, (root / "src", root / "README.md"))

        assert accept(Path('src/a.txt')) is True
        assert accept(Path('src/deep/b.txt')) is True
        assert accept(Path('README.md')) is True
        assert accept(Path('other.txt')) is False

    def test_filtered_status(self, invoke, tmp_path):
        repo = FakeRepository([
            rec('src/A.java', FileStatus.MODIFIED),
            rec('docs/B.md', FileStatus.MODIFIED),
        ])

        result = invoke(repo, 'commit', '-m', 'Only src', str(tmp_path / 'src'))

        assert result.exit_code == 0
        assert repo.calls[0][1] == {Path('src/A.java')}
