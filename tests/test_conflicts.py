#!/usr/bin/env python3
"""
Tests for conflict resolution and reporting.
"""

import pytest
from pathlib import Path

from teamsync.core.classifier import ActionSets, StatusClassifier
from teamsync.core.conflicts import (
    MORE_FILES_MARKER,
    ConflictCategory,
    ConflictReport,
    ConflictResolver,
    build_conflicts_list,
)
from teamsync.core.status import FileStatus, Perspective

from .conftest import rec


@pytest.fixture
def resolver():
    """Create a ConflictResolver with the default listing limit."""
    return ConflictResolver()


class TestBuildConflictsList:
    """Test the capped file listing."""

    def test_scenario_b(self, resolver):
        """Test eleven merge conflicts list ten names and the marker."""
        records = [
            rec(f'src/File{i:02d}.java', FileStatus.UP_TO_DATE, FileStatus.MERGE_CONFLICT)
            for i in range(11)
        ]
        remote = StatusClassifier().classify(records, Perspective.REMOTE)

        report = resolver.report_for(remote)

        assert report.category is ConflictCategory.MERGE_CONFLICT
        assert len(report.names) == 10
        assert report.more is True
        assert report.lines()[-1] == MORE_FILES_MARKER
        assert len(report.lines()) == 11

    def test_exactly_ten(self):
        """Test ten files are listed without a marker."""
        names, more = build_conflicts_list([Path(f'f{i}') for i in range(10)])
        assert len(names) == 10
        assert more is False

    def test_base_names_sorted(self):
        """Test names are base names in path order."""
        names, more = build_conflicts_list([Path('b/Zeta.java'), Path('a/Alpha.java')])
        assert names == ('Alpha.java', 'Zeta.java')
        assert more is False

    def test_custom_limit(self):
        """Test the listing limit is configurable."""
        names, more = build_conflicts_list([Path(f'f{i}') for i in range(5)], max_listed=3)
        assert len(names) == 3
        assert more is True

    def test_report_text(self):
        """Test report text lists each file on its own indented line."""
        report = ConflictReport(ConflictCategory.DELETE_CONFLICT, ('A.java',), True)

        assert report.format_files() == f"    A.java\n    {MORE_FILES_MARKER}\n"
        assert str(report).startswith(report.message)


class TestReportPriority:
    """Test which report is chosen when several conflicts exist."""

    def test_merge_before_delete(self, resolver):
        report = resolver.report({Path('m')}, {Path('d')}, {Path('o')})
        assert report.category is ConflictCategory.MERGE_CONFLICT
        assert report.names == ('m',)

    def test_delete_before_other(self, resolver):
        report = resolver.report(set(), {Path('d')}, {Path('o')})
        assert report.category is ConflictCategory.DELETE_CONFLICT

    def test_other_conflicts(self, resolver):
        report = resolver.report(set(), set(), {Path('o')})
        assert report.category is ConflictCategory.OTHER_CONFLICT

    def test_needs_merge_falls_back(self, resolver):
        """Test needs-merge alone gives the up-to-date-failed report."""
        report = resolver.report(set(), set(), set(), {Path('n')})
        assert report.category is ConflictCategory.UP_TO_DATE_FAILED
        assert report.names == ()

    def test_nothing_falls_back(self, resolver):
        """Test a caller that believed there was a conflict still gets a report."""
        report = resolver.report(set(), set(), set())
        assert report.category is ConflictCategory.UP_TO_DATE_FAILED

    def test_unresolved_report(self, resolver):
        report = resolver.unresolved_report({Path('a/x.txt')})
        assert report.category is ConflictCategory.UNRESOLVED
        assert report.names == ('x.txt',)


class TestPushOverride:
    """Test remote conflicts already resolved locally."""

    def test_override_removes_resolved_files(self, resolver):
        """Test conflicting files staged locally no longer block the push."""
        local = ActionSets(
            Perspective.LOCAL,
            to_commit=frozenset({Path('a'), Path('b')}),
            to_add=frozenset({Path('b')}),
            to_delete=frozenset({Path('c')}),
        )
        remote = ActionSets(
            Perspective.REMOTE,
            merge_conflicts=frozenset({Path('a'), Path('x')}),
            delete_conflicts=frozenset({Path('b')}),
            other_conflicts=frozenset({Path('c')}),
            needs_merge=frozenset({Path('a'), Path('y')}),
        )

        resolved = resolver.resolve_push_conflicts(local, remote)

        assert resolved.merge_conflicts == {Path('x')}
        assert resolved.delete_conflicts == frozenset()
        assert resolved.other_conflicts == frozenset()
        assert resolved.needs_merge == {Path('y')}
        assert resolver.has_conflicts(resolved)

    def test_override_does_not_mutate(self, resolver):
        """Test the input snapshots are left unchanged."""
        local = ActionSets(Perspective.LOCAL, to_commit=frozenset({Path('a')}))
        remote = ActionSets(Perspective.REMOTE, merge_conflicts=frozenset({Path('a')}))

        resolved = resolver.resolve_push_conflicts(local, remote)

        assert remote.merge_conflicts == {Path('a')}
        assert not resolver.has_conflicts(resolved)

    def test_override_keeps_action_sets(self, resolver):
        """Test the remote action sets survive the override."""
        local = ActionSets(Perspective.LOCAL)
        remote = ActionSets(Perspective.REMOTE, to_commit=frozenset({Path('p')}))

        assert resolver.resolve_push_conflicts(local, remote).to_commit == {Path('p')}
