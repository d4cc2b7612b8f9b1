"""
Core modules for teamsync.

This package contains status classification, conflict resolution, action
availability, the session state machine and the Git repository handler.
"""

from .availability import (
    CommitPushAvailability,
    Placeholder,
    UpdateAvailability,
    evaluate_commit_push,
    evaluate_update,
)
from .classifier import ActionSets, LayoutAggregator, StatusClassifier
from .config import TeamSettings, load_settings, save_preferences
from .conflicts import ConflictCategory, ConflictReport, ConflictResolver
from .errors import ConfigError, GitError, SessionStateError, StatusClassificationError, TeamError
from .git_handler import GitRepository
from .session import CommitPushSession, SessionState, TeamController, UpdateSession
from .status import CommandResult, FileStatus, FileStatusRecord, Perspective, StatusHandle
from .update import UpdateFileSetBuilder, UpdateFileSets

__all__ = [
    'CommitPushAvailability',
    'Placeholder',
    'UpdateAvailability',
    'evaluate_commit_push',
    'evaluate_update',
    'ActionSets',
    'LayoutAggregator',
    'StatusClassifier',
    'TeamSettings',
    'load_settings',
    'save_preferences',
    'ConflictCategory',
    'ConflictReport',
    'ConflictResolver',
    'ConfigError',
    'GitError',
    'SessionStateError',
    'StatusClassificationError',
    'TeamError',
    'GitRepository',
    'CommitPushSession',
    'SessionState',
    'TeamController',
    'UpdateSession',
    'CommandResult',
    'FileStatus',
    'FileStatusRecord',
    'Perspective',
    'StatusHandle',
    'UpdateFileSetBuilder',
    'UpdateFileSets',
]
