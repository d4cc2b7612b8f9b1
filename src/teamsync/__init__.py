"""
teamsync - Status classification for team commit, push and update

This package decides which files a commit, push or update would touch in a
Git working copy, which conflicts block the action, and what to tell the
user when there is nothing to do.
"""

__version__ = "1.0.0"
__author__ = "teamsync developers"
__description__ = "Status classification for team commit, push and update"

from .core.classifier import ActionSets, StatusClassifier
from .core.config import TeamSettings, load_settings
from .core.git_handler import GitRepository
from .core.session import TeamController
from .utils.logger import get_logger

# Version info
VERSION = __version__
VERSION_INFO = tuple(map(int, __version__.split('.')))

# Package metadata
__all__ = [
    'ActionSets',
    'StatusClassifier',
    'TeamSettings',
    'load_settings',
    'GitRepository',
    'TeamController',
    'get_logger',
    'VERSION',
    'VERSION_INFO',
]
