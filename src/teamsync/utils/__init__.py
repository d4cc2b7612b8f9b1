"""
Utility modules for teamsync.

This package contains logging, platform detection and path helpers used
throughout teamsync.
"""

from .logger import get_logger, setup_logging
from .platform import platform_detector, get_os_type, get_config_dir

__all__ = [
    'get_logger',
    'setup_logging',
    'platform_detector',
    'get_os_type',
    'get_config_dir',
]
