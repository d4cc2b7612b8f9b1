#!/usr/bin/env python3
"""
Platform detection for teamsync.

Only what the settings and logging layers need: the operating system, the
user's home directory and the per-user configuration directory.
"""

import os
import platform
from pathlib import Path
from typing import Dict
from enum import Enum


class OSType(Enum):
    """Supported operating system types."""
    LINUX = "linux"
    MACOS = "darwin"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


class PlatformDetector:
    """Handles platform detection and OS-specific locations."""

    def __init__(self):
        self._os_type = self._detect_os()
        self._home_dir = Path.home()
        self._config_paths = self._get_config_paths()

    @staticmethod
    def _detect_os() -> OSType:
        """Detect the current operating system."""
        system = platform.system().lower()

        if system == "linux":
            return OSType.LINUX
        elif system == "darwin":
            return OSType.MACOS
        elif system == "windows":
            return OSType.WINDOWS
        else:
            return OSType.UNKNOWN

    @property
    def os_type(self) -> OSType:
        return self._os_type

    @property
    def home_dir(self) -> Path:
        return self._home_dir

    def _get_config_paths(self) -> Dict[str, Path]:
        """Get OS-specific configuration directory paths."""
        if self._os_type == OSType.WINDOWS:
            appdata = os.environ.get('APPDATA', str(self._home_dir / 'AppData' / 'Roaming'))
            localappdata = os.environ.get('LOCALAPPDATA', str(self._home_dir / 'AppData' / 'Local'))
            return {
                'config': Path(appdata),
                'cache': Path(localappdata) / 'Temp',
            }

        if self._os_type == OSType.MACOS:
            return {
                'config': self._home_dir / 'Library' / 'Application Support',
                'cache': self._home_dir / 'Library' / 'Caches',
            }

        xdg_config = os.environ.get('XDG_CONFIG_HOME')
        return {
            'config': Path(xdg_config) if xdg_config else self._home_dir / '.config',
            'cache': self._home_dir / '.cache',
        }

    def get_config_dir(self, name: str = 'config') -> Path:
        """Get a specific configuration directory path."""
        return self._config_paths.get(name, self._home_dir / '.config')


# Global platform detector instance
platform_detector = PlatformDetector()


def get_os_type() -> OSType:
    return platform_detector.os_type


def get_config_dir(name: str = 'config') -> Path:
    return platform_detector.get_config_dir(name)
