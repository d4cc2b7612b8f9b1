#!/usr/bin/env python3
"""
Settings for teamsync.

Settings come from a YAML, TOML or JSON file: either an explicit path, a
``.teamsync.yaml`` / ``.teamsync.toml`` at the repository root, or the
per-user ``settings.yaml`` in the teamsync config directory. The
include-layout preferences are the only values the client writes back.
"""

import json
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import toml
import yaml

from .errors import ConfigError
from .filters import (
    DEFAULT_HIDDEN_LAYOUT_PATTERNS,
    DEFAULT_LAYOUT_PATTERNS,
    CommitFilter,
    LayoutMatcher,
    LayoutViewFilter,
    UpdateFilter,
)
from ..utils.logger import get_logger
from ..utils.platform import platform_detector

logger = get_logger(__name__)

REPO_SETTINGS_FILES = ('.teamsync.yaml', '.teamsync.yml', '.teamsync.toml', '.teamsync.json')


def user_settings_path() -> Path:
    """Per-user settings file."""
    return platform_detector.get_config_dir() / 'teamsync' / 'settings.yaml'


@dataclass
class TeamSettings:
    """Options for classification, reporting and the Git front end."""

    layout_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_LAYOUT_PATTERNS))
    hidden_layout_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_HIDDEN_LAYOUT_PATTERNS))
    max_listed_conflicts: int = 10
    include_layout_commit: bool = False
    include_layout_update: bool = True
    remote: str = 'origin'
    source: Optional[Path] = field(default=None, compare=False)

    def __post_init__(self):
        if isinstance(self.layout_patterns, str):
            self.layout_patterns = [self.layout_patterns]
        if isinstance(self.hidden_layout_patterns, str):
            self.hidden_layout_patterns = [self.hidden_layout_patterns]
        if not isinstance(self.max_listed_conflicts, int) or self.max_listed_conflicts < 1:
            raise ConfigError(f"max_listed_conflicts must be a positive integer, got {self.max_listed_conflicts!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data.pop('source')
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[Path] = None) -> 'TeamSettings':
        """Create instance from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)} - {'source'}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")
        try:
            return cls(source=source, **{k: v for k, v in data.items() if k in known})
        except TypeError as e:
            raise ConfigError(f"Invalid settings: {e}") from e

    def layout_matcher(self) -> LayoutMatcher:
        return LayoutMatcher(self.layout_patterns)

    def commit_filter(self) -> CommitFilter:
        return CommitFilter()

    def update_filter(self) -> UpdateFilter:
        return UpdateFilter()

    def view_filter(self) -> LayoutViewFilter:
        return LayoutViewFilter(self.hidden_layout_patterns)


def _read_raw(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if suffix in ('.yaml', '.yml'):
                data = yaml.safe_load(f)
            elif suffix == '.toml':
                data = toml.load(f)
            elif suffix == '.json':
                data = json.load(f)
            else:
                raise ConfigError(f"Unsupported settings format: {path}")
    except (OSError, yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read settings from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings in {path} must be a mapping")
    return data


def _section(data: Dict[str, Any]) -> Dict[str, Any]:
    # Settings may live under a [teamsync] table
    section = data.get('teamsync')
    return section if isinstance(section, dict) else data


def find_settings_file(repo_path: Optional[Path] = None) -> Optional[Path]:
    """Locate the settings file to use, repository first."""
    if repo_path is not None:
        for name in REPO_SETTINGS_FILES:
            candidate = Path(repo_path) / name
            if candidate.is_file():
                return candidate

    user_path = user_settings_path()
    if user_path.is_file():
        return user_path
    return None


def load_settings(
    path: Optional[Union[str, Path]] = None,
    repo_path: Optional[Path] = None
) -> TeamSettings:
    """
    Load settings.

    Args:
        path: Explicit settings file; must exist if given
        repo_path: Repository root searched for ``.teamsync.*`` files

    Returns:
        TeamSettings, defaults when no file is found
    """
    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"Settings file not found: {path}")
    else:
        path = find_settings_file(repo_path)

    if path is None:
        logger.debug("No settings file found, using defaults")
        return TeamSettings()

    settings = TeamSettings.from_dict(_section(_read_raw(path)), source=path)
    logger.debug(f"Loaded settings from {path}")
    return settings


def save_preferences(settings: TeamSettings, path: Optional[Path] = None) -> Path:
    """Write the include-layout preferences back, keeping other keys."""
    path = Path(path) if path is not None else (settings.source or user_settings_path())

    data: Dict[str, Any] = _read_raw(path) if path.is_file() else {}
    section = _section(data)
    section['include_layout_commit'] = settings.include_layout_commit
    section['include_layout_update'] = settings.include_layout_update

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            if path.suffix.lower() == '.toml':
                toml.dump(data, f)
            elif path.suffix.lower() == '.json':
                json.dump(data, f, indent=2, ensure_ascii=False)
            else:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
    except OSError as e:
        raise ConfigError(f"Failed to save preferences to {path}: {e}") from e

    logger.debug(f"Saved preferences to {path}")
    return path
