"""
Test package for teamsync.

This package contains unit tests for status classification, conflict
resolution, action availability, sessions, settings, the Git repository
handler and the command-line interface.
"""

import sys
from pathlib import Path

# Add src directory to path so tests can import teamsync modules
test_dir = Path(__file__).parent
src_dir = test_dir.parent / 'src'
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

__version__ = '1.0.0'
