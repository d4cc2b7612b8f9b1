#!/usr/bin/env python3
"""
Tests for logging utilities.
"""

import logging
import pytest
from unittest.mock import patch

from teamsync.utils.logger import ColoredFormatter, TeamSyncLogger, get_logger, setup_logging


class TestGetLogger:
    """Test logger creation and caching."""

    def test_cached(self):
        assert get_logger('teamsync.test') is get_logger('teamsync.test')

    def test_child_propagates_to_root(self):
        child = get_logger('teamsync.core.example')

        assert child.logger.handlers == []
        assert child.logger.propagate is True
        assert get_logger().logger.handlers

    def test_setup_logging_verbose(self):
        setup_logging(verbose=True)
        assert get_logger().logger.level == logging.DEBUG
        setup_logging('INFO')
        assert get_logger().logger.level == logging.INFO

    def test_log_file(self, tmp_path):
        log_file = tmp_path / 'logs' / 'run.log'
        root = get_logger().logger
        before = list(root.handlers)

        try:
            setup_logging('INFO', log_file=log_file)
            get_logger('teamsync.test').info("written to file")
            for handler in root.handlers:
                handler.flush()

            assert "written to file" in log_file.read_text()
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()


class TestColoredFormatter:
    """Test the plain stream formatter."""

    def test_without_colors(self):
        formatter = ColoredFormatter("[%(levelname)s] %(message)s", use_colors=False)
        record = logging.LogRecord('teamsync', logging.WARNING, __file__, 1, "careful", None, None)

        assert formatter.format(record) == "[WARNING] careful"

    def test_with_colors_restores_level(self):
        formatter = ColoredFormatter("%(levelname)s", use_colors=True)
        record = logging.LogRecord('teamsync', logging.ERROR, __file__, 1, "boom", None, None)

        formatter.format(record)

        assert record.levelname == 'ERROR'

    @pytest.mark.parametrize('no_color,expected', [(False, True), (True, False)])
    def test_plain_stream_handler_colors(self, monkeypatch, no_color, expected):
        """Test a non-terminal stderr gets colored output unless NO_COLOR is set."""
        if no_color:
            monkeypatch.setenv('NO_COLOR', '1')
        else:
            monkeypatch.delenv('NO_COLOR', raising=False)

        with patch('sys.stderr.isatty', return_value=False), \
                patch.object(TeamSyncLogger, '_setup_file_handler'):
            plain = TeamSyncLogger(f'plain_{no_color}')
        try:
            formatter = plain.logger.handlers[0].formatter
            assert isinstance(formatter, ColoredFormatter)
            assert formatter.use_colors is expected
        finally:
            for handler in plain.logger.handlers[:]:
                plain.logger.removeHandler(handler)
