"""Tests for logging setup."""

import logging

import pytest

from finops_cost_intelligence.logging_config import LOG_FORMAT, get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_level_and_format(self, restore_root_logger):
        """Test the root logger gets a single stdout handler at the requested level."""
        setup_logging("debug")

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert root.handlers[0].formatter._fmt == LOG_FORMAT

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        """Test an unrecognized level name."""
        setup_logging("chatty")
        assert restore_root_logger.level == logging.INFO

    def test_get_logger(self):
        """Test named loggers."""
        assert get_logger("finops_cost_intelligence.analysis").name == "finops_cost_intelligence.analysis"
