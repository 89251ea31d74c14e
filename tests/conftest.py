"""Shared pytest fixtures."""

import logging

import pytest

from claude_code_interface.utils import PACKAGE_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers installed by setup_logger so they never outlive a test."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
