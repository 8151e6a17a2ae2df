"""Tests for logging configuration."""

import logging

import pytest

from nrf_index.app_logging import configure_logging


@pytest.fixture
def package_logger():
    logger = logging.getLogger("nrf_index")
    saved = (logger.level, list(logger.handlers), logger.propagate)
    logger.handlers = []
    yield logger
    logger.setLevel(saved[0])
    logger.handlers = saved[1]
    logger.propagate = saved[2]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_adds_single_handler(self, package_logger):
        configure_logging()
        configure_logging()

        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.INFO
        assert package_logger.propagate is False

    def test_level_updated_on_repeat_call(self, package_logger):
        configure_logging(logging.INFO)
        configure_logging(logging.DEBUG)

        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1

    def test_module_loggers_inherit_level(self, package_logger):
        configure_logging(logging.WARNING)
        child = logging.getLogger("nrf_index.scoring.nrf_scorer")

        assert not child.isEnabledFor(logging.INFO)
        assert child.isEnabledFor(logging.WARNING)
