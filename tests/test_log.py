"""Tests for logger setup."""

import logging

import pytest

from marketprice.log import LOG_FORMAT, setup_logger


@pytest.fixture
def logger_name():
    name = "marketprice.tests.setup"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


class TestSetupLogger:
    def test_adds_console_handler(self, logger_name):
        logger = setup_logger(logger_name)
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert logger.handlers[0].formatter._fmt == LOG_FORMAT

    def test_idempotent(self, logger_name):
        setup_logger(logger_name)
        logger = setup_logger(logger_name, logging.DEBUG)
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_level_by_name(self, logger_name):
        assert setup_logger(logger_name, "warning").level == logging.WARNING

    def test_package_logger_silent_by_default(self):
        import marketprice

        handlers = logging.getLogger(marketprice.__name__).handlers
        assert any(isinstance(h, logging.NullHandler) for h in handlers)
