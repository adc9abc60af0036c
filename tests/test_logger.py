import logging

import pytest

from utils import logger as log_utils
from utils.logger import LoggingContext, SecureFormatter, set_logging_mode, setup_logger


@pytest.fixture
def restore_mode():
    previous = log_utils.get_logging_mode()
    yield
    set_logging_mode(previous)


def format_message(message):
    record = logging.LogRecord("t", logging.INFO, __file__, 1, message, None, None)
    return SecureFormatter('%(message)s').format(record)


def test_masks_long_keys():
    out = format_message("calling with apikey=ABCDEFGHIJKLMNOPQRSTUVWX123")
    assert "ABCDEFGHIJKLMNOPQRSTUVWX123" not in out
    assert "ABCD...X123" in out


def test_masks_bearer_tokens():
    out = format_message("Authorization: Bearer sk-or-shorttok99")
    assert "sk-or-shorttok99" not in out
    assert "Bearer sk-o...ok99" in out


def test_short_words_untouched():
    assert format_message("TCS.NS quote unavailable") == "TCS.NS quote unavailable"


def test_mode_switch_relevels_existing_loggers(restore_mode):
    set_logging_mode(LoggingContext.STANDALONE)
    provider_logger = setup_logger('test_provider_module')
    console_logger = setup_logger('run_analysis')
    assert provider_logger.level == logging.INFO

    set_logging_mode(LoggingContext.ORCHESTRATED)
    assert provider_logger.level == logging.WARNING
    assert console_logger.level == logging.INFO

    set_logging_mode(LoggingContext.SILENT)
    assert console_logger.level == logging.CRITICAL
    assert all(h.level == logging.CRITICAL for h in console_logger.handlers)
