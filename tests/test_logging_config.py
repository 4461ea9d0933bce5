import logging

import pytest

from fret_tuner import logging_config
from fret_tuner.logging_config import get_logger


@pytest.fixture
def quiet_handler(monkeypatch):
    handler = logging.NullHandler()
    monkeypatch.setattr(logging_config, "_console_handler", handler)
    return handler


def test_module_levels_applied(quiet_handler):
    logging_config.setup_logging()
    assert logging.getLogger("fret_tuner.synchronizer").level == logging.INFO
    assert logging.getLogger("fret_tuner.pitch").level == logging.WARNING
    assert logging.getLogger("aubio").level == logging.ERROR
    assert quiet_handler in logging.getLogger("fret_tuner").handlers


def test_override_only_touches_own_modules(quiet_handler):
    logging_config.setup_logging("debug")
    assert logging.getLogger("fret_tuner.pitch").level == logging.DEBUG
    assert logging.getLogger("sounddevice").level == logging.ERROR


def test_invalid_level_keeps_defaults(quiet_handler):
    logging_config.setup_logging("chatty")
    assert logging.getLogger("fret_tuner.core").level == logging.INFO


def test_get_logger_is_cached():
    assert get_logger("fret_tuner.cli") is get_logger("fret_tuner.cli")
