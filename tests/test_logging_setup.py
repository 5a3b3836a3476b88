import io
import logging

import pytest

import sari_ledger.logging_setup as logging_setup


@pytest.fixture
def fresh_logging():
    pkg_logger = logging.getLogger("sari_ledger")
    pkg_logger.handlers = []
    pkg_logger.setLevel(logging.NOTSET)
    pkg_logger.propagate = True
    return pkg_logger


@pytest.mark.parametrize(
    "value, expected",
    [
        ("debug", logging.DEBUG),
        (" WARNING ", logging.WARNING),
        (logging.ERROR, logging.ERROR),
        ("15", 15),
    ],
)
def test_parse_level(value, expected):
    assert logging_setup.parse_level(value) == expected


def test_parse_level_from_environment(monkeypatch):
    monkeypatch.setenv("SARI_LEDGER_LOG_LEVEL", "error")

    assert logging_setup.parse_level(None) == logging.ERROR


def test_parse_level_default_is_info(monkeypatch):
    monkeypatch.delenv("SARI_LEDGER_LOG_LEVEL", raising=False)

    assert logging_setup.parse_level(None) == logging.INFO


def test_parse_level_unknown_name():
    with pytest.raises(ValueError):
        logging_setup.parse_level("chatty")


def test_get_logger_is_silent_until_configured(fresh_logging):
    logging_setup.get_logger("sari_ledger.test")
    logging_setup.get_logger("sari_ledger.other")

    null_handlers = [
        h for h in fresh_logging.handlers if isinstance(h, logging.NullHandler)
    ]
    assert len(null_handlers) == 1
    assert not logging_setup.is_configured()


def test_get_logger_adds_null_handler_next_to_foreign_handlers(fresh_logging):
    foreign = logging.StreamHandler(io.StringIO())
    fresh_logging.addHandler(foreign)

    logging_setup.get_logger("sari_ledger.test")

    assert foreign in fresh_logging.handlers
    assert any(isinstance(h, logging.NullHandler) for h in fresh_logging.handlers)


def test_configure_logging_attaches_single_console_handler(fresh_logging):
    stream = io.StringIO()
    logging_setup.get_logger("sari_ledger.test")

    logging_setup.configure_logging("INFO", stream=stream)
    logging_setup.configure_logging("DEBUG", stream=stream)

    handlers = fresh_logging.handlers
    assert len(handlers) == 1
    assert handlers[0].get_name() == logging_setup.CONSOLE_HANDLER_NAME
    assert fresh_logging.level == logging.INFO
    assert fresh_logging.propagate is False
    assert logging_setup.is_configured()

    logging_setup.get_logger("sari_ledger.test").info("hello %s", "shop")
    logging_setup.get_logger("sari_ledger.test").debug("hidden")
    output = stream.getvalue()
    assert "hello shop" in output
    assert "hidden" not in output


def test_removing_console_handler_unconfigures(fresh_logging):
    logging_setup.configure_logging("INFO", stream=io.StringIO())
    fresh_logging.handlers = []

    assert not logging_setup.is_configured()

    stream = io.StringIO()
    logging_setup.configure_logging("WARNING", stream=stream)
    logging_setup.get_logger("sari_ledger.test").warning("low stock")

    assert "low stock" in stream.getvalue()


def test_unknown_level_leaves_logger_untouched(fresh_logging):
    with pytest.raises(ValueError):
        logging_setup.configure_logging("chatty", stream=io.StringIO())

    assert fresh_logging.handlers == []
    assert not logging_setup.is_configured()
