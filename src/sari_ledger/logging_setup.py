# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Logging for SARI Ledger.

All package loggers live under ``sari_ledger`` (``sari_ledger.ingest``,
``sari_ledger.ledger_service``, ...). Library modules only ask for a logger
with ``get_logger``; the console output is owned by the CLI, which calls
``configure_logging`` once after reading the configuration.

------------------------------------------------------------------------------
Level resolution
------------------------------------------------------------------------------

1) --log-level on the command line,
2) [logging].level in sari_ledger_config.toml,
3) the SARI_LEDGER_LOG_LEVEL environment variable,
4) INFO.

The CLI passes the first two; ``parse_level(None)`` covers the rest.

------------------------------------------------------------------------------
Console handler
------------------------------------------------------------------------------

The package logger gets one named ``StreamHandler`` and stops propagating to
the root logger. Whether logging is configured is read from the logger
itself (presence of that handler), so removing the handler resets it.
Before that, the package logger carries a ``NullHandler`` and stays silent.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional, Union

PACKAGE_LOGGER = "sari_ledger"
LOG_LEVEL_ENV_VAR = "SARI_LEDGER_LOG_LEVEL"
CONSOLE_HANDLER_NAME = "sari_ledger.console"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def parse_level(level: Union[int, str, None]) -> int:
    """
    Convert a level given on the CLI or in the config into a logging level.

    Parameters
    ----------
    level:
        A level name ("info", " WARNING "), a number (as int or digits), or
        None to fall back to SARI_LEDGER_LOG_LEVEL, then INFO.

    Raises
    ------
    ValueError
        If the name is not a standard logging level.
    """
    if level is None or (isinstance(level, str) and not level.strip()):
        env_value = os.getenv(LOG_LEVEL_ENV_VAR)
        return parse_level(env_value) if env_value else logging.INFO

    if isinstance(level, int):
        return level

    name = level.strip().upper()
    if name.isdigit():
        return int(name)

    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown logging level: {level!r}")
    return resolved


def _console_handler(logger: logging.Logger) -> Optional[logging.Handler]:
    for handler in logger.handlers:
        if handler.get_name() == CONSOLE_HANDLER_NAME:
            return handler
    return None


def is_configured() -> bool:
    """Return True once ``configure_logging`` has attached the console handler."""
    return _console_handler(logging.getLogger(PACKAGE_LOGGER)) is not None


def configure_logging(
    level: Union[int, str, None] = None,
    *,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Send package log records to the console.

    Only the first call has an effect; later calls keep the existing handler
    and level.

    Parameters
    ----------
    level:
        See ``parse_level``.
    stream:
        Output stream, ``sys.stderr`` (looked up at call time) by default.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _console_handler(logger) is not None:
        return

    resolved = parse_level(level)

    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.set_name(CONSOLE_HANDLER_NAME)
    console.setLevel(resolved)
    console.setFormatter(logging.Formatter(LOG_FORMAT))

    logger.addHandler(console)
    logger.setLevel(resolved)
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Logger for a package module (silent until ``configure_logging``)."""
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _console_handler(pkg_logger) is None and not any(
        isinstance(h, logging.NullHandler) for h in pkg_logger.handlers
    ):
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
