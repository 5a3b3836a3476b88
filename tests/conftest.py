import logging

import pytest


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo any console handler a CLI run attached to the package logger."""
    pkg_logger = logging.getLogger("sari_ledger")
    saved_handlers = list(pkg_logger.handlers)
    saved_level = pkg_logger.level
    saved_propagate = pkg_logger.propagate
    yield
    for handler in pkg_logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    pkg_logger.handlers = saved_handlers
    pkg_logger.setLevel(saved_level)
    pkg_logger.propagate = saved_propagate
