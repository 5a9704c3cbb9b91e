import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """configure_logging() detaches the package logger from root; undo it."""
    yield
    logger = logging.getLogger("dirqueue")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
