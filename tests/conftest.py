from __future__ import annotations

import logging

import pytest

from snyk_auto_org.logging_utils import LOGGER_NAMES


@pytest.fixture(autouse=True)
def _reset_package_loggers():
    # setup_logging() binds a handler to whatever sys.stderr was at call time.
    yield
    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        for h in list(logger.handlers):
            logger.removeHandler(h)
        logger.setLevel(logging.NOTSET)
