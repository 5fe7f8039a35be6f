"""snyk_auto_org.logging_utils

Logging setup for the wrapper.

Modules log through ``logging.getLogger(__name__)``; nothing is printed unless
the CLI calls :func:`setup_logging`. The wrapped Snyk CLI owns stdout, so all
diagnostics go to stderr.

Usage::

    from snyk_auto_org.logging_utils import setup_logging

    setup_logging(verbose=cfg.verbose)
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional, TextIO

# Top-level packages whose loggers we configure.
LOGGER_NAMES = ("snyk_auto_org", "tools", "pipeline", "cli")


class CleanFormatter(logging.Formatter):
    """Bare messages for info, a level prefix otherwise."""

    FORMATS = {
        logging.DEBUG: "[DEBUG] %(name)s: %(message)s",
        logging.INFO: "%(message)s",
        logging.WARNING: "WARNING: %(message)s",
        logging.ERROR: "ERROR: %(message)s",
        logging.CRITICAL: "CRITICAL: %(message)s",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_fmt = self.FORMATS.get(record.levelno, self.FORMATS[logging.INFO])
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


_handler: Optional[logging.Handler] = None


def setup_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> List[logging.Logger]:
    """Configure the package loggers. Safe to call more than once."""
    global _handler

    level = logging.DEBUG if verbose else logging.WARNING

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(CleanFormatter())

    loggers = []
    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        if _handler is not None:
            logger.removeHandler(_handler)
        logger.addHandler(handler)
        logger.setLevel(level)
        loggers.append(logger)

    _handler = handler
    return loggers


def redact_token(token: str) -> str:
    """Keep the first and last four characters of a token."""
    if not token or len(token) <= 8:
        return "****"
    return f"{token[:4]}...{token[-4:]}"
