"""
Logging setup for the storefront client.

Every module logs through ``get_logger(__name__)``; handlers live on the
``storefront`` logger so an embedding application keeps control of the root
logger. Bearer tokens never reach a log line: use ``mask_credential``.
"""

import hashlib
import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PACKAGE_LOGGER = "storefront"

# Third-party loggers that print one line per request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "upstash_redis")


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is when a record is emitted."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Attach a stderr handler to the package logger.

    stdout is left to command output. ``level`` falls back to ``LOG_LEVEL``
    and then INFO. Calling again only changes the level.
    """
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    numeric = logging.getLevelName(level_name)
    if not isinstance(numeric, int):
        numeric = logging.INFO

    package = logging.getLogger(PACKAGE_LOGGER)
    package.setLevel(numeric)
    if not any(isinstance(h, _StderrHandler) for h in package.handlers):
        handler = _StderrHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return package


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def mask_credential(token: str | None) -> str:
    """
    Stand-in for a credential in log lines.

    Shows the length and a short SHA-256 fingerprint, enough to tell two
    tokens apart across log lines without revealing any of their characters.
    """
    if not token:
        return "<none>"
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:10]
    return f"<token len={len(token)} sha256={digest}>"


__all__ = [
    "LOG_FORMAT",
    "configure_logging",
    "get_logger",
    "mask_credential",
]
