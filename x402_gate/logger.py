"""Logging helpers."""

from __future__ import annotations

import logging


def get_logger(custom: logging.Logger | None = None, name: str = "x402_gate") -> logging.Logger:
    """Return the caller-supplied logger, or the named module logger."""
    return custom if custom is not None else logging.getLogger(name)


def sanitize_error(err: BaseException | object) -> str:
    """Reduce an error to its message.

    Tracebacks, reprs and chained causes are dropped so nothing but the
    message reaches the logs.
    """
    if isinstance(err, BaseException):
        message = str(err)
        return message or type(err).__name__
    return str(err)
