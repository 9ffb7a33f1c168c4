"""Logging for the ``wise_together`` package.

Library modules call ``get_logger("wise_together.<module>")`` and never attach
handlers. The CLI root callback calls :func:`configure_logging` once, with the
level from ``--log-level`` / ``--verbose`` or ``WISE_TOGETHER_LOG_LEVEL``.

Every record emitted under the package logger carries a ``member`` attribute:
the acting member bound with :func:`bind_member` (``-`` when none is bound).
Store, cache and account logs are only meaningful per member, so the default
format puts it right after the level::

    2026-10-19 12:00:00,000 INFO member=alice wise_together.store store:create ...
"""

from __future__ import annotations

import logging
import os
from contextvars import ContextVar
from typing import IO

PACKAGE_LOGGER = "wise_together"
LEVEL_ENV_VAR = "WISE_TOGETHER_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s member=%(member)s %(name)s %(message)s"

_acting_member: ContextVar[str | None] = ContextVar("wt_acting_member", default=None)


def bind_member(member_id: str | None) -> None:
    """Tag subsequent log records in this context with ``member_id``."""

    _acting_member.set(member_id or None)


def resolve_level(level: int | str | None = None, *, verbose: bool = False) -> int:
    """Level from an explicit value, else ``--verbose`` (DEBUG), else the env var.

    Raises ``ValueError`` for an unknown level name so a typo in
    ``--log-level`` is reported instead of silently ignored.
    """

    if level is None:
        if verbose:
            return logging.DEBUG
        level = os.getenv(LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelNamesMapping().get(name)
    if numeric is None:
        raise ValueError(f"unknown log level: {level!r}")
    return numeric


class _MemberFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.member = _acting_member.get() or "-"
        return True


class _PackageHandler(logging.StreamHandler):
    """The single handler :func:`configure_logging` installs."""


def _installed(logger: logging.Logger) -> _PackageHandler | None:
    for h in logger.handlers:
        if isinstance(h, _PackageHandler):
            return h
    return None


def configure_logging(
    level: int | str | None = None,
    *,
    verbose: bool = False,
    fmt: str = DEFAULT_FORMAT,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Attach the package handler, or retune the level of the one already there.

    ``stream`` defaults to ``sys.stderr`` at call time.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    resolved = resolve_level(level, verbose=verbose)
    handler = _installed(logger)
    if handler is None:
        for h in list(logger.handlers):
            if isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
        handler = _PackageHandler(stream)
        handler.addFilter(_MemberFilter())
        handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(handler)
        logger.propagate = False
    handler.setLevel(resolved)
    logger.setLevel(resolved)
    return handler


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger; the package stays silent until configured."""

    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["bind_member", "configure_logging", "get_logger", "resolve_level"]
