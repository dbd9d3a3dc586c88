"""
Logging setup for the cicdgen CLI.

main.py calls ``setup_from_environment`` once per invocation; modules
only ever do ``logger = logging.getLogger(__name__)``.

Console level, highest precedence first:
    --debug / --verbose / --quiet  >  CICDGEN_LOG_LEVEL  >  WARNING

Log records go to stderr so previews and ``--json`` output on stdout
stay clean.  ``CICDGEN_LOG_FILE`` adds a full-detail file log, with its
own threshold in ``CICDGEN_LOG_FILE_LEVEL``.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LOG_LEVEL = "CICDGEN_LOG_LEVEL"
ENV_LOG_FILE = "CICDGEN_LOG_FILE"
ENV_LOG_FILE_LEVEL = "CICDGEN_LOG_FILE_LEVEL"

# ── Formats ─────────────────────────────────────────────────────

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"

# (threshold, format, datefmt): first row whose threshold >= level wins
_CONSOLE_FORMATS = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(levelname)s: %(message)s", None),
)

_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Library loggers held at WARNING outside debug runs
_LIBRARY_LOGGERS = ("yaml", "pydantic")


def resolve_level(*, debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LOG_LEVEL, "WARNING")


def _level_number(name: str | None) -> int:
    value = getattr(logging, (name or "").upper(), None)
    return value if isinstance(value, int) else logging.WARNING


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next((f, d) for threshold, f, d in _CONSOLE_FORMATS if level <= threshold)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAILED, datefmt=_FILE_DATEFMT))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Replace the root logger's handlers.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names mean WARNING.
        log_file: Optional log file path.
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Keep library loggers at WARNING unless at DEBUG.
    """
    console_level = _level_number(level)
    handlers = [_console_handler(console_level)]
    if log_file:
        file_level = _level_number(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _LIBRARY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def setup_from_environment(level: str) -> None:
    """``setup_logging`` with file settings taken from the environment."""
    setup_logging(
        level=level,
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
        quiet_third_party=level.upper() != "DEBUG",
    )
