"""Handler setup for the atomic_replace package logger.

Library modules only create module loggers; the CLI entrypoint calls
:func:`configure` once with the merged config.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Mapping

from .config import resolve_log_file

_PACKAGE = "atomic_replace"
_LOG_BYTES = 1 * 1024 * 1024  # 1 MiB per file
_LOG_BACKUPS = 3
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_TERMINAL_FORMAT = "atomic-replace: %(message)s"


def _terminal_handler() -> logging.Handler:
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(logging.WARNING)
    sh.setFormatter(logging.Formatter(_TERMINAL_FORMAT))
    return sh


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=_LOG_BYTES,
        backupCount=_LOG_BACKUPS,
        encoding="utf-8",
    )
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return fh


def active_log_file() -> Path | None:
    for handler in logging.getLogger(_PACKAGE).handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            return Path(handler.baseFilename)
    return None


def configure(config: Mapping[str, Any], *, debug: bool = False, reconfigure: bool = False) -> Path | None:
    """Attach handlers to the package logger as the merged *config* asks.

    The log file comes from the ``log_file`` key (see
    :func:`atomic_replace.config.resolve_log_file`). DEBUG is enabled by
    *debug* or the ``debug`` key. A log file that cannot be opened is
    reported on stderr and logging continues there.

    Returns the log file in use, or None. Idempotent unless *reconfigure*.
    """
    pkg_logger = logging.getLogger(_PACKAGE)
    if pkg_logger.handlers and not reconfigure:
        return active_log_file()
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()

    pkg_logger.setLevel(logging.DEBUG if debug or config.get("debug") else logging.INFO)
    pkg_logger.propagate = False
    pkg_logger.addHandler(_terminal_handler())

    log_file = resolve_log_file(config)
    try:
        pkg_logger.addHandler(_file_handler(log_file))
    except OSError as exc:
        pkg_logger.warning("could not open log file %s: %s", log_file, exc)
        return None

    pkg_logger.debug("Logging to %s", log_file)
    return log_file
