"""
Logging Configuration Module
============================

Routes Azqr's diagnostics to stderr through Rich, keeping stdout free for
reports, and optionally mirrors them to a plain-text file.

Scanner threads log through module loggers; the thread name is kept in
the file format so interleaved scanner output can be told apart.

Functions
---------
setup_logging
    Install the console handler and the optional file handler.

Example
-------
>>> import logging
>>> from azqr.core.logging import setup_logging
>>>
>>> setup_logging(level="DEBUG", log_file="azqr.log")
>>> logging.getLogger("azqr.scanners").debug("Found 3 vaults")

See Also
--------
rich.logging.RichHandler : Console handler used for terminal output.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
)
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# The Azure SDK logs every HTTP request at INFO
NOISY_LOGGERS = (
    "azure",
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
    "msal",
    "urllib3",
)


def _parse_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level '{level}'")
    return value


def _console_handler(console: Console, level: int) -> logging.Handler:
    handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=level <= logging.DEBUG,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def setup_logging(
    level: Union[str, int] = "WARNING",
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Configure process-wide logging for a CLI run.

    Parameters
    ----------
    level : str or int, default="WARNING"
        Level name (``DEBUG`` .. ``CRITICAL``, any case) or number.
    log_file : str, optional
        Also append records to this file.
    console : Console, optional
        Console for the Rich handler. Defaults to one writing to stderr.

    Raises
    ------
    ValueError
        If ``level`` is not a known level name.

    Notes
    -----
    Root handlers are replaced, not added to, so calling this twice does
    not duplicate output. Azure SDK loggers are capped at WARNING whatever
    the requested level; request traces are not scan diagnostics.
    """
    numeric_level = _parse_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(
        _console_handler(console or Console(stderr=True), numeric_level)
    )
    if log_file:
        root_logger.addHandler(_file_handler(log_file, numeric_level))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.debug(
        f"Logging configured at {logging.getLevelName(numeric_level)}"
        + (f", mirrored to {log_file}" if log_file else "")
    )
