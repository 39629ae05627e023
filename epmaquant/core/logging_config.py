"""
Logging setup shared by the library and the command line.

Every module logs to a child of the ``epmaquant`` logger. The default format
names the thread because map quantification runs points on worker threads.
"""

import logging
import sys
from typing import Optional, Union

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s (%(threadName)s): %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(
    level: Union[str, int] = "INFO",
    format_string: Optional[str] = None,
    stream: Optional[object] = None,
) -> None:
    """
    Configure the root handler used by epmaquant loggers.

    Parameters
    ----------
    level : str or int
        One of ``LEVELS`` (case-insensitive) or a numeric ``logging`` level
    format_string : str, optional
        Record format. If None, uses ``DEFAULT_FORMAT``.
    stream : file-like object, optional
        Stream to write logs to. If None, uses sys.stderr.

    Raises
    ------
    ValueError
        If ``level`` is not a known level name
    """
    if isinstance(level, str):
        if level.upper() not in LEVELS:
            raise ValueError(f"Unknown log level {level!r}; expected one of {', '.join(LEVELS)}")
        level = getattr(logging, level.upper())

    logging.basicConfig(
        level=level,
        format=format_string or DEFAULT_FORMAT,
        stream=stream or sys.stderr,
        datefmt=DATE_FORMAT,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """The ``epmaquant.<name>`` logger, e.g. ``get_logger('inversion.batch')``."""
    return logging.getLogger(f"epmaquant.{name}")
