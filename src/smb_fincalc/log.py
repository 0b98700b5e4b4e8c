# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Logging helpers for SMB FinCalc.

The engine never configures logging on import. Every module obtains its
logger through ``get_logger(__name__)`` and the package root carries a
``NullHandler``, so nothing is printed unless the host application opts in
with ``configure_logging()``.
"""

import logging
from typing import Union

PACKAGE_LOGGER = "smb_fincalc"

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return a logger for a module of this package."""
    return logging.getLogger(name)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    fmt: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Calling this function several times does not stack handlers: the
    handler installed by a previous call is replaced.

    Args:
        level: Logging level, as an int or a level name ("DEBUG", "INFO"...).
        fmt: Format string for the stream handler.

    Returns:
        The configured package logger.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown logging level: {level!r}")
        level = resolved

    root = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(root.handlers):
        if getattr(handler, "_smb_fincalc", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))
    handler._smb_fincalc = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)
    return root
