"""Logging setup shared by the manualgen CLI and library modules.

Library modules log through ``get_logger("<component>")``. In verbose mode the
console prefix names the component (``[manualgen:aggregate]``) so output from
the aggregator, assembler and toolchain can be told apart.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "manualgen"

CONSOLE_FORMAT = "[manualgen] %(levelname)s %(message)s"
VERBOSE_CONSOLE_FORMAT = "[manualgen:%(component)s] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(component)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the logger for a manualgen component."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


class _ComponentFilter(logging.Filter):
    """Expose the component part of the logger name as ``record.component``."""

    def filter(self, record: logging.LogRecord) -> bool:
        _, _, component = record.name.partition(".")
        record.component = component or "main"
        return True


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send manualgen logs to stderr and, optionally, to ``log_file``.

    The file always receives debug output so a failed build can be inspected
    without rerunning it in verbose mode.
    """
    console_level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file is not None else console_level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    components = _ComponentFilter()

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.addFilter(components)
    console.setFormatter(logging.Formatter(VERBOSE_CONSOLE_FORMAT if verbose else CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(components)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
