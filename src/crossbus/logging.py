# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)

import logging
from typing import Literal

LOG_LEVELS = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LOG_FORMAT = "{asctime:25} |{levelname:8} |{name:30} |{message}"


class CrossbusStreamHandler(logging.StreamHandler):
    """Stream handler installed by :py:func:`configure_logging`."""


def get_logger() -> logging.Logger:
    from crossbus import __name__ as crossbus_name

    return logging.getLogger(crossbus_name)


def configure_logging(
    level: LOG_LEVELS = "INFO", logger: logging.Logger | None = None
) -> logging.Logger:
    """
    Set the level of the package logger and attach a stream handler.

    Calling this repeatedly updates the level without adding more handlers.
    """
    if logger is None:
        logger = get_logger()
    logger.setLevel(level)
    if not any(isinstance(h, CrossbusStreamHandler) for h in logger.handlers):
        handler = CrossbusStreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, style="{"))
        logger.addHandler(handler)
    return logger
