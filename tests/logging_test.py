# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
import logging
from collections.abc import Iterator

import pytest

from crossbus.logging import CrossbusStreamHandler, configure_logging, get_logger


@pytest.fixture
def logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger('crossbus-test')
    yield logger
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def test_get_logger_default():
    default_logger = get_logger()
    assert default_logger is get_logger()
    assert default_logger.name == "crossbus"


def test_configure_logging_sets_level(logger: logging.Logger) -> None:
    configure_logging('WARNING', logger=logger)
    assert logger.level == logging.WARNING


def test_configure_logging_adds_single_handler(logger: logging.Logger) -> None:
    configure_logging('DEBUG', logger=logger)
    configure_logging('INFO', logger=logger)
    handlers = [h for h in logger.handlers if isinstance(h, CrossbusStreamHandler)]
    assert len(handlers) == 1
    assert logger.level == logging.INFO
