# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Logging setup for command line and library use.

Library modules only create loggers with ``logging.getLogger(__name__)``;
handlers are installed here by the entry point.
"""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMATS = {
    'simple': '%(levelname)s: %(message)s',
    'detailed': '%(asctime)s - %(name)s - %(levelname)s: %(message)s',
}

ROOT_LOGGER_NAME = 'hydrobgc'


def configure_logging(
    level: str = 'INFO',
    log_file: Optional[Union[str, Path]] = None,
    log_format: str = 'detailed',
) -> logging.Logger:
    """Install stream (and optional file) handlers on the package logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Log level name
        log_file: Optional path of a log file
        log_format: Key into ``LOG_FORMATS`` or a literal format string

    Returns:
        The configured ``hydrobgc`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, '_hydrobgc_handler', False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMATS.get(log_format, log_format))

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console._hydrobgc_handler = True
    logger.addHandler(console)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode='w')
        file_handler.setFormatter(formatter)
        file_handler._hydrobgc_handler = True
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
