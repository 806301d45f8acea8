"""Logging utilities for pinmepy modules."""

import logging

ROOT_LOGGER = 'pinmepy'

# Every logger the package emits on, one per pipeline area
LOGGER_NAMES = (
    ROOT_LOGGER,
    'pinmepy.api',
    'pinmepy.history',
    'pinmepy.identity',
    'pinmepy.upload',
    'pinmepy.upload.coordinator',
    'pinmepy.upload.session',
    'pinmepy.upload.chunk',
    'pinmepy.upload.status',
    'pinmepy.upload.packager',
    'pinmepy.upload.file',
)


def get_logger(name: str) -> logging.Logger:
    """Get a named pinmepy logger.

    Records propagate to the root logger, so an application's
    basicConfig() picks them up. Until the root logger has a handler the
    logger stays at WARNING, which keeps per-chunk chatter out of scripts
    that never configured logging.

    Args:
        name: Dotted name under 'pinmepy', e.g. 'pinmepy.upload.chunk'

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True

    if not logging.getLogger().handlers:
        logger.setLevel(logging.WARNING)

    return logger


def setup_logging(level=logging.INFO):
    """
    Set the level of every pinmepy logger.

    Args:
        level: Logging level (default: logging.INFO)
    """
    for logger_name in LOGGER_NAMES:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True
