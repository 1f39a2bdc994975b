"""graystudio.utils.log – colourised logger helper"""

from __future__ import annotations

import logging
from typing import Optional

import colorlog

from graystudio.utils import config

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _get_level_from_config() -> int:
    """Gets the logging level from config, defaulting to INFO."""
    level_name = config.get_logging_level().upper()
    return LOG_LEVEL_MAP.get(level_name, logging.INFO)


_LEVEL = _get_level_from_config()

_handler: Optional[logging.Handler] = None


def _build_handler() -> logging.Handler:
    handler = colorlog.StreamHandler()
    handler.setFormatter(
        colorlog.ColoredFormatter(
            fmt="%(log_color)s[%(levelname).1s] %(name)s: %(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "white",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bold",
            },
        )
    )
    return handler


def get_logger(name: str | None = None) -> logging.Logger:
    """Gets a logger instance sharing the package handler."""
    global _handler

    logger = logging.getLogger(name)
    logger.setLevel(_LEVEL)

    if _handler is None:
        _handler = _build_handler()
        _handler.setLevel(_LEVEL)

    if _handler not in logger.handlers:
        logger.addHandler(_handler)

    return logger


def set_level(debug_mode: bool) -> None:
    """Set the global logging level based on debug mode."""
    global _LEVEL
    _LEVEL = logging.DEBUG if debug_mode else logging.INFO

    if _handler:
        _handler.setLevel(_LEVEL)
    for logger in logging.Logger.manager.loggerDict.values():
        if isinstance(logger, logging.Logger) and _handler in logger.handlers:
            logger.setLevel(_LEVEL)
