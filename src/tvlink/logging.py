"""Logging setup for tvlink.

Every module logs through ``logging.getLogger(__name__)``; the handlers
live on the package logger ``tvlink`` so CLI output and the optional log
file share one format.
"""

import logging
from pathlib import Path

from tvlink.config import Config

LOGGER_NAME = "tvlink"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured: logging.Logger | None = None


def _file_handler(log_file: str) -> logging.Handler:
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path)


def setup_logging(config: Config) -> logging.Logger:
    """Attach handlers to the tvlink logger.

    Only the first call configures anything; later calls return the
    same logger until reset_logging() is called.

    Args:
        config: Supplies log_level and the optional log_file.

    Returns:
        The tvlink package logger.
    """
    global _configured

    if _configured is not None:
        return _configured

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    logger.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        handlers.insert(0, _file_handler(config.log_file))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Handlers are ours alone; don't duplicate through the root logger
    logger.propagate = False

    _configured = logger
    return logger


def reset_logging() -> None:
    """Drop configured handlers so setup_logging() runs again."""
    global _configured
    if _configured is not None:
        _configured.handlers.clear()
        _configured.propagate = True
        _configured = None
