"""
Logging configuration.
Module loggers share one line format and the configured log level.
"""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Return a configured module logger.

    Args:
        name: Logger name, usually __name__

    Returns:
        Standard library logger with a stream handler attached
    """
    from src.core import config

    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(config.settings.log_level.upper())
    return logger
