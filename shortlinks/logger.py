"""Logger setup for the shortlinks service.

One named logger, configured once, with a stream handler. Request handlers
wrap it in a ``LoggerAdapter`` carrying request context.
"""

import logging

__all__ = ["LOGGER_NAME", "get_logger", "bind_context"]

LOGGER_NAME = "shortlinks"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(level: str | int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def bind_context(logger: logging.Logger, **context: str | None) -> logging.LoggerAdapter:
    """Return an adapter that attaches ``context`` to every record."""
    return logging.LoggerAdapter(logger, context)
