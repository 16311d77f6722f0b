"""Console logging setup for the command line entry point."""

import logging

_LOGGER_NAME = "tilelab"


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    logger.addHandler(stream_handler)
    logger.debug("logging configured")
    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)
