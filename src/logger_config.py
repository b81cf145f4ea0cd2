"""
Logging configuration with a configurable level.
"""
import logging
import os


def setup_logging(log_level=None):
    """
    Setup console logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL or WARNING.
    """
    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "WARNING")
    log_level = log_level.upper()

    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Suppress noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("yfinance").setLevel(logging.WARNING)

    return logging.getLogger(__name__)
