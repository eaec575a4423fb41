"""
logging_config.py — Centralized Logging Configuration for the Storefront Service

This module configures unified logging behavior for the entire application.
All modules log through the standard library and share one format and one set
of handlers.

Features:
    • Combined console and file logging output
    • Process ID tagging for multi-worker visibility (uvicorn --workers)
    • Reduced verbosity for the HTTP client stack (httpx, httpcore)
"""

import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'


def setup_logging(log_file: str = "storefront.log", level: int = logging.INFO):
    """
    Configures the global logging system for the application.

    Args:
        log_file (str): Path of the persistent log file.
        level (int): Root log level, INFO by default.
    """
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            # File output
            logging.FileHandler(log_file),
            # Console output (stdout, Docker-compatible)
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Every request to the vendor, geocoder and payment provider goes through httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name):
    """Returns the logger for a module, typically called with ``__name__``."""
    return logging.getLogger(name)
