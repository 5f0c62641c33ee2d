"""
Logging configuration for the storefront assistant.

Every module asks for a child of the package logger, so one LOG_LEVEL
environment variable controls the whole backend.
"""
import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("storefront_assistant")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """Child logger under 'storefront_assistant' (or the package logger itself)."""
    if name:
        return logging.getLogger(f"storefront_assistant.{name}")
    return logger
