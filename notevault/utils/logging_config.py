"""Centralized logging configuration for notevault."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(log_file_prefix: str = "notevault") -> logging.Logger:
    """
    Configure logging for the application.

    Sets up both console and file logging with consistent formatting.
    Uses a rotating file handler that keeps at most 4 previous log files.
    Only configures if not already configured to avoid duplicate handlers.

    Args:
        log_file_prefix: Prefix for the log file name (default: "notevault")

    Returns:
        Logger instance for the calling module
    """
    root_logger = logging.getLogger()

    if root_logger.handlers:
        return logging.getLogger(__name__)

    log_dir = Path("./logs")
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / f"{log_file_prefix}.log"

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    # 10MB per file, 4 backups
    file_handler = RotatingFileHandler(
        log_file,
        mode="a",
        maxBytes=10 * 1024 * 1024,
        backupCount=4,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    return logging.getLogger(__name__)
