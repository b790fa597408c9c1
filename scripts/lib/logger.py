"""
Centralized logging for BDR Reporting Hub.
Provides consistent logging across all modules with console + daily file output.

Usage:
    from scripts.lib.logger import setup_logger
    logger = setup_logger(__name__)
    logger.info("Report started")
"""
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def setup_logger(
    name: str,
    level: str = None,
    log_to_file: bool = None,
    log_dir: Path = None,
) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name (typically __name__ from calling module).
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to $LOG_LEVEL, then INFO.
        log_to_file: Whether to also log to a file. Defaults to $LOG_TO_FILE.
        log_dir: Directory for log files. Defaults to $REPORTING_LOG_DIR, then logs/

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    level = level or os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(
        fmt=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_to_file is None:
        log_to_file = _env_flag("LOG_TO_FILE")

    # File handler
    if log_to_file:
        target_dir = Path(log_dir or os.getenv("REPORTING_LOG_DIR") or LOG_DIR)
        target_dir.mkdir(parents=True, exist_ok=True)

        log_file = target_dir / f"{datetime.now().strftime('%Y%m%d')}_reporting_hub.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
