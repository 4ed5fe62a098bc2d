import logging
import sys
from datetime import datetime
from pathlib import Path

from attestboard.config import Config

PACKAGE_LOGGER = 'attestboard'

def setup_logger(name: str) -> logging.Logger:
    """
    Get a logger with the package's console and daily file output attached.

    Handlers live on the package logger, so module loggers created with
    logging.getLogger(__name__) share the same output without extra setup.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if not package_logger.handlers:
        _configure(package_logger)
    return logging.getLogger(name)

def _configure(package_logger: logging.Logger):
    log_level = logging.DEBUG if Config.DEBUG else logging.INFO
    package_logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console goes to stderr; stdout carries command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    log_dir = Path(Config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(
        log_dir / f'leaderboards_{datetime.now().strftime("%Y%m%d")}.log',
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    package_logger.addHandler(file_handler)
