import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from ..config.config import settings


def setup_logging():
    """
    Installs the application-wide logging configuration.

    Logs go both to stdout (for development) and to a size-rotated file
    under ``settings.LOG_DIR`` (for the school server).
    """
    log_format = "%(asctime)s - [%(name)s] - %(levelname)s - %(message)s"

    logger = logging.getLogger()
    logger.setLevel(logging.INFO)

    # Drop uvicorn's default handlers so a single format is used everywhere.
    if logger.hasHandlers():
        logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(stdout_handler)

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(exist_ok=True)
    file_handler = RotatingFileHandler(
        log_dir / "app.log",
        maxBytes=5*1024*1024,  # 5 MB
        backupCount=5
    )
    file_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(file_handler)
