import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from venue_availability.config import settings

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging():
    """
    - Console, plus a rotating file (LOG_DIR/app.log) when LOG_TO_FILE is set
    - Safe to call more than once
    """
    level = settings.LOG_LEVEL.upper()

    root = logging.getLogger()
    root.setLevel(level)

    # Prevent duplicate handlers
    if root.handlers:
        return

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(fmt=FORMAT, datefmt=DATEFMT))
    root.addHandler(console)

    if settings.LOG_TO_FILE:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "app.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(fmt=FORMAT, datefmt=DATEFMT))
        root.addHandler(file_handler)
