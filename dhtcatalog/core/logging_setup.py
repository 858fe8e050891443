"""Operational log: append-only file mirrored to standard output."""

import logging
import sys
from pathlib import Path
from typing import Union

from .errors import FatalSetupError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(log_file: Union[str, Path] = "logger.log", level: str = "INFO") -> logging.Logger:
    """
    Attach a file handler and a stdout handler to the root logger.

    Raises:
        FatalSetupError: the log file cannot be opened for appending
    """
    log_path = Path(log_file)
    try:
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
    except OSError as e:
        raise FatalSetupError(f"Cannot open log file {log_path}: {e}", e)

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        handlers=[
            file_handler,
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )
    return logging.getLogger("dhtcatalog")
