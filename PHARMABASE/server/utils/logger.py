from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from PHARMABASE.server.utils.constants import LOGS_PATH

LOGGER_NAME = "PHARMABASE"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILENAME = "pharmabase.log"


# -----------------------------------------------------------------------------
def build_logger(name: str = LOGGER_NAME, level: int = logging.INFO) -> logging.Logger:
    instance = logging.getLogger(name)
    if instance.handlers:
        return instance
    instance.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    instance.addHandler(console_handler)
    try:
        os.makedirs(LOGS_PATH, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(LOGS_PATH, LOG_FILENAME),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
    except OSError:
        # read-only installs log to the console only
        return instance
    file_handler.setFormatter(formatter)
    instance.addHandler(file_handler)
    return instance


logger = build_logger()
