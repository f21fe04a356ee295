"""
FilePi - Remote File Tree Server - Logging Configuration
Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published
by the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program. If not, see <https://www.gnu.org/licenses/>.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from . import constants
from .version import __app_name__, __version__

LOG_FORMAT = "%(asctime)s - %(name)-22s - %(levelname)-8s - %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 5

# Server loggers that should follow the root configuration instead of
# installing handlers of their own.
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")
# Chatty third-party loggers kept at WARNING unless FilePi itself runs at DEBUG.
NOISY_LOGGERS = ("multipart", "python_multipart", "asyncio")


def _file_handler(log_file: Path, formatter: logging.Formatter) -> Optional[RotatingFileHandler]:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    except OSError as e:
        # Console logging is already in place, keep going without the file.
        logging.error(f"Failed to configure file logger at {log_file}: {e}")
        return None
    handler.setFormatter(formatter)
    return handler


def setup_logging(level=logging.INFO, log_dir: Path = Path(constants.DEFAULT_LOG_DIR)) -> Optional[Path]:
    """
    Sends every record to stdout and to a rotating ``filepi.log`` in
    ``log_dir``. Call once at start-up, before the server is created.
    Returns the log file path, or None when only the console is available.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file: Optional[Path] = Path(log_dir) / constants.LOG_FILENAME
    file_handler = _file_handler(log_file, formatter)
    if file_handler is not None:
        root_logger.addHandler(file_handler)
    else:
        log_file = None

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.propagate = True
    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    log = logging.getLogger(__name__)
    log.info(f"{__app_name__} v{__version__} logging at {logging.getLevelName(level)}")
    log.info(f"Log file: {log_file or 'console only'}")
    return log_file
