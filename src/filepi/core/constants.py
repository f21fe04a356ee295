# filename: src/filepi/core/constants.py
"""
FilePi - Remote File Tree Server - Constants Module
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

from .version import __app_name__

# --- Application Metadata ---
APP_NAME = __app_name__
API_PREFIX = "/api/v1"

# --- Core Application Settings ---
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_DIR = "./logs"
LOG_FILENAME = "filepi.log"

# --- Environment Variables ---
ENV_PREFIX = "FILE_PI_"
ENV_CONFIG_FILE = "FILE_PI_CONFIG"

# --- Root Layout ---
CACHE_DIRNAME = ".cache"
THUMBNAIL_FILENAME = "thumbnail.jpg"

# --- Listing ---
DEFAULT_SKIP = 0
DEFAULT_LIMIT = 25

# --- Thumbnails ---
DEFAULT_FFMPEG_PATH = "ffmpeg"
THUMBNAIL_OFFSET = "00:00:05"
THUMBNAIL_FALLBACK_OFFSET = "00:00:00"
DEFAULT_THUMBNAIL_WIDTH = 320
DEFAULT_THUMBNAIL_TIMEOUT = 60  # in seconds
DEFAULT_WALK_TIMEOUT = 120  # in seconds

# --- Transfers ---
DOWNLOAD_CHUNK_SIZE = 65536  # 64KB for better throughput
UPLOAD_CHUNK_SIZE = 262144  # 256KB
HASH_CHUNK_SIZE = 1048576  # 1MB
