# src/filepi/core/config.py
"""
FilePi - Remote File Tree Server - Configuration Management
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

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from . import constants
from .exceptions import ConfigurationError

log = logging.getLogger(__name__)

# --- Default Configuration Values ---
# Central source of truth for all settings and their defaults.

DEFAULT_SETTINGS: Dict[str, Any] = {
    "root_dir": ".",
    "host": constants.DEFAULT_HOST,
    "port": constants.DEFAULT_PORT,
    "log_level": constants.DEFAULT_LOG_LEVEL,
    "log_dir": constants.DEFAULT_LOG_DIR,
    "ffmpeg_path": constants.DEFAULT_FFMPEG_PATH,
    "thumbnail_width": constants.DEFAULT_THUMBNAIL_WIDTH,
    "thumbnail_timeout": constants.DEFAULT_THUMBNAIL_TIMEOUT,
    "walk_timeout": constants.DEFAULT_WALK_TIMEOUT,
    "cors_origins": "*",
}

# Setting key -> environment variable suffix (FILE_PI_<suffix>)
ENV_KEYS = {
    "root_dir": "ROOT_DIR",
    "host": "HOST",
    "port": "PORT",
    "log_level": "LOGLEVEL",
    "log_dir": "LOG_DIR",
    "ffmpeg_path": "FFMPEG",
    "thumbnail_width": "THUMBNAIL_WIDTH",
    "thumbnail_timeout": "THUMBNAIL_TIMEOUT",
    "walk_timeout": "WALK_TIMEOUT",
    "cors_origins": "CORS_ORIGINS",
}

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


@dataclass(frozen=True)
class Settings:
    """Immutable process-wide settings, read once at start-up."""

    root_dir: Path
    host: str
    port: int
    log_level: str
    log_dir: Path
    ffmpeg_path: str
    thumbnail_width: int
    thumbnail_timeout: float
    walk_timeout: float
    cors_origins: Tuple[str, ...]

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level.upper())


def _read_config_file(config_file: Path) -> Dict[str, Any]:
    """Loads user overrides from a JSON file; unknown keys are ignored."""
    try:
        with config_file.open("r", encoding="utf-8") as f:
            user_config = json.load(f)
    except (IOError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read config file {config_file}: {e}")

    if not isinstance(user_config, dict):
        raise ConfigurationError(f"Config file {config_file} must hold a JSON object")

    for key in user_config:
        if key not in DEFAULT_SETTINGS:
            log.warning(f"Ignoring unknown configuration key: '{key}'")
    log.info(f"Configuration loaded from {config_file}")
    return {k: v for k, v in user_config.items() if k in DEFAULT_SETTINGS}


def _as_int(key: str, value: Any, minimum: int = 1, maximum: Optional[int] = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid {key} value: {value!r}")
    if number < minimum or (maximum is not None and number > maximum):
        raise ConfigurationError(f"{key} out of range: {number}")
    return number


def _as_seconds(key: str, value: Any) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid {key} value: {value!r}")
    if seconds <= 0:
        raise ConfigurationError(f"{key} must be positive, got {seconds}")
    return seconds


def load_settings(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Builds the settings from defaults, an optional JSON file and the
    FILE_PI_* environment variables, in increasing order of precedence.
    """
    environ = os.environ if environ is None else environ
    values = DEFAULT_SETTINGS.copy()

    if config_file is None and environ.get(constants.ENV_CONFIG_FILE):
        config_file = Path(environ[constants.ENV_CONFIG_FILE])
    if config_file is not None:
        values.update(_read_config_file(Path(config_file)))

    for key, suffix in ENV_KEYS.items():
        env_value = environ.get(constants.ENV_PREFIX + suffix)
        if env_value is not None and env_value != "":
            values[key] = env_value

    log_level = str(values["log_level"]).strip().lower()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(f"Invalid log level: {values['log_level']!r}")

    origins = values["cors_origins"]
    if isinstance(origins, str):
        origins = [o.strip() for o in origins.split(",") if o.strip()]

    return Settings(
        root_dir=Path(str(values["root_dir"])),
        host=str(values["host"]),
        port=_as_int("port", values["port"], minimum=1, maximum=65535),
        log_level=log_level,
        log_dir=Path(str(values["log_dir"])),
        ffmpeg_path=str(values["ffmpeg_path"]),
        thumbnail_width=_as_int("thumbnail_width", values["thumbnail_width"]),
        thumbnail_timeout=_as_seconds("thumbnail_timeout", values["thumbnail_timeout"]),
        walk_timeout=_as_seconds("walk_timeout", values["walk_timeout"]),
        cors_origins=tuple(origins),
    )
