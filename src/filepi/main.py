# filename: src/filepi/main.py
#!/usr/bin/env python3
"""
FilePi - Remote File Tree Server
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

import uvicorn

from .api_server.api import create_api_app
from .core.config import load_settings
from .core.context import RootContext
from .core.exceptions import ConfigurationError
from .core.logging_config import setup_logging
from .core.version import __app_name__, __version__


def show_help():
    """Display help information."""
    print(f"{__app_name__} v{__version__}")
    print("Serves one directory tree over HTTP")
    print("")
    print("Usage:")
    print("   filepi                    # Serve FILE_PI_ROOT_DIR (default: current directory)")
    print("   filepi --help             # Show this help")
    print("")
    print("Environment:")
    print("   FILE_PI_ROOT_DIR, FILE_PI_HOST, FILE_PI_PORT, FILE_PI_LOGLEVEL, FILE_PI_LOG_DIR,")
    print("   FILE_PI_FFMPEG, FILE_PI_THUMBNAIL_WIDTH, FILE_PI_THUMBNAIL_TIMEOUT,")
    print("   FILE_PI_WALK_TIMEOUT, FILE_PI_CORS_ORIGINS, FILE_PI_CONFIG (JSON file)")
    print("")


def main() -> int:
    """Main entry point for FilePi."""

    # Handle help request
    if "--help" in sys.argv or "-h" in sys.argv:
        show_help()
        return 0

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    setup_logging(settings.logging_level, settings.log_dir)
    log = logging.getLogger(__name__)
    log.info(f"Starting {__app_name__} v{__version__}")

    try:
        context = RootContext.from_settings(settings)
    except ConfigurationError as e:
        log.critical(f"Failed to start {__app_name__}: {e}")
        return 1

    app = create_api_app(context, settings)
    config = uvicorn.Config(
        app=app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        access_log=False,  # requests are logged by the app middleware
        log_config=None,
    )
    server = uvicorn.Server(config)
    log.info(f"Listening on {settings.host}:{settings.port}")
    try:
        server.run()
    except Exception:
        log.critical("Server failed to run", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
