# filename: src/filepi/api_server/api.py
"""
FilePi - Remote File Tree Server - Main API Module
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
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..core import constants
from ..core.config import Settings
from ..core.context import RootContext
from ..core.version import __version__
from ..services import Services, build_services
from .errors import register_exception_handlers
from .file_browser import router as file_browser_router
from .filemanager_router import router as filemanager_router
from .media_streaming import router as media_streaming_router

log = logging.getLogger(__name__)


# --- FastAPI App Factory ---
def create_api_app(
    context: RootContext,
    settings: Optional[Settings] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    app = FastAPI(title="FilePi API", version=__version__, docs_url=None, redoc_url=None)
    app.state.services = services or build_services(context, settings)

    origins = list(settings.cors_origins) if settings else ["*"]
    app.add_middleware(CORSMiddleware, allow_origins=origins, allow_methods=["*"], allow_headers=["*"])

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        query = f"?{request.url.query}" if request.url.query else ""
        log.info(f"{request.method} {request.url.path}{query} -> {response.status_code} ({elapsed_ms:.1f} ms)")
        return response

    register_exception_handlers(app)

    app.include_router(file_browser_router, prefix=constants.API_PREFIX)
    app.include_router(media_streaming_router, prefix=constants.API_PREFIX)
    app.include_router(filemanager_router, prefix=constants.API_PREFIX)

    log.info(f"API ready under {constants.API_PREFIX} for root {context.root}")
    return app
