# src/filepi/api_server/media_streaming.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import asyncio
import logging

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import StreamingResponse

from ..services import Services
from ..services.directory_lister import guess_mime
from ..services.file_service import content_disposition, iter_file_range, parse_range
from .dependencies import get_services

log = logging.getLogger(__name__)
router = APIRouter()


@router.get("/file/{file_path:path}")
async def serve_file(
    file_path: str,
    inline: bool = Query(False),
    services: Services = Depends(get_services),
):
    """Whole-file download, as an attachment unless ``inline`` is set."""
    target = await asyncio.to_thread(services.resolver.resolve_file, file_path)
    size = await services.files.file_size(target)
    log.info(f"Serving file: {target.path}")
    headers = {
        "Content-Length": str(size),
        "Content-Disposition": content_disposition(target.name, inline=inline),
    }
    return StreamingResponse(iter_file_range(target.path), media_type=guess_mime(target.name), headers=headers)


@router.get("/stream/{file_path:path}")
async def stream_file(
    file_path: str,
    range_header: str = Header(None, alias="Range"),
    services: Services = Depends(get_services),
):
    """Streams a file inline with Range support for seeking."""
    target = await asyncio.to_thread(services.resolver.resolve_file, file_path)
    file_size = await services.files.file_size(target)
    byte_range = parse_range(range_header, file_size)

    status_code = 200
    start, end = 0, file_size - 1
    headers = {
        "Accept-Ranges": "bytes",
        "Cache-Control": "no-cache",
        "Content-Length": str(file_size),
        "Content-Disposition": content_disposition(target.name, inline=True),
    }
    if byte_range is not None:
        status_code = 206
        start, end = byte_range.start, byte_range.end
        headers["Content-Length"] = str(byte_range.length)
        headers["Content-Range"] = byte_range.content_range

    log.debug(f"Streaming {target.name}: {start}-{end} (status {status_code})")
    return StreamingResponse(
        iter_file_range(target.path, start, end),
        status_code=status_code,
        media_type=guess_mime(target.name),
        headers=headers,
    )
