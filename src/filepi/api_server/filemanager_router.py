# src/filepi/api_server/filemanager_router.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

"""
Endpoints for the Syncfusion File Manager widget.

``fileoperations`` always answers 200; a failure is reported in the body's
``error`` object. The auxiliary image, download and upload endpoints share
the native error convention.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from ..core.exceptions import BadRequestError
from ..services import Services
from ..services.directory_lister import guess_mime
from ..services.file_service import content_disposition, iter_file_range
from ..services.filemanager_models import FileManagerRequest, FileManagerResponse
from ..services.upload_service import iter_chunks
from .dependencies import get_services

log = logging.getLogger(__name__)
router = APIRouter()


def _parse_request(raw: bytes) -> FileManagerRequest:
    try:
        return FileManagerRequest.model_validate(json.loads(raw or b"null"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequestError(f"Malformed JSON body: {e}", public_message="Invalid request body")
    except ValidationError as e:
        raise BadRequestError(f"Invalid file manager request: {e}", public_message="Invalid request body")


def _join(path: Optional[str], name: str) -> str:
    base = (path or "/").strip().strip("/")
    return f"{base}/{name}" if base else name


@router.post("/fileoperations")
async def file_operations(request: Request, services: Services = Depends(get_services)):
    try:
        args = _parse_request(await request.body())
    except BadRequestError as e:
        log.info(f"Rejected file manager request: {e}")
        return JSONResponse(FileManagerResponse.failure(e).to_wire())
    response = await services.dispatcher.dispatch(args)
    return JSONResponse(response.to_wire())


@router.get("/getimage")
async def get_image(path: str = Query(...), services: Services = Depends(get_services)):
    log.info(f"File manager GetImage: {path}")
    target = await asyncio.to_thread(services.resolver.resolve_file, path)
    size = await services.files.file_size(target)
    headers = {"Content-Length": str(size), "Cache-Control": "public, max-age=3600"}
    return StreamingResponse(iter_file_range(target.path), media_type="application/octet-stream", headers=headers)


@router.post("/download")
async def download(download_input: str = Form(..., alias="downloadInput"), services: Services = Depends(get_services)):
    args = _parse_request(download_input.encode("utf-8"))
    names = args.selected_names()
    if not names:
        raise BadRequestError("No files specified for download")

    # Single file only; extra names are ignored.
    file_name = names[0]
    target = await asyncio.to_thread(services.resolver.resolve_file, _join(args.path, file_name))
    size = await services.files.file_size(target)
    log.info(f"File manager download: {target.path}")
    headers = {
        "Content-Length": str(size),
        "Content-Disposition": content_disposition(target.name),
    }
    return StreamingResponse(iter_file_range(target.path), media_type=guess_mime(target.name), headers=headers)


@router.post("/upload")
async def upload(request: Request, services: Services = Depends(get_services)):
    """
    Multipart upload from the widget: ``path`` names the target folder,
    every ``uploadFiles`` part is written into it, replacing existing files.
    """
    async with request.form() as form:
        current_path = form.get("path") or request.query_params.get("path") or "/"
        action = form.get("action") or request.query_params.get("action")
        uploads = [part for part in form.getlist("uploadFiles") if not isinstance(part, str)]
        log.info(f"File manager upload into '{current_path}' (action: {action}, {len(uploads)} files)")

        directory = await services.uploads.prepare_directory(current_path)
        for part in uploads:
            outcome = await services.uploads.store(directory, part.filename or "uploaded_file", iter_chunks(part))
            log.info(f"Saved {outcome.location} ({outcome.sha512[:16]}...)")
    return Response(status_code=200)
