# FilePi - Remote File Tree Server - File Browser API Module
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.


import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse

from ..core.exceptions import BadRequestError
from ..services import Services
from ..services.directory_lister import is_video_mime, name_contains
from ..services.file_service import iter_file_range
from ..services.paginator import ListingQuery, arrange
from ..services.upload_service import iter_chunks
from .dependencies import get_services, listing_query
from .models import CreateFolderRequest, FilesResponse, MessageResponse, UploadResponse

log = logging.getLogger(__name__)

router = APIRouter()


@router.get("/files", response_model=FilesResponse)
async def list_files(query: ListingQuery = Depends(listing_query), services: Services = Depends(get_services)):
    """Immediate children of one directory, sorted and paginated."""
    log.info(f"Listing files in '{query.path}'")
    directory = await asyncio.to_thread(services.resolver.resolve_directory, query.path)
    entries = await services.lister.list_async(directory, skip_hidden=query.skip_hidden)
    return arrange(entries, query).to_dict()


@router.get("/videos", response_model=FilesResponse)
async def list_videos(query: ListingQuery = Depends(listing_query), services: Services = Depends(get_services)):
    """Every video file below ``path``; rel_path is relative to the root."""
    log.info(f"Collecting videos under '{query.path}'")
    directory = await asyncio.to_thread(services.resolver.resolve_directory, query.path)
    entries = await services.lister.list_async(
        directory,
        recursive=True,
        skip_hidden=query.skip_hidden,
        mime_filter=is_video_mime,
        base=services.resolver.resolve(""),
    )
    log.info(f"Found {len(entries)} videos under '{query.path}'")
    return arrange(entries, query).to_dict()


@router.get("/search", response_model=FilesResponse)
async def search(query: ListingQuery = Depends(listing_query), services: Services = Depends(get_services)):
    if not query.query:
        raise BadRequestError("Missing search query")
    log.info(f"Performing search for '{query.query}' in '{query.path}'")
    directory = await asyncio.to_thread(services.resolver.resolve_directory, query.path)
    entries = await services.lister.list_async(
        directory,
        recursive=True,
        skip_hidden=query.skip_hidden,
        name_filter=name_contains(query.query),
        base=services.resolver.resolve(""),
    )
    return arrange(entries, query).to_dict()


@router.get("/thumbnail/{file_path:path}")
async def get_thumbnail(file_path: str, services: Services = Depends(get_services)):
    source = await asyncio.to_thread(services.resolver.resolve, file_path)
    thumbnail = await services.thumbnails.get_or_create(source)
    size = (await asyncio.to_thread(thumbnail.stat)).st_size
    log.info(f"Serving thumbnail: {thumbnail}")
    headers = {"Content-Length": str(size), "Cache-Control": "no-cache"}
    return StreamingResponse(iter_file_range(thumbnail), media_type="image/jpeg", headers=headers)


@router.post("/createfolder", response_model=MessageResponse)
async def create_folder(payload: CreateFolderRequest, services: Services = Depends(get_services)):
    parent = await asyncio.to_thread(services.resolver.resolve_directory, payload.path)
    await services.files.create_folder(parent, payload.foldername)
    return {"message": "Folder created successfully"}


@router.post("/uploadfile", response_model=UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    location: Optional[str] = Form(None),
    user: Optional[str] = Form(None),
    sha512: Optional[str] = Form(None),
    services: Services = Depends(get_services),
):
    location = (location or "").strip()
    user = (user or "").strip()
    if not location or not user:
        raise BadRequestError("Missing required fields: location or user")

    filename = file.filename or "unnamed"
    log.info(f"Upload parameters - location: {location}, user: {user}, file: {filename}")

    directory = await services.uploads.prepare_directory(location)
    try:
        outcome = await services.uploads.store(directory, filename, iter_chunks(file), client_hash=sha512)
    finally:
        await file.close()

    message = (
        "File already exists with identical content, upload skipped"
        if outcome.skipped
        else "File uploaded successfully"
    )
    return UploadResponse(
        message=message,
        filename=outcome.filename,
        location=outcome.location,
        uploaded_by=user,
        sha512=outcome.sha512,
        skipped=outcome.skipped,
    )


@router.get("/health")
async def health():
    return {"status": "ok", "message": "FilePi server is running"}
