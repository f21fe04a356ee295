# src/filepi/api_server/models.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

from typing import List, Optional

from pydantic import BaseModel, Field


class FileInfo(BaseModel):
    name: str
    full_name: str
    size: int
    is_directory: bool
    created_time: Optional[int] = Field(None, description="Milliseconds since the epoch, when the platform records it.")
    modified_time: Optional[int] = Field(None, description="Milliseconds since the epoch.")
    file_type: str = Field("", description="MIME type guessed from the extension; empty for directories.")
    owner: Optional[str] = None
    parent_dir: Optional[str] = None
    rel_path: Optional[str] = None


class FilesResponse(BaseModel):
    files: List[FileInfo]
    total_files: int
    skip: int
    limit: int


class CreateFolderRequest(BaseModel):
    path: Optional[str] = None
    foldername: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class UploadResponse(BaseModel):
    message: str
    filename: str
    location: str
    uploaded_by: str
    sha512: Optional[str] = None
    skipped: bool


class HealthResponse(BaseModel):
    status: str
    message: str


class ErrorResponse(BaseModel):
    error: str
