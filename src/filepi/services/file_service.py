# src/filepi/services/file_service.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import asyncio
import logging
import os
import shutil
import urllib.parse
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles

from ..core import constants
from ..core.exceptions import (
    AlreadyExistsError,
    BadRequestError,
    InternalError,
    NotFoundError,
    RangeNotSatisfiableError,
)
from ..core.validators import validate_filename
from .directory_lister import wire_text
from .path_resolver import PathResolver, ResolvedPath

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int  # inclusive
    size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.size}"


def content_disposition(filename: str, inline: bool = False) -> str:
    """Builds a Content-Disposition value, RFC 5987 encoding non-ASCII names."""
    disposition = "inline" if inline else "attachment"
    filename = wire_text(filename)
    try:
        filename.encode("ascii")
        return f'{disposition}; filename="{filename}"'
    except UnicodeEncodeError:
        encoded_filename = urllib.parse.quote(filename, safe="")
        return f"{disposition}; filename*=UTF-8''{encoded_filename}"


def parse_range(header: Optional[str], size: int) -> Optional[ByteRange]:
    """
    Parses a single ``bytes=`` range against a file of ``size`` bytes.

    Returns None when there is no usable header (absent, or a multi-range
    request, which is answered with the whole file). Syntax errors are a
    BadRequestError; ranges outside the file raise RangeNotSatisfiableError.
    """
    if not header:
        return None
    header = header.strip()
    if not header.startswith("bytes="):
        raise BadRequestError(f"Invalid Range header: {header}", public_message="Invalid Range header")
    ranges = header[len("bytes="):].strip()
    if "," in ranges:
        log.debug(f"Multi-range request ignored: {header}")
        return None
    try:
        first, last = ranges.split("-", 1)
        if first:
            start = int(first)
            end = int(last) if last else size - 1
        else:
            # Suffix form: the final N bytes.
            suffix = int(last)
            if suffix <= 0:
                raise RangeNotSatisfiableError(size)
            start, end = max(size - suffix, 0), size - 1
    except ValueError:
        raise BadRequestError(f"Invalid Range header: {header}", public_message="Invalid Range header")

    if start < 0 or start >= size or start > end:
        raise RangeNotSatisfiableError(size)
    return ByteRange(start, min(end, size - 1), size)


async def iter_file_range(
    path: Path,
    start: int = 0,
    end: Optional[int] = None,
    chunk_size: int = constants.DOWNLOAD_CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    """Reads ``path`` from ``start`` through ``end`` (inclusive) in chunks."""
    try:
        async with aiofiles.open(path, "rb") as f:
            await f.seek(start)
            remaining = None if end is None else (end - start) + 1
            while remaining is None or remaining > 0:
                size = chunk_size if remaining is None else min(chunk_size, remaining)
                chunk = await f.read(size)
                if not chunk:
                    break
                if remaining is not None:
                    remaining -= len(chunk)
                yield chunk
    except OSError as e:
        log.error(f"Streaming error for {path}: {e}")
        raise


class FileService:
    """Filesystem primitives on resolved paths: folders, deletion, renames."""

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    async def create_folder(self, parent: ResolvedPath, name: str) -> ResolvedPath:
        name = validate_filename(name, field="foldername")
        target = await asyncio.to_thread(self.resolver.resolve_entry, parent, name)
        if await asyncio.to_thread(target.lexists):
            raise AlreadyExistsError([name])
        try:
            await asyncio.to_thread(target.path.mkdir)
        except FileExistsError:
            raise AlreadyExistsError([name])
        except OSError as e:
            log.error(f"Failed to create folder {target.path}: {e}")
            raise InternalError(f"Failed to create folder: {e}", public_message="Failed to create folder")
        log.info(f"Folder created: {target.path}")
        return target

    async def delete(self, target: ResolvedPath):
        """
        Removes a file or a whole directory tree. A symlink is removed as a
        link; whatever it points to is left alone.
        """
        if target.is_root:
            raise BadRequestError("The root folder cannot be deleted")
        path = target.path

        def _remove():
            if not os.path.lexists(path):
                raise NotFoundError(f"File not found: {target.name}")
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()

        try:
            await asyncio.to_thread(_remove)
        except OSError as e:
            log.error(f"Failed to delete {path}: {e}")
            raise InternalError(f"Failed to delete {target.name}: {e}", public_message=f"Failed to delete {target.name}")
        log.info(f"Deleted: {path}")

    async def rename(self, directory: ResolvedPath, name: str, new_name: str) -> ResolvedPath:
        new_name = validate_filename(new_name, field="newName")
        source = await asyncio.to_thread(self.resolver.resolve_entry, directory, name)
        target = await asyncio.to_thread(self.resolver.resolve_entry, directory, new_name)
        if not await asyncio.to_thread(source.lexists):
            raise NotFoundError(f"File not found: {name}")
        if source.name != target.name and await asyncio.to_thread(target.lexists):
            raise AlreadyExistsError([target.name])
        try:
            await asyncio.to_thread(os.rename, source.path, target.path)
        except OSError as e:
            log.error(f"Failed to rename {source.path} to {target.path}: {e}")
            raise InternalError(f"Failed to rename: {e}", public_message="Failed to rename")
        log.info(f"Renamed {source.path} -> {target.path}")
        return target

    async def file_size(self, target: ResolvedPath) -> int:
        try:
            return (await asyncio.to_thread(target.path.stat)).st_size
        except OSError as e:
            log.error(f"Failed to read metadata for {target.path}: {e}")
            raise InternalError(f"Failed to read metadata: {e}", public_message="Failed to read metadata")
