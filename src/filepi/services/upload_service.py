# src/filepi/services/upload_service.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Optional, Union

from ..core import constants
from ..core.atomic import atomic_write
from ..core.exceptions import BadRequestError, InternalError
from ..core.validators import normalize_digest, validate_filename
from .path_resolver import PathResolver, ResolvedPath

log = logging.getLogger(__name__)

UploadSource = Union[bytes, bytearray, AsyncIterable[bytes]]


@dataclass(frozen=True)
class UploadOutcome:
    filename: str
    location: str  # path of the stored file relative to the root
    sha512: str  # digest of what is on disk after the call
    skipped: bool


def sha512_of_file(path: Path, chunk_size: int = constants.HASH_CHUNK_SIZE) -> str:
    """Hex SHA-512 of a file's full content, read in chunks."""
    digest = hashlib.sha512()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


async def iter_chunks(reader, chunk_size: int = constants.UPLOAD_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Drains anything with an async ``read(size)``, such as a Starlette UploadFile."""
    while chunk := await reader.read(chunk_size):
        yield chunk


async def _iter_source(source: UploadSource) -> AsyncIterator[bytes]:
    if isinstance(source, (bytes, bytearray)):
        yield bytes(source)
        return
    async for chunk in source:
        yield chunk


class UploadService:
    """
    Writes uploaded bytes under the root. Re-sending content that is already
    on disk (same SHA-512 as the client supplied) is a no-op; everything
    else replaces the destination through a temp file and an atomic rename.
    """

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    async def prepare_directory(self, location: str) -> ResolvedPath:
        """Resolves the upload directory, creating it when only it is missing."""
        directory = self.resolver.resolve(location)
        if not await asyncio.to_thread(directory.exists):
            log.info(f"Creating upload directory: {directory.path}")
            try:
                await asyncio.to_thread(directory.path.mkdir, exist_ok=True)
            except OSError as e:
                log.error(f"Failed to create upload directory: {e}")
                raise InternalError(f"Failed to create directory: {e}", public_message="Failed to create directory")
        elif not await asyncio.to_thread(directory.is_dir):
            raise BadRequestError("Upload location is not a directory")
        return directory

    async def _hash(self, path: Path) -> str:
        try:
            return await asyncio.to_thread(sha512_of_file, path)
        except OSError as e:
            log.error(f"Failed to compute SHA-512 of {path}: {e}")
            raise InternalError(f"Failed to compute file hash: {e}", public_message="Failed to compute file hash")

    async def store(
        self,
        directory: ResolvedPath,
        filename: str,
        source: UploadSource,
        client_hash: Optional[str] = None,
    ) -> UploadOutcome:
        filename = validate_filename(filename, field="filename")
        client_hash = normalize_digest(client_hash)
        # The entry itself is replaced: a symlink at this name becomes a
        # regular file and whatever it pointed to is left alone.
        target = await asyncio.to_thread(self.resolver.resolve_entry, directory, filename)
        is_link = await asyncio.to_thread(target.is_link)

        if not is_link and await asyncio.to_thread(target.is_dir):
            raise BadRequestError(f"A folder named '{filename}' already exists")

        if client_hash and not is_link and await asyncio.to_thread(target.is_file):
            log.info("File already exists, checking SHA-512 hash for deduplication")
            existing_hash = await self._hash(target.path)
            log.debug(f"Client SHA-512: {client_hash[:16]}..., existing: {existing_hash[:16]}...")
            if existing_hash == client_hash:
                log.info(f"SHA-512 match - skipping upload for file: {filename}")
                return UploadOutcome(filename, target.relative, existing_hash, skipped=True)
            log.info("SHA-512 mismatch - file will be replaced")

        log.info(f"Saving file to location: {target.path}")
        written = 0
        try:
            async with atomic_write(target.path) as f:
                async for chunk in _iter_source(source):
                    await f.write(chunk)
                    written += len(chunk)
        except OSError as e:
            log.error(f"Failed to write file {target.path}: {e}")
            raise InternalError(f"Failed to write file: {e}", public_message="Failed to write file")

        new_hash = await self._hash(target.path)
        log.info(f"File uploaded successfully: {filename} ({written} bytes, sha512 {new_hash[:16]}...)")
        return UploadOutcome(filename, target.relative, new_hash, skipped=False)
