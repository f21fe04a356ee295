# src/filepi/services/thumbnail_service.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import asyncio
import hashlib
import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

from ..core import constants
from ..core.context import RootContext
from ..core.exceptions import ExternalToolError, InvalidMediaError, OperationTimeoutError
from ..core.singleflight import SingleFlight
from .directory_lister import guess_mime, is_video_mime
from .path_resolver import ResolvedPath

log = logging.getLogger(__name__)


class FfmpegFrameExtractor:
    """Grabs one scaled JPEG frame from a video with an ffmpeg subprocess."""

    def __init__(
        self,
        ffmpeg_path: str = constants.DEFAULT_FFMPEG_PATH,
        width: int = constants.DEFAULT_THUMBNAIL_WIDTH,
        timeout: Optional[float] = constants.DEFAULT_THUMBNAIL_TIMEOUT,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.width = width
        self.timeout = timeout

    def build_command(self, source: Path, destination: Path, offset: str) -> List[str]:
        return [
            self.ffmpeg_path,
            "-i", str(source),
            "-ss", offset,
            "-vframes", "1",
            "-vf", f"scale={self.width}:-1",  # fixed width, keep aspect ratio
            "-y",
            str(destination),
        ]

    async def extract(self, source: Path, destination: Path, offset: str = constants.THUMBNAIL_OFFSET):
        cmd = self.build_command(source, destination, offset)
        log.debug(f"Running: {' '.join(cmd)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log.error(f"Failed to run FFmpeg: {e}")
            raise ExternalToolError(f"Failed to generate thumbnail: {e}", diagnostics=str(e))

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            log.error(f"FFmpeg timed out after {self.timeout}s on {source}")
            raise OperationTimeoutError(
                f"Thumbnail generation exceeded {self.timeout} seconds",
                public_message="Failed to generate thumbnail",
            )

        if proc.returncode != 0:
            diagnostics = stderr.decode("utf-8", errors="replace")
            log.error(f"FFmpeg error: {diagnostics}")
            raise ExternalToolError("Failed to generate thumbnail with FFmpeg", diagnostics=diagnostics)


class ThumbnailService:
    """
    Lazily generated, never evicted preview frames for video files, stored at
    ``<cache_dir>/<md5 of source path>/thumbnail.jpg``.

    The key depends on the path only, so it is stable for a given file. A
    cached frame older than its source is regenerated in place. Concurrent
    first requests for the same source share one extraction.
    """

    def __init__(self, context: RootContext, extractor: FfmpegFrameExtractor, flights: Optional[SingleFlight] = None):
        self.context = context
        self.extractor = extractor
        self.flights = flights or SingleFlight()

    def cache_key(self, source: ResolvedPath) -> str:
        return hashlib.md5(os.fsencode(source.path), usedforsecurity=False).hexdigest()

    def cache_path(self, source: ResolvedPath) -> Path:
        return self.context.cache_dir / self.cache_key(source) / constants.THUMBNAIL_FILENAME

    @staticmethod
    def _validate(source: ResolvedPath):
        if not source.exists() or source.is_dir():
            raise InvalidMediaError("Invalid file for thumbnail generation")
        if not is_video_mime(guess_mime(source.name)):
            raise InvalidMediaError("Invalid file for thumbnail generation")

    @staticmethod
    def _is_fresh(source: Path, thumbnail: Path) -> bool:
        try:
            thumb_stat = thumbnail.stat()
        except FileNotFoundError:
            return False
        if thumb_stat.st_size == 0:
            return False
        return thumb_stat.st_mtime >= source.stat().st_mtime

    async def get_or_create(self, source: ResolvedPath) -> Path:
        await asyncio.to_thread(self._validate, source)
        thumbnail = self.cache_path(source)
        if await asyncio.to_thread(self._is_fresh, source.path, thumbnail):
            log.debug(f"Thumbnail cache hit: {thumbnail}")
            return thumbnail
        return await self.flights.do(self.cache_key(source), lambda: self._generate(source.path, thumbnail))

    async def _generate(self, source: Path, thumbnail: Path) -> Path:
        # A flight that finished just before this one may have filled the entry.
        if await asyncio.to_thread(self._is_fresh, source, thumbnail):
            return thumbnail

        log.debug(f"Generating thumbnail for {source}")
        await asyncio.to_thread(thumbnail.parent.mkdir, parents=True, exist_ok=True)
        staging = thumbnail.parent / f".thumbnail-{uuid.uuid4().hex}.jpg"
        try:
            for offset in (constants.THUMBNAIL_OFFSET, constants.THUMBNAIL_FALLBACK_OFFSET):
                await self.extractor.extract(source, staging, offset)
                if await asyncio.to_thread(_non_empty, staging):
                    break
                # Clips shorter than the offset yield no frame.
                log.info(f"No frame at {offset} in {source.name}, retrying from the start")
            else:
                raise ExternalToolError("Frame extraction produced no image", diagnostics=str(source))
            await asyncio.to_thread(os.replace, staging, thumbnail)
        finally:
            await asyncio.to_thread(_discard, staging)

        log.info(f"Thumbnail generated successfully: {thumbnail}")
        return thumbnail


def _non_empty(path: Path) -> bool:
    try:
        return path.stat().st_size > 0
    except FileNotFoundError:
        return False


def _discard(path: Path):
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log.warning(f"Could not remove {path}: {e}")
