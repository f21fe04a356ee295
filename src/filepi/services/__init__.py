# src/filepi/services/__init__.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

from dataclasses import dataclass
from typing import Optional

from ..core.config import Settings
from ..core.context import RootContext
from .action_dispatcher import ActionDispatcher
from .directory_lister import DirectoryLister
from .file_service import FileService
from .path_resolver import PathResolver
from .thumbnail_service import FfmpegFrameExtractor, ThumbnailService
from .upload_service import UploadService


@dataclass
class Services:
    """Every service bound to one RootContext; built once per application."""

    context: RootContext
    resolver: PathResolver
    lister: DirectoryLister
    files: FileService
    uploads: UploadService
    thumbnails: ThumbnailService
    dispatcher: ActionDispatcher


def build_services(
    context: RootContext,
    settings: Optional[Settings] = None,
    extractor: Optional[FfmpegFrameExtractor] = None,
) -> Services:
    resolver = PathResolver(context)
    lister = DirectoryLister(resolver, walk_timeout=settings.walk_timeout if settings else None)
    files = FileService(resolver)
    if extractor is None:
        if settings is not None:
            extractor = FfmpegFrameExtractor(settings.ffmpeg_path, settings.thumbnail_width, settings.thumbnail_timeout)
        else:
            extractor = FfmpegFrameExtractor()
    return Services(
        context=context,
        resolver=resolver,
        lister=lister,
        files=files,
        uploads=UploadService(resolver),
        thumbnails=ThumbnailService(context, extractor),
        dispatcher=ActionDispatcher(resolver, lister, files),
    )


__all__ = [
    "Services",
    "build_services",
    "ActionDispatcher",
    "DirectoryLister",
    "FileService",
    "PathResolver",
    "ThumbnailService",
    "UploadService",
]
