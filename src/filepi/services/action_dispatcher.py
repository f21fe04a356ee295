# src/filepi/services/action_dispatcher.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import asyncio
import logging
import os
from typing import Awaitable, Callable, Dict, List

from ..core.exceptions import BadRequestError, FilePiError, InternalError, NotFoundError
from .directory_lister import DirectoryLister, FileEntry, build_entry
from .file_service import FileService
from .filemanager_models import (
    FileManagerAction,
    FileManagerEntry,
    FileManagerRequest,
    FileManagerResponse,
    filter_path_for,
)
from .paginator import sort_entries
from .path_resolver import PathResolver, ResolvedPath

log = logging.getLogger(__name__)

Handler = Callable[[FileManagerRequest], Awaitable[FileManagerResponse]]


def _has_child_folder(path) -> bool:
    try:
        with os.scandir(path) as it:
            return any(item.is_dir() for item in it)
    except OSError:
        return False


class ActionDispatcher:
    """
    Routes widget ``fileoperations`` requests onto the filesystem services.

    Every path is resolved again here, whatever the caller already checked.
    Failures never escape as exceptions: they come back as an ``error``
    object inside an otherwise ordinary response.
    """

    def __init__(self, resolver: PathResolver, lister: DirectoryLister, files: FileService):
        self.resolver = resolver
        self.lister = lister
        self.files = files
        self._handlers: Dict[FileManagerAction, Handler] = {
            FileManagerAction.READ: self._read,
            FileManagerAction.CREATE: self._create,
            FileManagerAction.DELETE: self._delete,
            FileManagerAction.RENAME: self._rename,
            FileManagerAction.SEARCH: self._reserved,
            FileManagerAction.COPY: self._reserved,
            FileManagerAction.MOVE: self._reserved,
            FileManagerAction.DETAILS: self._reserved,
        }
        missing = set(FileManagerAction) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for actions: {sorted(a.value for a in missing)}")

    async def dispatch(self, request: FileManagerRequest) -> FileManagerResponse:
        try:
            action = FileManagerAction.parse(request.action)
            log.debug(f"File manager action '{action.value}' on '{request.path}'")
            return await self._handlers[action](request)
        except FilePiError as e:
            log.info(f"File manager action '{request.action}' failed: {e}")
            return FileManagerResponse.failure(e)
        except OSError as e:
            log.error(f"File manager action '{request.action}' failed: {e}")
            return FileManagerResponse.failure(InternalError(str(e), public_message="File operation failed"))

    def _describe(self, target: ResolvedPath) -> FileManagerEntry:
        try:
            st = None
            # A link that dangles or leaves the root is described as the link itself.
            if target.is_link() and not self.lister.link_is_contained(target.path):
                st = target.path.lstat()
            entry = build_entry(target.path, self.resolver.root, st)
        except OSError as e:
            raise InternalError(f"Failed to read file info: {e}", public_message="Failed to read file info")
        parent = "" if target.is_root else os.path.dirname(target.relative)
        return FileManagerEntry.from_file_entry(
            entry,
            filter_path="" if target.is_root else filter_path_for(parent),
            has_child=entry.is_directory and _has_child_folder(target.path),
        )

    async def _entry_for(self, target: ResolvedPath) -> FileManagerEntry:
        return await asyncio.to_thread(self._describe, target)

    def _children(self, directory: ResolvedPath, entries: List[FileEntry]) -> List[FileManagerEntry]:
        filter_path = filter_path_for(directory.relative)
        return [
            FileManagerEntry.from_file_entry(
                entry,
                filter_path=filter_path,
                has_child=entry.is_directory and _has_child_folder(entry.path),
            )
            for entry in sort_entries(entries)
        ]

    async def _read(self, request: FileManagerRequest) -> FileManagerResponse:
        directory = await asyncio.to_thread(self.resolver.resolve_directory, request.path)
        entries = await self.lister.list_async(directory, skip_hidden=not request.show_hidden_items)
        files = await asyncio.to_thread(self._children, directory, entries)
        return FileManagerResponse(cwd=await self._entry_for(directory), files=files)

    async def _create(self, request: FileManagerRequest) -> FileManagerResponse:
        directory = await asyncio.to_thread(self.resolver.resolve_directory, request.path)
        folder = await self.files.create_folder(directory, request.name)
        return FileManagerResponse(cwd=await self._entry_for(directory), files=[await self._entry_for(folder)])

    async def _delete(self, request: FileManagerRequest) -> FileManagerResponse:
        directory = await asyncio.to_thread(self.resolver.resolve_directory, request.path)
        names = request.selected_names()
        if not names:
            raise BadRequestError("No files specified for deletion")

        # Sequential and fail-fast: the first missing name or I/O error stops
        # the batch. Entries removed before that stay removed.
        removed: List[FileManagerEntry] = []
        for name in names:
            target = await asyncio.to_thread(self.resolver.resolve_entry, directory, name)
            if not await asyncio.to_thread(target.lexists):
                raise NotFoundError(f"File not found: {name}")
            described = await asyncio.to_thread(self._describe, target)
            await self.files.delete(target)
            removed.append(described)
        return FileManagerResponse(cwd=await self._entry_for(directory), files=removed)

    async def _rename(self, request: FileManagerRequest) -> FileManagerResponse:
        directory = await asyncio.to_thread(self.resolver.resolve_directory, request.path)
        if not request.name:
            raise BadRequestError("name must not be empty")
        renamed = await self.files.rename(directory, request.name, request.new_name)
        return FileManagerResponse(cwd=await self._entry_for(directory), files=[await self._entry_for(renamed)])

    async def _reserved(self, request: FileManagerRequest) -> FileManagerResponse:
        # Accepted for compatibility with the widget; nothing is changed.
        directory = await asyncio.to_thread(self.resolver.resolve_directory, request.path)
        return FileManagerResponse(cwd=await self._entry_for(directory), files=[])
