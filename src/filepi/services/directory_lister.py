# src/filepi/services/directory_lister.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import asyncio
import logging
import mimetypes
import os
import platform
import stat
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..core.atomic import is_staging_name
from ..core.exceptions import InternalError, OperationTimeoutError
from .path_resolver import PathResolver, ResolvedPath

try:
    import pwd
except ImportError:  # not available on Windows
    pwd = None

log = logging.getLogger(__name__)

# Extension-only MIME lookup; the platform tables miss several video containers.
_MIME = mimetypes.MimeTypes()
for _ext, _type in (
    (".mkv", "video/x-matroska"),
    (".webm", "video/webm"),
    (".m4v", "video/x-m4v"),
    (".flv", "video/x-flv"),
    (".3gp", "video/3gpp"),
    (".wmv", "video/x-ms-wmv"),
):
    _MIME.add_type(_type, _ext)

DEFAULT_MIME_TYPE = "application/octet-stream"

NamePredicate = Callable[[str], bool]


def guess_mime(name: str) -> str:
    mime, _ = _MIME.guess_type(name, strict=False)
    return mime or DEFAULT_MIME_TYPE


def wire_text(value: str) -> str:
    """Filesystem text made safe for JSON: bytes that are not UTF-8 become U+FFFD."""
    return os.fsencode(value).decode("utf-8", "replace")


def is_video_mime(mime: str) -> bool:
    return mime.startswith("video/")


def name_contains(query: str) -> NamePredicate:
    """Case-insensitive substring match on the entry name."""
    needle = query.lower()
    return lambda name: needle in name.lower()


@dataclass(frozen=True)
class FileEntry:
    """Snapshot of one entry's metadata taken at listing time."""

    name: str
    full_name: str
    size: int
    is_directory: bool
    created_time: Optional[int]
    modified_time: Optional[int]
    file_type: str
    owner: Optional[str]
    parent_dir: Optional[str]
    rel_path: Optional[str]
    # Undecoded path for further I/O; ``full_name`` is display text only.
    fs_path: Optional[Path] = field(default=None, repr=False, compare=False)

    @property
    def path(self) -> Path:
        return self.fs_path if self.fs_path is not None else Path(self.full_name)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        del data["fs_path"]
        return data


def _millis(seconds: Optional[float]) -> Optional[int]:
    if seconds is None:
        return None
    return int(seconds * 1000)


def _created_seconds(st: os.stat_result) -> Optional[float]:
    birth = getattr(st, "st_birthtime", None)
    if birth is not None:
        return birth
    if platform.system() == "Windows":
        return st.st_ctime
    return None


def _owner_of(st: os.stat_result) -> Optional[str]:
    if pwd is None:
        return None
    try:
        return pwd.getpwuid(st.st_uid).pw_name
    except KeyError:
        return str(st.st_uid)


def build_entry(path: Path, base: Path, st: Optional[os.stat_result] = None) -> FileEntry:
    """Reads the metadata of ``path``; directories report size 0 and no MIME type."""
    if st is None:
        st = path.stat()
    is_dir = stat.S_ISDIR(st.st_mode)
    try:
        rel_path = wire_text(path.relative_to(base).as_posix())
    except ValueError:
        rel_path = None
    return FileEntry(
        name=wire_text(path.name),
        full_name=wire_text(str(path)),
        size=0 if is_dir else st.st_size,
        is_directory=is_dir,
        created_time=_millis(_created_seconds(st)),
        modified_time=_millis(st.st_mtime),
        file_type="" if is_dir else guess_mime(path.name),
        owner=_owner_of(st),
        parent_dir=wire_text(str(path.parent)),
        rel_path=rel_path,
        fs_path=path,
    )


class DirectoryLister:
    """
    Enumerates entries below a resolved directory and attaches metadata.

    Listings are fail-fast: if any single entry's metadata cannot be read the
    whole call raises InternalError instead of returning a partial result.
    Symlinks that point outside the root (or nowhere) are left out.
    Order is directory-read order; sorting belongs to the paginator.
    """

    def __init__(self, resolver: PathResolver, walk_timeout: Optional[float] = None):
        self.resolver = resolver
        self.walk_timeout = walk_timeout

    def link_is_contained(self, path: Path) -> bool:
        try:
            target = path.resolve(strict=True)
        except (OSError, RuntimeError):
            log.debug(f"Skipping dangling link {path}")
            return False
        root = self.resolver.root
        if target == root or target.is_relative_to(root):
            return True
        log.debug(f"Skipping link leaving the root: {path} -> {target}")
        return False

    def _entry(self, path: Path, base: Path) -> FileEntry:
        try:
            return build_entry(path, base)
        except OSError as e:
            log.error(f"Error reading metadata for {path}: {e}")
            raise InternalError(f"Failed to read file info: {e}", public_message="Failed to read file info")

    def _check_deadline(self, deadline: Optional[float], directory: ResolvedPath):
        if deadline is not None and time.monotonic() > deadline:
            log.warning(f"Directory walk of {directory.path} exceeded {self.walk_timeout}s")
            raise OperationTimeoutError(
                f"Directory walk exceeded {self.walk_timeout} seconds",
                public_message="Listing took too long, narrow the search path",
            )

    def list(
        self,
        directory: ResolvedPath,
        recursive: bool = False,
        skip_hidden: bool = False,
        mime_filter: Optional[Callable[[str], bool]] = None,
        name_filter: Optional[NamePredicate] = None,
        base: Optional[ResolvedPath] = None,
    ) -> List[FileEntry]:
        """
        Flat mode returns the immediate children (files and folders).
        Recursive mode walks the whole subtree and returns files only.
        ``skip_hidden`` tests each entry's own name, so a visible file below
        a hidden directory is still part of a recursive listing. Upload
        staging files are never listed.
        """
        base_path = (base or directory).path
        if recursive:
            return self._walk(directory, skip_hidden, mime_filter, name_filter, base_path)
        return self._scan(directory, skip_hidden, mime_filter, name_filter, base_path)

    def _accept(self, name: str, is_dir: bool, skip_hidden: bool, mime_filter, name_filter) -> bool:
        if not is_dir and is_staging_name(name):
            return False
        if skip_hidden and name.startswith("."):
            return False
        if name_filter is not None and not name_filter(name):
            return False
        if mime_filter is not None and not mime_filter("" if is_dir else guess_mime(name)):
            return False
        return True

    def _scan(self, directory, skip_hidden, mime_filter, name_filter, base_path) -> List[FileEntry]:
        entries: List[FileEntry] = []
        try:
            with os.scandir(directory.path) as it:
                for item in it:
                    if item.is_symlink() and not self.link_is_contained(Path(item.path)):
                        continue
                    try:
                        is_dir = item.is_dir()
                    except OSError as e:
                        raise InternalError(f"Failed to read entry: {e}", public_message="Failed to read entry")
                    if not self._accept(item.name, is_dir, skip_hidden, mime_filter, name_filter):
                        continue
                    entries.append(self._entry(Path(item.path), base_path))
        except OSError as e:
            log.error(f"Error reading directory {directory.path}: {e}")
            raise InternalError(f"Failed to read directory: {e}", public_message="Failed to read directory")
        return entries

    def _walk(self, directory, skip_hidden, mime_filter, name_filter, base_path) -> List[FileEntry]:
        deadline = time.monotonic() + self.walk_timeout if self.walk_timeout else None

        def _raise(error: OSError):
            raise error

        entries: List[FileEntry] = []
        try:
            for current, _dirnames, filenames in os.walk(directory.path, onerror=_raise):
                self._check_deadline(deadline, directory)
                for name in filenames:
                    self._check_deadline(deadline, directory)
                    path = Path(current) / name
                    if path.is_symlink() and not self.link_is_contained(path):
                        continue
                    if not self._accept(name, False, skip_hidden, mime_filter, name_filter):
                        continue
                    entry = self._entry(path, base_path)
                    if not entry.is_directory:
                        entries.append(entry)
        except OSError as e:
            log.error(f"Error walking directory {directory.path}: {e}")
            raise InternalError(f"Failed to traverse directory: {e}", public_message="Failed to traverse directory")
        return entries

    async def list_async(self, directory: ResolvedPath, **kwargs) -> List[FileEntry]:
        """Runs ``list`` in a worker thread so walks never block the event loop."""
        return await asyncio.to_thread(self.list, directory, **kwargs)
