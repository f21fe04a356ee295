# src/filepi/services/path_resolver.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Optional

from ..core.context import RootContext
from ..core.exceptions import BadRequestError, NotFoundError, PathEscapeError
from ..core.validators import validate_filename

log = logging.getLogger(__name__)

_RESOLVER_TOKEN = object()


class ResolvedPath:
    """
    An absolute path proven to lie inside the root (or, for a target that
    does not exist yet, whose parent does). Entries from ``resolve_entry``
    keep a symlink at their last component unresolved; the directory holding
    it is canonical. Only PathResolver creates these.
    """

    __slots__ = ("_path", "_root")

    def __init__(self, path: Path, root: Path, _token: object = None):
        if _token is not _RESOLVER_TOKEN:
            raise TypeError("ResolvedPath can only be created by PathResolver")
        self._path = path
        self._root = root

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def is_root(self) -> bool:
        return self._path == self._root

    @property
    def relative(self) -> str:
        """Posix-style path relative to the root; '' for the root itself."""
        if self.is_root:
            return ""
        return self._path.relative_to(self._root).as_posix()

    def exists(self) -> bool:
        return self._path.exists()

    def is_dir(self) -> bool:
        return self._path.is_dir()

    def is_file(self) -> bool:
        return self._path.is_file()

    def is_link(self) -> bool:
        return self._path.is_symlink()

    def lexists(self) -> bool:
        return os.path.lexists(self._path)

    def __fspath__(self) -> str:
        return os.fspath(self._path)

    def __eq__(self, other) -> bool:
        return isinstance(other, ResolvedPath) and other._path == self._path

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"ResolvedPath({str(self._path)!r})"


class PathResolver:
    """Resolves caller supplied relative paths against the root and proves containment."""

    def __init__(self, context: RootContext):
        self.context = context

    @property
    def root(self) -> Path:
        return self.context.root

    def _contains(self, candidate: Path) -> bool:
        return candidate == self.root or candidate.is_relative_to(self.root)

    def _check(self, relative: str, candidate: Path):
        if not self._contains(candidate):
            log.warning(f"Containment violation: '{relative}' -> {candidate}")
            raise PathEscapeError(relative, str(candidate))

    def resolve(self, relative: Optional[str]) -> ResolvedPath:
        """
        Joins ``relative`` onto the root. Existing targets are canonicalized
        and must stay inside the root; for a missing target the parent is
        canonicalized and checked instead, and must exist.
        """
        relative = (relative or "").strip()
        if "\x00" in relative:
            raise BadRequestError(f"Invalid path: {relative!r}", public_message="Invalid path")
        stripped = relative.lstrip("/\\")
        if not stripped:
            return ResolvedPath(self.root, self.root, _RESOLVER_TOKEN)

        joined = self.root / stripped
        # '..' segments that climb above the root are rejected before any I/O.
        self._check(relative, Path(os.path.normpath(joined)))
        try:
            exists = joined.exists()
            dangling = not exists and joined.is_symlink()
        except OSError as e:
            log.debug(f"Cannot stat {joined}: {e}")
            raise NotFoundError(f"Path not found: {relative}")

        if exists or dangling:
            # A dangling link is checked by where it points, since writing
            # through it would create its target.
            try:
                canonical = joined.resolve(strict=exists)
            except (OSError, RuntimeError) as e:
                log.debug(f"Failed to canonicalize {joined}: {e}")
                raise NotFoundError(f"Path not found: {relative}")
            self._check(relative, canonical)
            return ResolvedPath(canonical, self.root, _RESOLVER_TOKEN)

        # Creation case: the target is missing, its parent must exist.
        name = PurePosixPath(stripped.replace("\\", "/")).name
        if name in ("", ".", ".."):
            raise NotFoundError(f"Path not found: {relative}")
        parent = joined.parent
        try:
            canonical_parent = parent.resolve(strict=True)
        except (OSError, RuntimeError):
            raise NotFoundError(f"Path not found: {relative}")
        self._check(relative, canonical_parent)
        if not canonical_parent.is_dir():
            raise NotFoundError(f"Path not found: {relative}")
        return ResolvedPath(canonical_parent / joined.name, self.root, _RESOLVER_TOKEN)

    def resolve_child(self, directory: ResolvedPath, name: str) -> ResolvedPath:
        """Resolves a single entry name inside an already resolved directory."""
        name = validate_filename(name)
        base = directory.relative
        return self.resolve(f"{base}/{name}" if base else name)

    def resolve_entry(self, directory: ResolvedPath, name: str) -> ResolvedPath:
        """
        The entry called ``name`` inside ``directory``, as named: a symlink at
        that name stays the link, it is not followed. Use this for operations
        on the entry itself (delete, rename, replace); ``resolve_child`` for
        reading through it.
        """
        name = validate_filename(name)
        if not directory.is_dir():
            raise BadRequestError("Path is not a directory")
        # ``directory`` is canonical and inside the root, and ``name`` is a
        # single component, so the joined path cannot leave the root.
        return ResolvedPath(directory.path / name, self.root, _RESOLVER_TOKEN)

    def resolve_directory(self, relative: Optional[str]) -> ResolvedPath:
        """Resolves an existing directory; files and missing paths are rejected."""
        resolved = self.resolve(relative)
        if not resolved.exists():
            raise NotFoundError(f"Path not found: {relative or '/'}")
        if not resolved.is_dir():
            raise BadRequestError("Path is not a directory")
        return resolved

    def resolve_file(self, relative: Optional[str]) -> ResolvedPath:
        """Resolves an existing regular file."""
        resolved = self.resolve(relative)
        if not resolved.exists():
            raise NotFoundError("File not found")
        if resolved.is_dir():
            raise BadRequestError("Path is a directory")
        return resolved
