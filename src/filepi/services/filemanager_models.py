# src/filepi/services/filemanager_models.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

"""
Wire types of the Syncfusion File Manager widget protocol. The widget talks
camelCase JSON; requests, entries, errors and responses each get their own
model instead of one catch-all record.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.exceptions import AlreadyExistsError, BadRequestError, FilePiError
from .directory_lister import FileEntry


class _WidgetModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class FileManagerAction(str, Enum):
    READ = "read"
    CREATE = "create"
    DELETE = "delete"
    RENAME = "rename"
    SEARCH = "search"
    COPY = "copy"
    MOVE = "move"
    DETAILS = "details"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FileManagerAction":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise BadRequestError(f"Unsupported action: {value}")


class FileManagerItem(_WidgetModel):
    """An entry echoed back by the widget inside ``data`` or ``targetData``."""

    name: Optional[str] = None
    is_file: bool = False
    size: Optional[int] = None
    filter_path: Optional[str] = None
    file_type: Optional[str] = Field(None, alias="type")


class FileManagerRequest(_WidgetModel):
    action: str
    path: Optional[str] = "/"
    name: Optional[str] = None
    names: Optional[List[str]] = None
    new_name: Optional[str] = None
    show_hidden_items: bool = False
    search_string: Optional[str] = None
    case_sensitive: bool = False
    target_path: Optional[str] = None
    rename_files: Optional[List[str]] = None
    data: Optional[List[FileManagerItem]] = None
    target_data: Optional[FileManagerItem] = None

    def selected_names(self) -> List[str]:
        """Names to act on; the widget sends them in ``names`` or only in ``data``."""
        if self.names:
            return self.names
        return [item.name for item in self.data or [] if item.name]


def _iso_utc(millis: Optional[int]) -> Optional[str]:
    if millis is None:
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).isoformat()


def filter_path_for(relative_dir: str) -> str:
    """The widget's notation for a folder: '/' for the root, '/a/b/' below it."""
    relative_dir = relative_dir.strip("/")
    return f"/{relative_dir}/" if relative_dir else "/"


class FileManagerEntry(_WidgetModel):
    name: str
    size: int
    is_file: bool
    date_modified: Optional[str] = None
    date_created: Optional[str] = None
    has_child: bool = False
    file_type: str = Field("", alias="type")
    filter_path: str = ""

    @classmethod
    def from_file_entry(cls, entry: FileEntry, filter_path: str, has_child: bool = False) -> "FileManagerEntry":
        return cls(
            name=entry.name,
            size=entry.size,
            is_file=not entry.is_directory,
            date_modified=_iso_utc(entry.modified_time),
            date_created=_iso_utc(entry.created_time),
            has_child=has_child,
            file_type="" if entry.is_directory else PurePosixPath(entry.name).suffix,
            filter_path=filter_path,
        )


class ErrorDetails(_WidgetModel):
    code: str
    message: str
    file_exists: Optional[List[str]] = None

    @classmethod
    def from_exception(cls, exc: FilePiError) -> "ErrorDetails":
        return cls(
            code=str(exc.status_code),
            message=exc.public_message,
            file_exists=exc.names if isinstance(exc, AlreadyExistsError) else None,
        )


class FileManagerResponse(_WidgetModel):
    cwd: Optional[FileManagerEntry] = None
    # None on failure: a response carries either entries or an error.
    files: Optional[List[FileManagerEntry]] = Field(default_factory=list)
    error: Optional[ErrorDetails] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def failure(cls, exc: FilePiError) -> "FileManagerResponse":
        return cls(files=None, error=ErrorDetails.from_exception(exc))

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
