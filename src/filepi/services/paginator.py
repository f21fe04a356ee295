# src/filepi/services/paginator.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core import constants
from ..core.exceptions import BadRequestError
from .directory_lister import FileEntry


class SortField(str, Enum):
    NAME = "name"
    SIZE = "size"
    MODIFIED_TIME = "modified_time"
    CREATED_TIME = "created_time"
    FILE_TYPE = "file_type"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SortField"]:
        if value is None or value == "":
            return None
        try:
            return cls(value)
        except ValueError:
            raise BadRequestError(f"Invalid sort field: {value}")


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortOrder":
        # Anything other than "desc" sorts ascending.
        return cls.DESC if value == cls.DESC.value else cls.ASC


@dataclass(frozen=True)
class ListingQuery:
    path: str = ""
    skip_hidden: bool = False
    sort_field: Optional[SortField] = None
    order: SortOrder = SortOrder.ASC
    skip: int = constants.DEFAULT_SKIP
    limit: int = constants.DEFAULT_LIMIT
    query: Optional[str] = None


@dataclass(frozen=True)
class ListingResult:
    files: List[FileEntry]
    total_files: int
    skip: int
    limit: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [entry.to_dict() for entry in self.files],
            "total_files": self.total_files,
            "skip": self.skip,
            "limit": self.limit,
        }


def _optional_key(value):
    # Missing timestamps order before present ones, like an unset Option.
    return (value is not None, value if value is not None else 0)


_FIELD_KEYS: Dict[SortField, Callable[[FileEntry], Any]] = {
    SortField.NAME: lambda e: e.name,
    SortField.SIZE: lambda e: e.size,
    SortField.MODIFIED_TIME: lambda e: _optional_key(e.modified_time),
    SortField.CREATED_TIME: lambda e: _optional_key(e.created_time),
    SortField.FILE_TYPE: lambda e: e.file_type,
}


def sort_entries(
    entries: Sequence[FileEntry],
    sort_field: Optional[SortField] = None,
    order: SortOrder = SortOrder.ASC,
) -> List[FileEntry]:
    """
    Directories always precede files. Within each group the requested field
    and direction apply; with no field, names ascend. Names compare by code
    point, which for UTF-8 text is the same as byte-wise ("B" < "a").
    """
    if sort_field is None:
        sort_field, order = SortField.NAME, SortOrder.ASC
    ordered = sorted(entries, key=_FIELD_KEYS[sort_field], reverse=order is SortOrder.DESC)
    # Stable, so the field ordering survives inside each group.
    return sorted(ordered, key=lambda e: not e.is_directory)


def arrange(entries: Sequence[FileEntry], query: ListingQuery) -> ListingResult:
    """Sorts then slices; ``total_files`` counts everything before the slice."""
    if query.skip < 0 or query.limit < 0:
        raise BadRequestError("skip and limit must not be negative")
    ordered = sort_entries(entries, query.sort_field, query.order)
    return ListingResult(
        files=ordered[query.skip:query.skip + query.limit],
        total_files=len(ordered),
        skip=query.skip,
        limit=query.limit,
    )
