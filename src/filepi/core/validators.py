# src/filepi/core/validators.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import re
from typing import Optional

from .exceptions import BadRequestError

MAX_FILENAME_LENGTH = 255
_HEX_DIGEST = re.compile(r"^[0-9a-f]+$")


def validate_filename(name: Optional[str], field: str = "name") -> str:
    """Returns a single path component, rejecting separators and dot names."""
    if name is None or not name.strip():
        raise BadRequestError(f"{field} must not be empty")
    name = name.strip()
    if name in (".", ".."):
        raise BadRequestError(f"Invalid {field}: {name}")
    if "/" in name or "\\" in name or "\x00" in name:
        raise BadRequestError(f"Invalid {field}: path separators are not allowed")
    if len(name.encode("utf-8")) > MAX_FILENAME_LENGTH:
        raise BadRequestError(f"Invalid {field}: too long")
    return name


def normalize_digest(value: Optional[str]) -> Optional[str]:
    """Trims and lower-cases a client supplied hex digest; blank means absent."""
    if value is None:
        return None
    value = value.strip().lower()
    if not value:
        return None
    if not _HEX_DIGEST.match(value):
        raise BadRequestError("Invalid sha512: expected a hex digest")
    return value
