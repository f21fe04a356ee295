# src/filepi/core/atomic.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import asyncio
import logging
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles

log = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644
STAGING_SUFFIX = ".part"


def staging_path(target: Path) -> Path:
    """Creates an empty hidden temp file next to ``target`` and returns it."""
    fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=STAGING_SUFFIX)
    os.close(fd)
    return Path(tmp_name)


def is_staging_name(name: str) -> bool:
    """True for the temp files ``atomic_write`` leaves while a write is running."""
    return name.startswith(".") and name.endswith(STAGING_SUFFIX)


def _commit(tmp_path: Path, target: Path):
    # mkstemp creates 0600 files; give the result ordinary permissions.
    if target.is_file() and not target.is_symlink():
        shutil.copymode(target, tmp_path)
    else:
        os.chmod(tmp_path, DEFAULT_FILE_MODE)
    os.replace(tmp_path, target)


@asynccontextmanager
async def atomic_write(target: Path):
    """
    Yields an aiofiles handle on a temp file in the target's directory. On a
    clean exit the data is fsynced and renamed over ``target``; on any error
    the temp file is removed and ``target`` is left untouched.
    """
    tmp_path = await asyncio.to_thread(staging_path, target)
    try:
        async with aiofiles.open(tmp_path, "wb") as f:
            yield f
            await f.flush()
            await asyncio.to_thread(os.fsync, f.fileno())
        await asyncio.to_thread(_commit, tmp_path, target)
    except BaseException:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as e:
            log.warning(f"Could not remove staging file {tmp_path}: {e}")
        raise
