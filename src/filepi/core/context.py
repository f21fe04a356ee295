# src/filepi/core/context.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import logging
from dataclasses import dataclass
from pathlib import Path

from . import constants
from .config import Settings
from .exceptions import ConfigurationError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RootContext:
    """Canonical root directory and its thumbnail cache, fixed for the process."""

    root: Path
    cache_dir: Path

    @classmethod
    def from_root(cls, root_dir) -> "RootContext":
        try:
            root = Path(root_dir).resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise ConfigurationError(f"Invalid root directory configuration: {root_dir} ({e})")
        if not root.is_dir():
            raise ConfigurationError(f"Root path is not a directory: {root}")
        return cls(root=root, cache_dir=root / constants.CACHE_DIRNAME)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RootContext":
        context = cls.from_root(settings.root_dir)
        log.info(f"Serving root {context.root} (cache: {context.cache_dir})")
        return context
