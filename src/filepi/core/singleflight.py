# src/filepi/core/singleflight.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight:
    """
    Coalesces concurrent calls per key: the first caller starts the work,
    later callers for the same key await that same task.

    Waiters are shielded from each other, so a caller that goes away
    (client disconnect) does not cancel the work for the others. The key is
    released as soon as the task settles, successfully or not.
    """

    def __init__(self):
        self._inflight: Dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            log.debug(f"Joining in-flight work for {key}")
        return await asyncio.shield(task)

    def _release(self, key: Hashable, task: asyncio.Task):
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the result as retrieved when every waiter has gone away.
        if not task.cancelled():
            task.exception()
