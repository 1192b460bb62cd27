"""
Collapses concurrent identical fetches into one in-flight task.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

log = logging.getLogger(__name__)


class SingleFlight:
    """
    Callers asking for the same key while a fetch is running share its result
    (or its exception) instead of starting a second fetch.
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Future] = {}

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        future = self._inflight.get(key)
        if future is not None:
            log.debug(f"Joining in-flight request for {key!r}")
            return await asyncio.shield(future)

        future = asyncio.ensure_future(factory())
        self._inflight[key] = future
        future.add_done_callback(lambda _: self._inflight.pop(key, None))
        return await asyncio.shield(future)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._inflight
