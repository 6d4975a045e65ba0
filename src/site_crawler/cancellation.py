"""One-shot cancellation signal shared by every fetch in a crawl."""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class CancellationSignal:
    """Broadcast-once flag backed by an asyncio.Event.

    Once tripped it stays tripped for the lifetime of the crawl.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def trip(self) -> None:
        if self._event.is_set():
            return
        logger.debug("Cancellation signal tripped")
        self._event.set()

    @property
    def tripped(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Suspend until the signal is tripped."""
        await self._event.wait()
