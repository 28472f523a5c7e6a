"""
Throttle between two publications.

Posting listings back to back looks automated to the marketplace, so the
job processor pauses between jobs. An optional random jitter avoids a
perfectly regular rhythm.

Example:
    >>> throttle = PublicationThrottle(delay_ms=60000, jitter_ms=15000)
    >>> await throttle.wait()  # Waits 60-75 seconds
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Optional

from easyvinted.utils.logger import get_logger

logger = get_logger(__name__)


class PublicationThrottle:
    """
    Fixed delay with optional random jitter.

    Attributes:
        delay_ms: Base pause in milliseconds.
        jitter_ms: Upper bound of the random extra pause.
    """

    def __init__(
        self,
        delay_ms: int = 60000,
        jitter_ms: int = 0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        if delay_ms < 0 or jitter_ms < 0:
            raise ValueError("Throttle delays cannot be negative")
        self.delay_ms = delay_ms
        self.jitter_ms = jitter_ms
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def from_config(cls, config) -> "PublicationThrottle":
        """Create a throttle from a PublisherConfig."""
        return cls(delay_ms=config.delay_between_posts_ms, jitter_ms=config.delay_jitter_ms)

    def _get_delay(self) -> float:
        """Delay in seconds for the next pause."""
        extra = random.uniform(0, self.jitter_ms) if self.jitter_ms else 0.0
        return (self.delay_ms + extra) / 1000

    async def wait(self) -> float:
        """
        Pause before the next publication.

        Returns:
            The delay in seconds.
        """
        delay = self._get_delay()
        if delay <= 0:
            return 0.0
        logger.info(f"Waiting {delay:.1f}s before next publication...")
        await self._sleep(delay)
        return delay
