"""
Readiness polling for the client-rendered listing form.

The marketplace form updates asynchronously and exposes no "ready" event,
so the engine polls a DOM predicate with exponential backoff. When the
predicate does not hold within the timeout, a fixed settle delay is used
as the last resort.

Example:
    >>> waiter = ReadinessWaiter(timeout_ms=10000)
    >>> await waiter.wait_until(form_is_rendered, "listing form", fallback_delay_ms=2000)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from easyvinted.utils.logger import get_logger

logger = get_logger(__name__)

Predicate = Callable[[], Awaitable[bool]]
SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class ReadinessConfig:
    """
    Polling parameters.

    Attributes:
        timeout_ms: Total polling budget; 0 disables polling.
        initial_interval_ms: First pause between two checks.
        max_interval_ms: Cap on the pause between two checks.
        backoff_factor: Multiplier applied to the pause after each miss.
    """
    timeout_ms: int = 10000
    initial_interval_ms: int = 100
    max_interval_ms: int = 1000
    backoff_factor: float = 2.0


class ReadinessWaiter:
    """Poll an async predicate until it holds or the budget runs out."""

    def __init__(
        self,
        timeout_ms: int = 10000,
        config: Optional[ReadinessConfig] = None,
        sleep: Optional[SleepFunc] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or ReadinessConfig(timeout_ms=timeout_ms)
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic

    async def wait_until(
        self,
        predicate: Predicate,
        description: str,
        fallback_delay_ms: int = 0,
    ) -> bool:
        """
        Wait until ``predicate`` returns True.

        Args:
            predicate: Async callable checking the page state.
            description: What is being waited for (used in logs).
            fallback_delay_ms: Fixed delay applied when polling gives up.

        Returns:
            True if the predicate held, False if the fallback delay was used.
        """
        if self.config.timeout_ms <= 0:
            await self._fallback(description, fallback_delay_ms)
            return False

        deadline = self._clock() + self.config.timeout_ms / 1000
        interval = self.config.initial_interval_ms / 1000
        attempts = 0

        while True:
            attempts += 1
            try:
                if await predicate():
                    logger.debug(f"{description} ready after {attempts} check(s)")
                    return True
            except Exception as e:
                # Page still mutating; treat as not ready
                logger.debug(f"Readiness check for {description} raised: {e}")

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(interval, remaining))
            interval = min(interval * self.config.backoff_factor, self.config.max_interval_ms / 1000)

        logger.warning(
            f"{description} not ready after {self.config.timeout_ms}ms "
            f"({attempts} checks), falling back to {fallback_delay_ms}ms delay"
        )
        await self._fallback(description, fallback_delay_ms)
        return False

    async def _fallback(self, description: str, fallback_delay_ms: int) -> None:
        if fallback_delay_ms > 0:
            logger.debug(f"Waiting {fallback_delay_ms}ms for {description}")
            await self._sleep(fallback_delay_ms / 1000)
