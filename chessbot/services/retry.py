"""
Bounded retry for network actions (login, join, send, upload, state writes).

Delays follow the Fibonacci sequence from `base_delay` (1, 1, 2, 3 seconds by default).
After `max_attempts` failed attempts the action is given up for good: nothing is queued for later.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from chessbot.core.exceptions import DeliveryError, TransportError

logger = logging.getLogger("Retry")

T = TypeVar("T")


@dataclass
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = 1.0
    retry_on: tuple[type[BaseException], ...] = (TransportError,)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def delays(self) -> list[float]:
        """Waits between consecutive attempts."""
        delays: list[float] = []
        previous, current = 0.0, self.base_delay
        for _ in range(self.max_attempts - 1):
            delays.append(current)
            previous, current = current, previous + current
        return delays

    async def run(self, description: str, action: Callable[[], Awaitable[T]]) -> T:
        """
        Await `action()` until it succeeds or the attempts run out.

        Errors outside `retry_on` propagate immediately. Exhaustion raises DeliveryError
        chained to the last failure.
        """
        delays = self.delays()
        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            logger.info("trying: %s", description)
            try:
                result = await action()
            except self.retry_on as e:
                last_error = e
                if attempt == self.max_attempts:
                    break
                delay = delays[attempt - 1]
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                    description, attempt, self.max_attempts, delay, e,
                )
                await self.sleep(delay)
                continue
            logger.info("%s succeeded", description)
            return result

        logger.error("%s failed. Retry limit reached. Will not retry.", description)
        raise DeliveryError(
            f"{description} failed after {self.max_attempts} attempts: {last_error}"
        ) from last_error
