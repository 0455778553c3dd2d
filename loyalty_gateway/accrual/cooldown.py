"""Retry scheduling and the shared rate-limit cooldown"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from loyalty_gateway.infrastructure.observability.metrics import accrual_cooldown_counter


@dataclass
class RetryPolicy:
    """
    When the pipeline polls again.

    - interval: pause between discovery cycles
    - default_cooldown: pause after a 429 without a usable Retry-After
    - max_cooldown: upper bound for any cooldown, hinted or not

    clock and sleep are injectable so tests run without wall-clock delays.
    """

    interval: float = 2.0
    default_cooldown: float = 10.0
    max_cooldown: float = 60.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def cooldown_for(self, retry_after: Optional[float]) -> float:
        """Honour the service's hint when present, otherwise fall back to the default"""
        if retry_after is None or retry_after < 0:
            seconds = self.default_cooldown
        else:
            seconds = retry_after
        return min(seconds, self.max_cooldown)


class Cooldown:
    """
    Shared deadline before which no new accrual lookups are issued.

    The producer and every consumer hold the same instance. Triggers only
    ever push the deadline later. Waiting is a plain policy sleep, so task
    cancellation interrupts it.
    """

    def __init__(self, policy: RetryPolicy, logger: Optional[logging.Logger] = None):
        self.policy = policy
        self.logger = logger or logging.getLogger(__name__)
        self._deadline = 0.0
        self.activations = 0

    def remaining(self) -> float:
        return max(self._deadline - self.policy.clock(), 0.0)

    @property
    def active(self) -> bool:
        return self.remaining() > 0

    def trigger(self, retry_after: Optional[float] = None) -> float:
        """Start (or extend) a cooldown; returns the pause length applied"""
        seconds = self.policy.cooldown_for(retry_after)
        deadline = self.policy.clock() + seconds
        if deadline > self._deadline:
            self._deadline = deadline
            self.activations += 1
            accrual_cooldown_counter.inc()
            self.logger.warning(
                "Accrual service rate limited, cooling down",
                extra={"cooldown_seconds": seconds, "retry_after": retry_after},
            )
        return seconds

    async def wait(self) -> bool:
        """Sleep until the deadline passes. Returns True if any pause happened."""
        paused = False
        # Loop because another trigger may extend the deadline while we sleep
        while True:
            remaining = self.remaining()
            if remaining <= 0:
                return paused
            paused = True
            await self.policy.sleep(remaining)
