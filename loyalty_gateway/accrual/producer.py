"""Discovery producer: feeds unprocessed orders into the work queue"""

import asyncio
import logging

from loyalty_gateway.accrual.cooldown import Cooldown, RetryPolicy
from loyalty_gateway.accrual.error_sink import ErrorSink
from loyalty_gateway.accrual.queue import OrderQueue
from loyalty_gateway.domain.storage import LedgerStorage


class DiscoveryProducer:
    """
    Periodically lists NEW and PROCESSING orders and enqueues them.

    Each cycle waits one poll interval, then any active cooldown, then
    discovers. Storage failures go to the error sink and the next cycle runs
    as usual. A full queue suspends the producer; cancellation interrupts
    any of these waits.
    """

    def __init__(
        self,
        storage: LedgerStorage,
        queue: OrderQueue,
        cooldown: Cooldown,
        policy: RetryPolicy,
        errors: ErrorSink,
        logger: logging.Logger,
    ):
        self.storage = storage
        self.queue = queue
        self.cooldown = cooldown
        self.policy = policy
        self.errors = errors
        self.logger = logger
        self.cycles = 0

    async def run(self) -> None:
        self.logger.info("Order discovery started", extra={"interval_seconds": self.policy.interval})
        try:
            while True:
                await self.policy.sleep(self.policy.interval)
                if await self.cooldown.wait():
                    self.logger.info("Cooldown elapsed, resuming discovery")
                await self.discover()
        finally:
            self.logger.info("Order discovery stopped", extra={"cycles": self.cycles})

    async def discover(self) -> int:
        """Run one discovery cycle; returns how many orders were enqueued"""
        self.cycles += 1
        try:
            orders = await asyncio.to_thread(self.storage.get_unprocessed_orders)
        except Exception as e:  # StorageError or a broken backend; next cycle retries
            self.errors.report(e, source="producer")
            return 0

        self.queue.refresh(order.number for order in orders)

        enqueued = 0
        for order in orders:
            if await self.queue.put(order):
                enqueued += 1

        if orders:
            self.logger.info(
                "Unprocessed orders found",
                extra={"count": len(orders), "enqueued": enqueued},
            )
        return enqueued
