"""Accrual watcher: wires and runs the reconciliation pipeline"""

import asyncio
import contextlib
import logging
from typing import List, Optional

from loyalty_gateway.accrual.consumer import UpdateConsumer
from loyalty_gateway.accrual.cooldown import Cooldown, RetryPolicy
from loyalty_gateway.accrual.error_sink import ErrorSink
from loyalty_gateway.accrual.producer import DiscoveryProducer
from loyalty_gateway.accrual.queue import OrderQueue
from loyalty_gateway.config import Settings
from loyalty_gateway.domain.storage import LedgerStorage
from loyalty_gateway.infrastructure.clients.accrual import AccrualClient


class AccrualWatcher:
    """
    One discovery producer, N update consumers and one error sink.

    start() spawns the tasks on the running loop; stop() cancels producer
    and consumers, waits up to shutdown_timeout for them, then stops the
    error sink and logs what it still holds.
    """

    def __init__(
        self,
        storage: LedgerStorage,
        client: AccrualClient,
        policy: RetryPolicy,
        logger: logging.Logger,
        workers: int = 1,
        queue_capacity: int = 5,
        error_capacity: int = 100,
        shutdown_timeout: float = 5.0,
    ):
        self.logger = logger
        self.shutdown_timeout = shutdown_timeout
        self.queue = OrderQueue(queue_capacity)
        self.cooldown = Cooldown(policy, logger)
        self.errors = ErrorSink(logger.getChild("errors"), error_capacity)
        self.producer = DiscoveryProducer(storage, self.queue, self.cooldown, policy, self.errors, logger)
        self.consumers = [
            UpdateConsumer(f"accrual-consumer-{i}", self.queue, client, storage, self.cooldown, self.errors, logger)
            for i in range(workers)
        ]
        self._tasks: List[asyncio.Task] = []
        self._sink_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return
        self._sink_task = asyncio.create_task(self.errors.run(), name="accrual-error-sink")
        self._tasks = [asyncio.create_task(self.producer.run(), name="accrual-producer")]
        self._tasks += [asyncio.create_task(c.run(), name=c.name) for c in self.consumers]
        self.logger.info("Accrual watcher started", extra={"workers": len(self.consumers)})

    async def stop(self) -> None:
        if not self._tasks:
            return

        for task in self._tasks:
            task.cancel()
        _, still_running = await asyncio.wait(self._tasks, timeout=self.shutdown_timeout)
        if still_running:
            self.logger.warning(
                "Accrual tasks did not stop in time",
                extra={"tasks": sorted(t.get_name() for t in still_running)},
            )
        self._tasks = []

        if self._sink_task:
            self._sink_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sink_task
            self._sink_task = None
        drained = self.errors.drain()
        self.logger.info(
            "Accrual watcher stopped",
            extra={"drained_errors": drained, "dropped_errors": self.errors.dropped},
        )


def build_watcher(
    settings: Settings,
    storage: LedgerStorage,
    client: Optional[AccrualClient] = None,
    policy: Optional[RetryPolicy] = None,
    logger: Optional[logging.Logger] = None,
) -> AccrualWatcher:
    """Composition root for the pipeline, driven by application settings"""
    policy = policy or RetryPolicy(
        interval=settings.accrual_poll_interval_seconds,
        default_cooldown=settings.accrual_default_cooldown_seconds,
        max_cooldown=settings.accrual_max_cooldown_seconds,
    )
    client = client or AccrualClient(settings.accrual_system_address, settings.http_timeout_seconds)
    return AccrualWatcher(
        storage=storage,
        client=client,
        policy=policy,
        logger=logger or logging.getLogger("loyalty_gateway.accrual"),
        workers=settings.accrual_workers,
        queue_capacity=settings.accrual_queue_capacity,
        error_capacity=settings.error_sink_capacity,
        shutdown_timeout=settings.shutdown_timeout_seconds,
    )
