"""Update consumer: looks up accruals and writes them back to storage"""

import asyncio
import logging

from loyalty_gateway.accrual.cooldown import Cooldown
from loyalty_gateway.accrual.error_sink import ErrorSink
from loyalty_gateway.accrual.queue import OrderQueue
from loyalty_gateway.domain.accrual import apply_scoring_result
from loyalty_gateway.domain.exceptions import AccrualServiceError, RateLimitedError, UnknownOrderError
from loyalty_gateway.domain.models import Order
from loyalty_gateway.domain.storage import LedgerStorage
from loyalty_gateway.infrastructure.clients.accrual import AccrualClient
from loyalty_gateway.infrastructure.observability.logging import log_order_update
from loyalty_gateway.infrastructure.observability.metrics import accrual_request_counter, order_update_counter


class UpdateConsumer:
    """
    Takes one order at a time from the queue and reconciles it.

    Only a definitive answer (PROCESSING, INVALID, PROCESSED) is written, as
    one status+accrual update. 204 and 429 leave the order untouched for the
    next discovery cycle; 429 also starts the shared cooldown. Other failures
    go to the error sink.
    """

    def __init__(
        self,
        name: str,
        queue: OrderQueue,
        client: AccrualClient,
        storage: LedgerStorage,
        cooldown: Cooldown,
        errors: ErrorSink,
        logger: logging.Logger,
    ):
        self.name = name
        self.queue = queue
        self.client = client
        self.storage = storage
        self.cooldown = cooldown
        self.errors = errors
        self.logger = logger
        self.processed = 0

    async def run(self) -> None:
        self.logger.info("Accrual consumer started", extra={"consumer": self.name})
        try:
            while True:
                order = await self.queue.get()
                settled = False
                try:
                    settled = await self.process(order)
                except Exception as e:  # one bad order must not stop the consumer
                    self.errors.report(e, source="consumer", order=order.number)
                finally:
                    self.queue.done(order, settled=settled)
                    self.processed += 1
        finally:
            self.logger.info("Accrual consumer stopped", extra={"consumer": self.name, "processed": self.processed})

    async def process(self, order: Order) -> bool:
        """Reconcile one order; returns True when it was written in a terminal status"""
        await self.cooldown.wait()

        try:
            result = await self.client.get_order_accrual(order.number)
        except RateLimitedError as e:
            accrual_request_counter.labels(outcome="rate_limited").inc()
            self.cooldown.trigger(e.retry_after)
            return False
        except UnknownOrderError:
            accrual_request_counter.labels(outcome="unknown").inc()
            self.logger.debug("Order unknown to accrual service", extra={"order": order.number})
            return False
        except AccrualServiceError as e:
            accrual_request_counter.labels(outcome="error").inc()
            self.errors.report(e, source="consumer", order=order.number)
            return False

        accrual_request_counter.labels(outcome=result.status.value.lower()).inc()

        try:
            updated = apply_scoring_result(order, result)
        except AccrualServiceError as e:
            self.errors.report(e, source="consumer", order=order.number)
            return False

        return await self._store(updated)

    async def _store(self, order: Order) -> bool:
        try:
            # Shielded: a write already handed to the pool finishes as one statement
            await asyncio.shield(asyncio.to_thread(self.storage.update_order, order))
        except Exception as e:  # StorageError or a broken backend; next cycle retries
            self.errors.report(e, source="consumer", order=order.number)
            return False

        order_update_counter.labels(status=order.status.value).inc()
        log_order_update(self.logger, order.number, order.status.value, order.accrual_cents)
        return order.status.is_terminal
