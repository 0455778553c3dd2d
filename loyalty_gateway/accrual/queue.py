"""Bounded work queue between discovery and the accrual consumers"""

import asyncio
from typing import Iterable, Set

from loyalty_gateway.domain.models import Order
from loyalty_gateway.infrastructure.observability.metrics import order_queue_gauge


class OrderQueue:
    """
    Fixed-capacity queue of orders awaiting an accrual lookup.

    put() suspends while the queue is full, which throttles discovery to
    the consumers' throughput. An order number is held at most once from
    put() until the consumer calls done(), and numbers settled into a
    terminal status are ignored until a fresh listing no longer reports them.
    """

    def __init__(self, capacity: int = 5):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._pending: Set[str] = set()
        self._settled: Set[str] = set()

    @property
    def capacity(self) -> int:
        return self._queue.maxsize

    def qsize(self) -> int:
        return self._queue.qsize()

    def is_pending(self, number: str) -> bool:
        return number in self._pending

    def refresh(self, listed: Iterable[str]) -> None:
        """Forget settled numbers that storage no longer lists as unprocessed"""
        self._settled &= set(listed)

    async def put(self, order: Order) -> bool:
        """Enqueue an order; returns False if it is already queued, in flight or settled"""
        if order.number in self._pending or order.number in self._settled:
            return False
        self._pending.add(order.number)
        try:
            await self._queue.put(order)
        except BaseException:
            self._pending.discard(order.number)
            raise
        order_queue_gauge.set(self._queue.qsize())
        return True

    async def get(self) -> Order:
        order = await self._queue.get()
        order_queue_gauge.set(self._queue.qsize())
        return order

    def done(self, order: Order, settled: bool = False) -> None:
        """Release an order taken with get(); settled marks it terminal"""
        if settled:
            self._settled.add(order.number)
        self._pending.discard(order.number)
        self._queue.task_done()
