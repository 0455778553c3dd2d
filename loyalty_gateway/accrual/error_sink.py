"""Non-blocking fan-in for operational errors of the accrual pipeline"""

import asyncio
import logging
from typing import Any, Dict, Tuple

from loyalty_gateway.infrastructure.observability.metrics import pipeline_error_counter, pipeline_error_dropped_counter

ErrorItem = Tuple[BaseException, str, Dict[str, Any]]


class ErrorSink:
    """
    Collects errors from the producer and consumers and logs them.

    report() never blocks: when the buffer is full the oldest error is
    dropped and counted. run() is the observer task; drain() logs whatever
    is left at shutdown.
    """

    def __init__(self, logger: logging.Logger, capacity: int = 100):
        self.logger = logger
        self._errors: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self.dropped = 0
        self.reported = 0

    def report(self, error: BaseException, source: str, **context: Any) -> None:
        pipeline_error_counter.labels(source=source).inc()
        if self._errors.full():
            try:
                self._errors.get_nowait()
            except asyncio.QueueEmpty:
                pass
            else:
                self.dropped += 1
                pipeline_error_dropped_counter.inc()
        self._errors.put_nowait((error, source, context))

    async def run(self) -> None:
        while True:
            item = await self._errors.get()
            self._log(item)

    def drain(self) -> int:
        """Log buffered errors without waiting; returns how many were logged"""
        count = 0
        while True:
            try:
                item = self._errors.get_nowait()
            except asyncio.QueueEmpty:
                return count
            self._log(item)
            count += 1

    def _log(self, item: ErrorItem) -> None:
        error, source, context = item
        self.reported += 1
        self.logger.error(
            f"Accrual pipeline error: {error}",
            extra={"source": source, "error_type": type(error).__name__, **context},
        )

    @property
    def pending(self) -> int:
        return self._errors.qsize()
