"""Accrual service HTTP client for order reward lookups"""

import asyncio
import httpx
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from loyalty_gateway.domain.models import ScoringResult
from loyalty_gateway.domain.accrual import parse_scoring_result
from loyalty_gateway.domain.exceptions import AccrualServiceError, RateLimitedError, UnknownOrderError
from loyalty_gateway.config import settings
from loyalty_gateway.infrastructure.observability.metrics import accrual_latency_histogram


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """
    Parse a Retry-After header: delta-seconds ("60") or an HTTP-date.

    Returns None when the header is missing or unparseable.
    """
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max((when - now).total_seconds(), 0.0)


class AccrualClient:
    """Client for the external accrual (scoring) service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.accrual_system_address).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def get_order_accrual(self, number: str) -> ScoringResult:
        """
        Look up one order: GET {base}/api/orders/{number}.

        The whole call, connect to body, is bounded by the client timeout;
        cancelling the calling task aborts it.

        Raises:
            UnknownOrderError: 204, order not registered yet
            RateLimitedError: 429, carries the Retry-After hint if any
            AccrualServiceError: On timeout, network errors, 5xx or invalid response
        """
        try:
            with accrual_latency_histogram.time():
                return await asyncio.wait_for(self._fetch(number), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise AccrualServiceError(f"Accrual service timeout after {self.timeout}s") from e

    async def _fetch(self, number: str) -> ScoringResult:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(f"{self.base_url}/api/orders/{number}")

                if response.status_code == 204:
                    raise UnknownOrderError(f"Order {number} is not registered in accrual service")

                if response.status_code == 429:
                    raise RateLimitedError(
                        "Accrual service rate limit exceeded",
                        retry_after=parse_retry_after(response.headers.get("Retry-After")),
                    )

                response.raise_for_status()
                if response.status_code != 200:
                    raise AccrualServiceError(f"Unexpected accrual response: {response.status_code}")

                return parse_scoring_result(response.json())

            except httpx.TimeoutException as e:
                raise AccrualServiceError(f"Accrual service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise AccrualServiceError(f"Accrual service error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise AccrualServiceError(f"Accrual service unreachable: {e}") from e
            except ValueError as e:
                # Body is not JSON
                raise AccrualServiceError(f"Invalid accrual response body: {e}") from e
