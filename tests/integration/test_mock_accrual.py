"""Accrual client against the mock accrual server, served in-process over ASGI"""

import importlib.util
import time
from pathlib import Path

import httpx
import pytest

from loyalty_gateway.domain.exceptions import AccrualServiceError, RateLimitedError, UnknownOrderError
from loyalty_gateway.domain.models import AccrualStatus
from loyalty_gateway.infrastructure.clients.accrual import AccrualClient

MOCK_SERVER = Path(__file__).resolve().parents[2] / "mock" / "accrual_server" / "main.py"

_spec = importlib.util.spec_from_file_location("mock_accrual_server", MOCK_SERVER)
mock_server = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(mock_server)

pytestmark = pytest.mark.integration


@pytest.fixture
def accrual_client(monkeypatch) -> AccrualClient:
    monkeypatch.setattr(mock_server, "_window", {"started": time.monotonic(), "count": 0})
    return AccrualClient("http://accrual.test", timeout=5.0, transport=httpx.ASGITransport(app=mock_server.app))


async def test_processed_order(accrual_client):
    result = await accrual_client.get_order_accrual("49927398716")

    assert result.status == AccrualStatus.PROCESSED
    assert result.accrual_cents == 72998


async def test_registered_order(accrual_client):
    result = await accrual_client.get_order_accrual("2377225624")

    assert result.status == AccrualStatus.REGISTERED
    assert result.accrual_cents is None


async def test_unregistered_order(accrual_client):
    with pytest.raises(UnknownOrderError):
        await accrual_client.get_order_accrual("12345678911")


async def test_rate_limit_after_quota(accrual_client, monkeypatch):
    monkeypatch.setattr(mock_server, "RATE_LIMIT", 2)

    await accrual_client.get_order_accrual("79927398713")
    await accrual_client.get_order_accrual("79927398713")
    with pytest.raises(RateLimitedError) as exc_info:
        await accrual_client.get_order_accrual("79927398713")

    assert 0 < exc_info.value.retry_after <= 61
    assert isinstance(exc_info.value, AccrualServiceError)
