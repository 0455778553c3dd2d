"""Unit tests for application settings"""

import pytest
from pydantic import ValidationError
from loyalty_gateway.config import Settings


def test_bare_accrual_address_gets_scheme():
    settings = Settings(accrual_system_address="localhost:8088/")
    assert settings.accrual_system_address == "http://localhost:8088"


def test_database_uri_alias(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DATABASE_URI", "sqlite:///./alias.db")

    assert Settings().database_url == "sqlite:///./alias.db"


@pytest.mark.parametrize(
    "field",
    [
        "accrual_poll_interval_seconds",
        "accrual_default_cooldown_seconds",
        "accrual_max_cooldown_seconds",
        "shutdown_timeout_seconds",
        "http_timeout_seconds",
        "token_expiration_seconds",
    ],
)
@pytest.mark.parametrize("value", [0, -1])
def test_durations_must_be_positive(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})
