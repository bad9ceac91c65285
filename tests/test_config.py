import pytest
from pydantic import ValidationError

from table_orders.core.config import EnvironmentMode, Settings
from table_orders.core.exceptions import (
    Conflict,
    InsufficientStock,
    InvalidInput,
    NotFound,
    ReferenceNotFound,
)
from table_orders.services.dates import parse_business_date


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "PRODUCTION")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///orders.db")

    settings = Settings(_env_file=None)

    assert settings.env_mode == EnvironmentMode.PRODUCTION
    assert settings.is_production
    assert settings.uses_sqlite
    assert settings.validate_production_config() == [
        "DATABASE_URL points to SQLite (no row locking)"
    ]


def test_only_consumed_keys_are_settings(monkeypatch):
    monkeypatch.setenv("BUSINESS_TIMEZONE", "Europe/Rome")
    monkeypatch.setenv("KITCHEN_MAX_ORDERS", "3")

    settings = Settings(_env_file=None)

    assert "business_timezone" not in Settings.model_fields
    assert "kitchen_max_orders" not in Settings.model_fields
    assert not hasattr(settings, "business_timezone")


def test_invalid_env_mode_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, env_mode="qa")


def test_development_has_no_config_problems():
    settings = Settings(
        _env_file=None,
        env_mode="development",
        debug=True,
        database_url="sqlite+aiosqlite:///orders.db",
    )
    assert settings.is_development
    assert settings.uses_sqlite
    assert settings.validate_production_config() == []


def test_error_bodies_carry_kind_and_status():
    assert NotFound("Order 3 not found").to_dict() == {
        "success": False,
        "error": "NotFound",
        "detail": "Order 3 not found",
    }
    assert ReferenceNotFound("Table 9 not found").status_code == 400
    assert Conflict("busy").status_code == 409

    error = InsufficientStock(product_id=1, product_name="Wine", requested=3, available=1)
    assert error.status_code == 400
    assert error.message == "Insufficient stock for product Wine: requested 3, available 1"


@pytest.mark.parametrize("value", ["2024-03-10", " 2024-03-10 "])
def test_parse_business_date(value):
    assert parse_business_date(value).isoformat() == "2024-03-10"


@pytest.mark.parametrize("value", ["", "2024-02-30", "20240310", "2024-03-10T10:00:00"])
def test_parse_business_date_rejects(value):
    with pytest.raises(InvalidInput):
        parse_business_date(value)
