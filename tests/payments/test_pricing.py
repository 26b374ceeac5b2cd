"""Pricing tiers and purchase validation."""
import pytest

from paygate.core.config import settings
from paygate.core.errors import ValidationError
from paygate.devices.catalog import DeviceDirectory
from paygate.services.payments.pricing import price_for, resolve_minutes, unlock_price

directory = DeviceDirectory()
LOCK = directory.lookup("X402-LOCK-001")
COFFEE = directory.lookup("X402-COFFEE-001")


@pytest.mark.parametrize(
    "minutes, price",
    [(1, "0.10"), (15, "0.10"), (16, "0.20"), (30, "0.20"), (60, "0.30"), (61, "1.00"), (1440, "1.00")],
)
def test_unlock_tiers(minutes, price):
    assert unlock_price(minutes) == price


def test_lock_uses_tiers_and_brewer_uses_catalog_price():
    assert price_for(LOCK, 15) == "0.10"
    assert price_for(COFFEE, 0) == "0.50"


def test_resolve_minutes_defaults_for_timed_device():
    assert resolve_minutes(LOCK, None) == settings.default_unlock_minutes
    assert resolve_minutes(LOCK, 45) == 45


def test_resolve_minutes_is_zero_for_single_action_device():
    assert resolve_minutes(COFFEE, 90) == 0


@pytest.mark.parametrize("minutes", [0, -5, True, settings.max_unlock_minutes + 1])
def test_resolve_minutes_rejects(minutes):
    with pytest.raises(ValidationError):
        resolve_minutes(LOCK, minutes)
