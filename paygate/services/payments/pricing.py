"""
Pricing table: (device, minutes | action) -> human token amount.
Timed devices (locks) sell unlock windows by tier; brewers sell single brews at catalog price.
"""
from paygate.core.config import settings
from paygate.core.errors import ValidationError
from paygate.devices.catalog import DeviceInfo

# (max minutes inclusive, price)
UNLOCK_PRICE_TIERS: tuple[tuple[int, str], ...] = (
    (15, "0.10"),
    (30, "0.20"),
    (60, "0.30"),
)
LONG_UNLOCK_PRICE = "1.00"  # anything longer, up to max_unlock_minutes (24h)


def resolve_minutes(device: DeviceInfo, minutes: int | None) -> int:
    """Purchased unlock minutes for timed devices; 0 for single-action devices."""
    if not device.is_timed:
        return 0
    if minutes is None:
        return settings.default_unlock_minutes
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
        raise ValidationError("minutes must be a positive integer")
    if minutes > settings.max_unlock_minutes:
        raise ValidationError(f"minutes must be at most {settings.max_unlock_minutes}")
    return minutes


def unlock_price(minutes: int) -> str:
    for limit, price in UNLOCK_PRICE_TIERS:
        if minutes <= limit:
            return price
    return LONG_UNLOCK_PRICE


def price_for(device: DeviceInfo, minutes: int) -> str:
    if device.is_timed:
        return unlock_price(minutes)
    if device.brew_price is None:
        raise ValidationError(f"Device {device.device_id} has no price")
    return device.brew_price
