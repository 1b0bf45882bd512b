"""Fixed-point money helpers."""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from promo_engine.core.config import settings

ZERO = Decimal("0")


def to_decimal(value: Decimal | int | str | float | None) -> Decimal:
    """Coerce a stored or submitted amount to Decimal without binary float drift."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal, places: int | None = None) -> Decimal:
    """Round half-up to the currency's minor unit."""
    return to_decimal(value).quantize(minor_unit(places), rounding=ROUND_HALF_UP)


def minor_unit(places: int | None = None) -> Decimal:
    """Smallest representable amount, e.g. 0.01 for two decimal places."""
    if places is None:
        places = settings.CURRENCY_DECIMAL_PLACES
    return Decimal(1).scaleb(-places)


def floor_money(value: Decimal, places: int | None = None) -> Decimal:
    """Truncate toward zero at the currency's minor unit."""
    return to_decimal(value).quantize(minor_unit(places), rounding=ROUND_DOWN)
