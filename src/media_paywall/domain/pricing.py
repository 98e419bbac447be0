"""Price constants and currency conversions."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from media_paywall.domain.catalog import ItemType

MINIMUM_PRICE_MINOR_UNITS = 50

DEFAULT_ITEM_PRICES: dict[ItemType, int] = {
    ItemType.PHOTO: 499,
    ItemType.VIDEO: 999,
}

DEFAULT_PACKAGE_PRICES: dict[ItemType, int] = {
    ItemType.PHOTO: 1999,
    ItemType.VIDEO: 3999,
}

_CENT = Decimal("0.01")


def to_minor_units(amount: Decimal | int | float | str) -> int:
    """Convert a major-unit amount (dollars) to integer minor units (cents)."""
    value = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return int(value * 100)


def to_major_units(minor_units: int) -> Decimal:
    """Convert integer minor units to a two-place decimal amount."""
    return (Decimal(minor_units) / 100).quantize(_CENT)


def format_price(minor_units: int, symbol: str = "$") -> str:
    """Format minor units for display only, e.g. ``$4.99``."""
    return f"{symbol}{to_major_units(minor_units)}"


@dataclass(frozen=True)
class PriceQuote:
    """Every price a profile page renders, in minor units."""

    profile_id: UUID
    photos: list[int]
    videos: list[int]
    photo_package: int
    video_package: int
