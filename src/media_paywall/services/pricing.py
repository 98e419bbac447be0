"""Price resolution and admin price management."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from media_paywall.domain.catalog import ItemType, PackageType, PriceOverride, Profile
from media_paywall.domain.errors import InvalidPrice, ProfileNotFound
from media_paywall.domain.pricing import (
    DEFAULT_ITEM_PRICES,
    DEFAULT_PACKAGE_PRICES,
    MINIMUM_PRICE_MINOR_UNITS,
    PriceQuote,
    to_major_units,
    to_minor_units,
)
from media_paywall.services.audit import AuditService
from media_paywall.services.cache import Cache
from media_paywall.services.catalog import CatalogRepository

_logger = logging.getLogger(__name__)

_PROFILE_PRICE_FIELDS = ("photo_price", "package_price", "video_price", "video_package_price")


class PriceRepository(Protocol):
    """Persistence interface for per-item price overrides."""

    def get_price_override(
        self, profile_id: UUID, item_index: int, item_type: ItemType
    ) -> PriceOverride | None:
        """Return the override for the composite key, if present."""

    def list_price_overrides(self, profile_id: UUID) -> list[PriceOverride]:
        """Return every override of a profile."""

    def upsert_price_override(self, override: PriceOverride) -> None:
        """Insert or replace the override for its composite key."""


@dataclass
class PricingService:
    """Resolve prices in minor units through the fallback chain.

    Per-item override, then the profile default, then the system default.
    """

    catalog_repository: CatalogRepository
    price_repository: PriceRepository
    cache: Cache
    audit_service: AuditService
    cache_ttl_seconds: int = 30

    def price_for(
        self,
        profile_id: UUID,
        item_index: int,
        item_type: ItemType,
        *,
        use_cache: bool = False,
    ) -> int:
        """Return the price to charge for one item."""
        cache_key = f"price:{profile_id}:item:{item_type}:{item_index}"
        if use_cache:
            cached = self.cache.get(cache_key)
            if isinstance(cached, int):
                return cached

        profile = self._require_profile(profile_id)
        override = self.price_repository.get_price_override(
            profile_id, item_index, item_type
        )
        if override is not None and override.minor_units >= MINIMUM_PRICE_MINOR_UNITS:
            price = override.minor_units
        else:
            price = _profile_default(profile.item_price(item_type)) or (
                DEFAULT_ITEM_PRICES[ItemType(item_type)]
            )
        self.cache.set(cache_key, price, ttl_seconds=self.cache_ttl_seconds)
        return price

    def package_price_for(
        self, profile_id: UUID, item_type: ItemType, *, use_cache: bool = False
    ) -> int:
        """Return the price of the per-type package."""
        cache_key = f"price:{profile_id}:package:{item_type}"
        if use_cache:
            cached = self.cache.get(cache_key)
            if isinstance(cached, int):
                return cached

        profile = self._require_profile(profile_id)
        price = _profile_default(profile.bundle_price(item_type)) or (
            DEFAULT_PACKAGE_PRICES[ItemType(item_type)]
        )
        self.cache.set(cache_key, price, ttl_seconds=self.cache_ttl_seconds)
        return price

    def package_type_price(
        self, profile_id: UUID, package_type: PackageType, *, use_cache: bool = False
    ) -> int:
        """Return the price of a package scope; the profile bundle sums both types."""
        if package_type == PackageType.PHOTOS:
            return self.package_price_for(profile_id, ItemType.PHOTO, use_cache=use_cache)
        if package_type == PackageType.VIDEOS:
            return self.package_price_for(profile_id, ItemType.VIDEO, use_cache=use_cache)
        return self.package_price_for(
            profile_id, ItemType.PHOTO, use_cache=use_cache
        ) + self.package_price_for(profile_id, ItemType.VIDEO, use_cache=use_cache)

    def price_quote(self, profile_id: UUID) -> PriceQuote:
        """Return every price of a profile for display."""
        self._require_profile(profile_id)
        items = self.catalog_repository.list_media_items(profile_id)
        return PriceQuote(
            profile_id=profile_id,
            photos=[
                self.price_for(profile_id, item.item_index, ItemType.PHOTO, use_cache=True)
                for item in items
                if item.item_type == ItemType.PHOTO
            ],
            videos=[
                self.price_for(profile_id, item.item_index, ItemType.VIDEO, use_cache=True)
                for item in items
                if item.item_type == ItemType.VIDEO
            ],
            photo_package=self.package_price_for(profile_id, ItemType.PHOTO, use_cache=True),
            video_package=self.package_price_for(profile_id, ItemType.VIDEO, use_cache=True),
        )

    def set_item_price(
        self, profile_id: UUID, item_index: int, item_type: ItemType, minor_units: int
    ) -> PriceOverride:
        """Validate and upsert an explicit per-item price."""
        _validate_price(minor_units)
        self._require_profile(profile_id)
        override = PriceOverride(
            profile_id=profile_id,
            item_index=item_index,
            item_type=ItemType(item_type),
            minor_units=minor_units,
        )
        self.price_repository.upsert_price_override(override)
        self.cache.delete_prefix(f"price:{profile_id}:")
        self.audit_service.record_event(
            "item_price",
            f"{profile_id}:{item_type}:{item_index}",
            "price_set",
            after={"minor_units": minor_units},
        )
        return override

    def set_profile_prices(
        self, profile_id: UUID, prices: dict[str, int | None]
    ) -> Profile:
        """Validate and store profile-level defaults given in minor units.

        Keys are ``photo_price``, ``package_price``, ``video_price`` and
        ``video_package_price``; a None value clears the default.
        """
        unknown = set(prices) - set(_PROFILE_PRICE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown price fields: {sorted(unknown)}")
        payload: dict[str, object] = {}
        for name, minor_units in prices.items():
            if minor_units is None:
                payload[name] = None
                continue
            _validate_price(minor_units)
            payload[name] = to_major_units(minor_units)
        before = self._require_profile(profile_id)
        profile = self.catalog_repository.update_profile(profile_id, payload)
        if profile is None:
            raise ProfileNotFound(str(profile_id))
        self.cache.delete_prefix(f"price:{profile_id}:")
        self.audit_service.record_event(
            "profile",
            profile_id,
            "prices_changed",
            before={name: _as_text(getattr(before, name)) for name in payload},
            after={name: _as_text(value) for name, value in payload.items()},
        )
        return profile

    def _require_profile(self, profile_id: UUID) -> Profile:
        profile = self.catalog_repository.get_profile(profile_id)
        if profile is None:
            raise ProfileNotFound(str(profile_id))
        return profile


def _validate_price(minor_units: int) -> None:
    if minor_units < MINIMUM_PRICE_MINOR_UNITS:
        raise InvalidPrice(
            f"Price must be at least {MINIMUM_PRICE_MINOR_UNITS} minor units, "
            f"got {minor_units}"
        )


def _profile_default(amount: Decimal | None) -> int | None:
    """Convert a stored major-unit default, ignoring values under the floor."""
    if amount is None:
        return None
    minor_units = to_minor_units(amount)
    if minor_units < MINIMUM_PRICE_MINOR_UNITS:
        _logger.warning("Ignoring profile price below floor: %s", amount)
        return None
    return minor_units


def _as_text(value: object) -> str | None:
    return None if value is None else str(value)
