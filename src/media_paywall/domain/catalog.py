"""Domain models for profiles and their media."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID


class ItemType(StrEnum):
    """Kind of media item inside a profile."""

    PHOTO = "photo"
    VIDEO = "video"


class PackageType(StrEnum):
    """Bundle scopes that can be purchased or granted as a whole."""

    PHOTOS = "photos"
    VIDEOS = "videos"
    PROFILE = "profile"

    def covers(self, item_type: ItemType) -> bool:
        """Return True when the package grants access to the item type."""
        if self is PackageType.PROFILE:
            return True
        return package_for_item_type(item_type) is self


def package_for_item_type(item_type: ItemType) -> PackageType:
    """Return the per-type package that covers an item type."""
    return PackageType.PHOTOS if item_type == ItemType.PHOTO else PackageType.VIDEOS


@dataclass(frozen=True)
class Profile:
    """A gallery profile with optional pricing defaults in major units."""

    id: UUID
    name: str
    bio: str | None = None
    is_unlocked: bool | None = None
    photo_price: Decimal | None = None
    package_price: Decimal | None = None
    video_price: Decimal | None = None
    video_package_price: Decimal | None = None
    created_at: datetime | None = None

    def item_price(self, item_type: ItemType) -> Decimal | None:
        """Return the profile-level per-item default for a type."""
        return self.photo_price if item_type == ItemType.PHOTO else self.video_price

    def bundle_price(self, item_type: ItemType) -> Decimal | None:
        """Return the profile-level package price for a type."""
        if item_type == ItemType.PHOTO:
            return self.package_price
        return self.video_package_price


@dataclass(frozen=True)
class MediaItem:
    """A photo or video at a stable 0-based position within its type."""

    id: UUID
    profile_id: UUID
    item_type: ItemType
    item_index: int
    url: str
    is_cover: bool = False
    is_locked: bool | None = None


@dataclass(frozen=True)
class PriceOverride:
    """Explicit per-item price in minor units."""

    profile_id: UUID
    item_index: int
    item_type: ItemType
    minor_units: int
