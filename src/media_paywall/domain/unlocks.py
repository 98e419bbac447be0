"""Domain models for unlock records."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from media_paywall.domain.catalog import ItemType, PackageType

ITEM_UNLOCK_TYPE = "item"


@dataclass(frozen=True)
class UnlockRecord:
    """Durable proof that an actor may view an item or a package.

    Exactly one of (item_type, item_index) or package_type is set.
    """

    actor_id: UUID
    profile_id: UUID
    item_type: ItemType | None = None
    item_index: int | None = None
    package_type: PackageType | None = None
    payment_id: str | None = None
    unlocked_at: datetime | None = None

    @classmethod
    def for_item(
        cls,
        actor_id: UUID,
        profile_id: UUID,
        item_index: int,
        item_type: ItemType,
        payment_id: str | None = None,
    ) -> "UnlockRecord":
        return cls(
            actor_id=actor_id,
            profile_id=profile_id,
            item_type=item_type,
            item_index=item_index,
            payment_id=payment_id,
        )

    @classmethod
    def for_package(
        cls,
        actor_id: UUID,
        profile_id: UUID,
        package_type: PackageType,
        payment_id: str | None = None,
    ) -> "UnlockRecord":
        return cls(
            actor_id=actor_id,
            profile_id=profile_id,
            package_type=package_type,
            payment_id=payment_id,
        )

    @property
    def unlock_type(self) -> str:
        """Stored discriminator: a package name or ``item``."""
        if self.package_type is not None:
            return self.package_type.value
        return ITEM_UNLOCK_TYPE

    @property
    def key(self) -> str:
        """Uniqueness key within (actor, profile)."""
        if self.package_type is not None:
            return self.package_type.value
        return f"{self.item_type}:{self.item_index}"

    def covers(self, item_type: ItemType, item_index: int) -> bool:
        """Return True when this record unlocks the given item."""
        if self.package_type is not None:
            return self.package_type.covers(item_type)
        return self.item_type == item_type and self.item_index == item_index


@dataclass(frozen=True)
class UnlockProgress:
    """Counts used for progress display on a profile page."""

    photos_unlocked: int
    videos_unlocked: int
    total_photos: int
    total_videos: int

    @property
    def all_photos_unlocked(self) -> bool:
        return self.photos_unlocked == self.total_photos

    @property
    def all_videos_unlocked(self) -> bool:
        return self.videos_unlocked == self.total_videos


@dataclass(frozen=True)
class ProfileEntitlements:
    """Per-item unlock flags for one actor and profile."""

    profile_id: UUID
    photos: list[bool]
    videos: list[bool]
    progress: UnlockProgress
    package_fully_unlocked: bool
