"""Entitlement resolution: is a piece of content viewable right now."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from media_paywall.domain.catalog import (
    ItemType,
    MediaItem,
    PackageType,
    Profile,
)
from media_paywall.domain.models import Actor
from media_paywall.domain.unlocks import (
    ProfileEntitlements,
    UnlockProgress,
    UnlockRecord,
)
from media_paywall.services.catalog import CatalogRepository


class UnlockRepository(Protocol):
    """Persistence interface for unlock records."""

    def list_unlocks(self, actor_id: UUID, profile_id: UUID) -> list[UnlockRecord]:
        """Return the actor's unlock records for a profile."""

    def list_actor_unlocks(self, actor_id: UUID) -> list[UnlockRecord]:
        """Return every unlock record held by the actor, newest first."""

    def write_unlock(self, record: UnlockRecord) -> None:
        """Insert an unlock record; an existing key is left untouched."""


@dataclass
class EntitlementService:
    """Resolve unlock state from profile flags, unlock records and item flags.

    Absence of data always resolves to locked. Store failures surface as
    StoreUnavailable so callers can fail closed.
    """

    catalog_repository: CatalogRepository
    unlock_repository: UnlockRepository

    def is_unlocked(
        self, actor: Actor, profile_id: UUID, item_index: int, item_type: ItemType
    ) -> bool:
        """Return True when the actor may view the item now."""
        profile = self.catalog_repository.get_profile(profile_id)
        if profile is None:
            return False
        item = _find_item(
            self.catalog_repository.list_media_items(profile_id), item_type, item_index
        )
        if item is None:
            return False
        return _resolve(actor, profile, item, self._unlocks(actor, profile_id))

    def unlocked_count(self, actor: Actor, profile_id: UUID) -> UnlockProgress:
        """Return unlocked and total counts per type."""
        return self.profile_entitlements(actor, profile_id).progress

    def is_package_fully_unlocked(
        self, actor: Actor, profile_id: UUID, item_type: ItemType | None = None
    ) -> bool:
        """Return True when every item (of a type, if given) is unlocked."""
        profile = self.catalog_repository.get_profile(profile_id)
        if profile is None:
            return False
        if profile.is_unlocked is True and not actor.is_guest:
            return True
        progress = self.unlocked_count(actor, profile_id)
        if item_type == ItemType.PHOTO:
            return progress.all_photos_unlocked
        if item_type == ItemType.VIDEO:
            return progress.all_videos_unlocked
        return progress.all_photos_unlocked and progress.all_videos_unlocked

    def has_package_unlock(
        self, actor: Actor, profile_id: UUID, package_type: PackageType
    ) -> bool:
        """Return True when a package-level grant already covers the package."""
        profile = self.catalog_repository.get_profile(profile_id)
        if profile is None or actor.is_guest:
            return False
        if profile.is_unlocked is True:
            return True
        for record in self._unlocks(actor, profile_id):
            if record.package_type is None:
                continue
            if record.package_type in (PackageType.PROFILE, package_type):
                return True
        return False

    def profile_entitlements(
        self, actor: Actor, profile_id: UUID
    ) -> ProfileEntitlements:
        """Return per-item flags and progress for a profile page."""
        profile = self.catalog_repository.get_profile(profile_id)
        photos: list[bool] = []
        videos: list[bool] = []
        if profile is not None:
            unlocks = self._unlocks(actor, profile_id)
            for item in self.catalog_repository.list_media_items(profile_id):
                unlocked = _resolve(actor, profile, item, unlocks)
                if item.item_type == ItemType.PHOTO:
                    photos.append(unlocked)
                else:
                    videos.append(unlocked)
        progress = UnlockProgress(
            photos_unlocked=sum(photos),
            videos_unlocked=sum(videos),
            total_photos=len(photos),
            total_videos=len(videos),
        )
        fully_unlocked = profile is not None and (
            (profile.is_unlocked is True and not actor.is_guest)
            or (progress.all_photos_unlocked and progress.all_videos_unlocked)
        )
        return ProfileEntitlements(
            profile_id=profile_id,
            photos=photos,
            videos=videos,
            progress=progress,
            package_fully_unlocked=fully_unlocked,
        )

    def purchased_items(self, actor: Actor) -> list[UnlockRecord]:
        """Return the actor's unlock records for the purchases page."""
        if actor.id is None:
            return []
        return self.unlock_repository.list_actor_unlocks(actor.id)

    def grant(self, record: UnlockRecord) -> None:
        """Write an unlock record outside of a payment (complimentary access)."""
        self.unlock_repository.write_unlock(record)

    def _unlocks(self, actor: Actor, profile_id: UUID) -> list[UnlockRecord]:
        if actor.id is None:
            return []
        return self.unlock_repository.list_unlocks(actor.id, profile_id)


def _find_item(
    items: list[MediaItem], item_type: ItemType, item_index: int
) -> MediaItem | None:
    for item in items:
        if item.item_type == item_type and item.item_index == item_index:
            return item
    return None


def _resolve(
    actor: Actor, profile: Profile, item: MediaItem, unlocks: list[UnlockRecord]
) -> bool:
    """Apply the resolution order; the first matching rule wins."""
    if actor.is_guest:
        return item.is_locked is False
    if profile.is_unlocked is True:
        return True
    # Package grants and exact item grants.
    if any(record.covers(item.item_type, item.item_index) for record in unlocks):
        return True
    return item.is_locked is False
