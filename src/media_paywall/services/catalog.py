"""Catalog services for profiles and their media items."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from media_paywall.domain.catalog import ItemType, MediaItem, Profile
from media_paywall.domain.errors import MediaItemNotFound, ProfileNotFound
from media_paywall.services.audit import AuditService


class CatalogRepository(Protocol):
    """Persistence interface for profiles and media items."""

    def get_profile(self, profile_id: UUID) -> Profile | None:
        """Return a profile by id, if present."""

    def list_profiles(self) -> list[Profile]:
        """Return all profiles, newest first."""

    def create_profile(self, payload: dict[str, object]) -> Profile:
        """Create a profile and return it."""

    def update_profile(
        self, profile_id: UUID, payload: dict[str, object]
    ) -> Profile | None:
        """Update profile columns and return the profile, if present."""

    def list_media_items(self, profile_id: UUID) -> list[MediaItem]:
        """Return media items of a profile ordered by type and index."""

    def add_media_item(  # noqa: PLR0913
        self,
        profile_id: UUID,
        item_type: ItemType,
        item_index: int,
        url: str,
        is_locked: bool | None,
        is_cover: bool,
    ) -> MediaItem:
        """Create a media item and return it."""

    def update_media_item(
        self,
        profile_id: UUID,
        item_type: ItemType,
        item_index: int,
        payload: dict[str, object],
    ) -> MediaItem | None:
        """Update a media item and return it, if present."""

    def clear_cover(self, profile_id: UUID, item_type: ItemType) -> None:
        """Unset the cover flag on every item of a type."""


@dataclass
class CatalogService:
    """Admin-facing operations on the catalog."""

    repository: CatalogRepository
    audit_service: AuditService

    def create_profile(self, name: str, bio: str | None = None) -> Profile:
        """Create an empty profile."""
        profile = self.repository.create_profile({"name": name, "bio": bio})
        self.audit_service.record_event(
            "profile", profile.id, "created", after={"name": name}
        )
        return profile

    def get_profile(self, profile_id: UUID) -> Profile:
        """Return a profile or raise ProfileNotFound."""
        profile = self.repository.get_profile(profile_id)
        if profile is None:
            raise ProfileNotFound(str(profile_id))
        return profile

    def list_profiles(self) -> list[Profile]:
        """Return all profiles."""
        return self.repository.list_profiles()

    def list_media_items(
        self, profile_id: UUID, item_type: ItemType | None = None
    ) -> list[MediaItem]:
        """Return ordered media items, optionally for one type."""
        items = self.repository.list_media_items(profile_id)
        if item_type is None:
            return items
        return [item for item in items if item.item_type == item_type]

    def add_media_item(
        self,
        profile_id: UUID,
        item_type: ItemType,
        url: str,
        is_locked: bool | None = None,
    ) -> MediaItem:
        """Append an item at the next index of its type.

        Indexes are never reused; they key prices, unlocks and payments.
        """
        self.get_profile(profile_id)
        existing = self.list_media_items(profile_id, item_type)
        next_index = max((item.item_index for item in existing), default=-1) + 1
        item = self.repository.add_media_item(
            profile_id=profile_id,
            item_type=item_type,
            item_index=next_index,
            url=url,
            is_locked=is_locked,
            is_cover=not existing,
        )
        self.audit_service.record_event(
            "media_item",
            item.id,
            "created",
            after={"item_type": str(item_type), "item_index": next_index},
        )
        return item

    def set_item_lock(
        self, profile_id: UUID, item_index: int, item_type: ItemType, is_locked: bool
    ) -> MediaItem:
        """Set the lock flag on one item."""
        before = self._get_item(profile_id, item_index, item_type)
        item = self.repository.update_media_item(
            profile_id, item_type, item_index, {"is_locked": is_locked}
        )
        if item is None:
            raise MediaItemNotFound(f"{profile_id}:{item_type}:{item_index}")
        self.audit_service.record_event(
            "media_item",
            item.id,
            "lock_changed",
            before={"is_locked": before.is_locked},
            after={"is_locked": is_locked},
        )
        return item

    def set_cover(
        self, profile_id: UUID, item_index: int, item_type: ItemType
    ) -> MediaItem:
        """Make one item the cover of its type, clearing any other cover."""
        self._get_item(profile_id, item_index, item_type)
        self.repository.clear_cover(profile_id, item_type)
        item = self.repository.update_media_item(
            profile_id, item_type, item_index, {"is_cover": True}
        )
        if item is None:
            raise MediaItemNotFound(f"{profile_id}:{item_type}:{item_index}")
        return item

    def set_profile_unlocked(self, profile_id: UUID, is_unlocked: bool) -> Profile:
        """Set the package-level override that unlocks everything."""
        before = self.get_profile(profile_id)
        profile = self.repository.update_profile(
            profile_id, {"is_unlocked": is_unlocked}
        )
        if profile is None:
            raise ProfileNotFound(str(profile_id))
        self.audit_service.record_event(
            "profile",
            profile_id,
            "unlock_flag_changed",
            before={"is_unlocked": before.is_unlocked},
            after={"is_unlocked": is_unlocked},
        )
        return profile

    def _get_item(
        self, profile_id: UUID, item_index: int, item_type: ItemType
    ) -> MediaItem:
        self.get_profile(profile_id)
        for item in self.list_media_items(profile_id, item_type):
            if item.item_index == item_index:
                return item
        raise MediaItemNotFound(f"{profile_id}:{item_type}:{item_index}")
