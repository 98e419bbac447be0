"""Supabase implementation of the catalog store."""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from supabase import Client

from media_paywall.adapters.supabase_store import (
    parse_decimal,
    parse_timestamp,
    store_errors,
)
from media_paywall.domain.catalog import ItemType, MediaItem, Profile
from media_paywall.services.catalog import CatalogRepository


@dataclass
class SupabaseCatalogRepository(CatalogRepository):
    """Supabase-backed repository for profiles and media items."""

    client: Client

    def get_profile(self, profile_id: UUID) -> Profile | None:
        """Return a profile by id, if present."""
        with store_errors("get_profile"):
            response = (
                self.client.table("profiles")
                .select("*")
                .eq("id", str(profile_id))
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_profile(response.data[0])

    def list_profiles(self) -> list[Profile]:
        """Return all profiles, newest first."""
        with store_errors("list_profiles"):
            response = (
                self.client.table("profiles")
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        return [_parse_profile(row) for row in response.data or []]

    def create_profile(self, payload: dict[str, object]) -> Profile:
        """Create a profile and return it."""
        with store_errors("create_profile"):
            response = self.client.table("profiles").insert(_serialize(payload)).execute()
        if not response.data:
            raise RuntimeError("Failed to create profile")
        return _parse_profile(response.data[0])

    def update_profile(
        self, profile_id: UUID, payload: dict[str, object]
    ) -> Profile | None:
        """Update profile columns and return the profile, if present."""
        with store_errors("update_profile"):
            response = (
                self.client.table("profiles")
                .update(_serialize(payload))
                .eq("id", str(profile_id))
                .execute()
            )
        if not response.data:
            return None
        return _parse_profile(response.data[0])

    def list_media_items(self, profile_id: UUID) -> list[MediaItem]:
        """Return media items of a profile ordered by type and index."""
        with store_errors("list_media_items"):
            response = (
                self.client.table("media_items")
                .select("*")
                .eq("profile_id", str(profile_id))
                .order("item_type")
                .order("item_index")
                .execute()
            )
        return [_parse_media_item(row) for row in response.data or []]

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
        with store_errors("add_media_item"):
            response = (
                self.client.table("media_items")
                .insert(
                    {
                        "profile_id": str(profile_id),
                        "item_type": str(item_type),
                        "item_index": item_index,
                        "url": url,
                        "is_locked": is_locked,
                        "is_cover": is_cover,
                    }
                )
                .execute()
            )
        if not response.data:
            raise RuntimeError("Failed to create media item")
        return _parse_media_item(response.data[0])

    def update_media_item(
        self,
        profile_id: UUID,
        item_type: ItemType,
        item_index: int,
        payload: dict[str, object],
    ) -> MediaItem | None:
        """Update a media item and return it, if present."""
        with store_errors("update_media_item"):
            response = (
                self.client.table("media_items")
                .update(payload)
                .eq("profile_id", str(profile_id))
                .eq("item_type", str(item_type))
                .eq("item_index", item_index)
                .execute()
            )
        if not response.data:
            return None
        return _parse_media_item(response.data[0])

    def clear_cover(self, profile_id: UUID, item_type: ItemType) -> None:
        """Unset the cover flag on every item of a type."""
        with store_errors("clear_cover"):
            (
                self.client.table("media_items")
                .update({"is_cover": False})
                .eq("profile_id", str(profile_id))
                .eq("item_type", str(item_type))
                .execute()
            )


def _serialize(payload: dict[str, object]) -> dict[str, object]:
    return {
        key: str(value) if isinstance(value, Decimal) else value
        for key, value in payload.items()
    }


def _parse_profile(row: dict[str, object]) -> Profile:
    return Profile(
        id=UUID(str(row["id"])),
        name=str(row.get("name") or ""),
        bio=row.get("bio"),
        is_unlocked=row.get("is_unlocked"),
        photo_price=parse_decimal(row.get("photo_price")),
        package_price=parse_decimal(row.get("package_price")),
        video_price=parse_decimal(row.get("video_price")),
        video_package_price=parse_decimal(row.get("video_package_price")),
        created_at=parse_timestamp(row.get("created_at")),
    )


def _parse_media_item(row: dict[str, object]) -> MediaItem:
    return MediaItem(
        id=UUID(str(row["id"])),
        profile_id=UUID(str(row["profile_id"])),
        item_type=ItemType(str(row["item_type"])),
        item_index=int(row["item_index"]),
        url=str(row.get("url") or ""),
        is_cover=bool(row.get("is_cover")),
        is_locked=row.get("is_locked"),
    )
