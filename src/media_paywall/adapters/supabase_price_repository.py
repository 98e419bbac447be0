"""Supabase repository for per-item price overrides."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from media_paywall.adapters.supabase_store import store_errors
from media_paywall.domain.catalog import ItemType, PriceOverride
from media_paywall.services.pricing import PriceRepository


@dataclass
class SupabasePriceRepository(PriceRepository):
    """Supabase-backed price override repository."""

    client: Client

    def get_price_override(
        self, profile_id: UUID, item_index: int, item_type: ItemType
    ) -> PriceOverride | None:
        """Return the override for the composite key, if present."""
        with store_errors("get_price_override"):
            response = (
                self.client.table("item_prices")
                .select("*")
                .eq("profile_id", str(profile_id))
                .eq("item_index", item_index)
                .eq("item_type", str(item_type))
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_override(response.data[0])

    def list_price_overrides(self, profile_id: UUID) -> list[PriceOverride]:
        """Return every override of a profile."""
        with store_errors("list_price_overrides"):
            response = (
                self.client.table("item_prices")
                .select("*")
                .eq("profile_id", str(profile_id))
                .execute()
            )
        return [_parse_override(row) for row in response.data or []]

    def upsert_price_override(self, override: PriceOverride) -> None:
        """Insert or replace the override for its composite key."""
        with store_errors("upsert_price_override"):
            self.client.table("item_prices").upsert(
                {
                    "profile_id": str(override.profile_id),
                    "item_index": override.item_index,
                    "item_type": str(override.item_type),
                    "price_cents": override.minor_units,
                },
                on_conflict="profile_id,item_index,item_type",
            ).execute()


def _parse_override(row: dict[str, object]) -> PriceOverride:
    return PriceOverride(
        profile_id=UUID(str(row["profile_id"])),
        item_index=int(row["item_index"]),
        item_type=ItemType(str(row["item_type"])),
        minor_units=int(row["price_cents"]),
    )
