"""Supabase repository for unlock records."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from media_paywall.adapters.supabase_store import parse_timestamp, store_errors
from media_paywall.domain.catalog import ItemType, PackageType
from media_paywall.domain.unlocks import ITEM_UNLOCK_TYPE, UnlockRecord
from media_paywall.services.entitlements import UnlockRepository


@dataclass
class SupabaseUnlockRepository(UnlockRepository):
    """Supabase-backed unlock record repository."""

    client: Client

    def list_unlocks(self, actor_id: UUID, profile_id: UUID) -> list[UnlockRecord]:
        """Return the actor's unlock records for a profile."""
        with store_errors("list_unlocks"):
            response = (
                self.client.table("unlock_records")
                .select("*")
                .eq("user_id", str(actor_id))
                .eq("profile_id", str(profile_id))
                .execute()
            )
        return [_parse_unlock(row) for row in response.data or []]

    def list_actor_unlocks(self, actor_id: UUID) -> list[UnlockRecord]:
        """Return every unlock record held by the actor, newest first."""
        with store_errors("list_actor_unlocks"):
            response = (
                self.client.table("unlock_records")
                .select("*")
                .eq("user_id", str(actor_id))
                .order("unlocked_at", desc=True)
                .execute()
            )
        return [_parse_unlock(row) for row in response.data or []]

    def write_unlock(self, record: UnlockRecord) -> None:
        """Insert an unlock record; an existing key is left untouched."""
        with store_errors("write_unlock"):
            self.client.table("unlock_records").upsert(
                unlock_row(record),
                on_conflict="user_id,profile_id,unlock_key",
                ignore_duplicates=True,
            ).execute()


def unlock_row(record: UnlockRecord) -> dict[str, object]:
    """Serialize an unlock record to its table row."""
    return {
        "user_id": str(record.actor_id),
        "profile_id": str(record.profile_id),
        "unlock_type": record.unlock_type,
        "unlock_key": record.key,
        "item_type": str(record.item_type) if record.item_type else None,
        "item_index": record.item_index,
        "payment_id": record.payment_id,
    }


def _parse_unlock(row: dict[str, object]) -> UnlockRecord:
    unlock_type = str(row["unlock_type"])
    item_type = row.get("item_type")
    item_index = row.get("item_index")
    return UnlockRecord(
        actor_id=UUID(str(row["user_id"])),
        profile_id=UUID(str(row["profile_id"])),
        item_type=ItemType(str(item_type)) if item_type else None,
        item_index=int(item_index) if item_index is not None else None,
        package_type=None if unlock_type == ITEM_UNLOCK_TYPE else PackageType(unlock_type),
        payment_id=row.get("payment_id"),
        unlocked_at=parse_timestamp(row.get("unlocked_at")),
    )
