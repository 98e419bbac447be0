"""Supabase repository for payments."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from media_paywall.adapters.supabase_store import parse_timestamp, store_errors
from media_paywall.adapters.supabase_unlock_repository import unlock_row
from media_paywall.domain.payments import (
    FailureCategory,
    LineItem,
    Payment,
    PaymentStatus,
)
from media_paywall.domain.unlocks import UnlockRecord
from media_paywall.services.reconciliation import PaymentRepository


@dataclass
class SupabasePaymentRepository(PaymentRepository):
    """Supabase-backed payment repository.

    The terminal transition runs inside the ``finalize_payment`` database
    function so the status change and the unlock inserts commit together.
    """

    client: Client

    def create_payment(self, payment: Payment) -> None:
        """Insert a pending payment row; an existing row with the same id is kept."""
        with store_errors("create_payment"):
            self.client.table("payments").upsert(
                {
                    "id": payment.id,
                    "user_id": str(payment.actor_id),
                    "profile_id": str(payment.profile_id) if payment.profile_id else None,
                    "amount_cents": payment.amount_minor_units,
                    "currency": payment.currency,
                    "status": str(payment.status),
                    "line_items": [item.to_metadata() for item in payment.line_items],
                },
                on_conflict="id",
                ignore_duplicates=True,
            ).execute()

    def get_payment(self, payment_id: str) -> Payment | None:
        """Return a payment by id (the checkout intent id)."""
        with store_errors("get_payment"):
            response = (
                self.client.table("payments")
                .select("*")
                .eq("id", payment_id)
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_payment(response.data[0])

    def get_by_transaction(self, external_transaction_id: str) -> Payment | None:
        """Return the payment carrying a provider transaction id."""
        with store_errors("get_by_transaction"):
            response = (
                self.client.table("payments")
                .select("*")
                .eq("external_transaction_id", external_transaction_id)
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_payment(response.data[0])

    def attach_transaction(self, payment_id: str, external_transaction_id: str) -> None:
        """Record the provider transaction id on a payment."""
        with store_errors("attach_transaction"):
            (
                self.client.table("payments")
                .update(
                    {
                        "external_transaction_id": external_transaction_id,
                        "updated_at": datetime.now(tz=UTC).isoformat(),
                    }
                )
                .eq("id", payment_id)
                .is_("external_transaction_id", "null")
                .execute()
            )

    def finalize(
        self,
        payment_id: str,
        status: PaymentStatus,
        failure_category: FailureCategory | None,
        unlocks: list[UnlockRecord],
    ) -> bool:
        """Move a pending payment to a terminal status and write its unlocks."""
        with store_errors("finalize_payment"):
            response = self.client.rpc(
                "finalize_payment",
                {
                    "p_payment_id": payment_id,
                    "p_status": str(status),
                    "p_failure_category": str(failure_category) if failure_category else None,
                    "p_unlocks": [unlock_row(record) for record in unlocks],
                },
            ).execute()
        return response.data is True

    def mark_refunded(self, payment_id: str) -> bool:
        """Move a completed payment to refunded. Returns False otherwise."""
        with store_errors("mark_refunded"):
            response = (
                self.client.table("payments")
                .update(
                    {
                        "status": str(PaymentStatus.REFUNDED),
                        "updated_at": datetime.now(tz=UTC).isoformat(),
                    }
                )
                .eq("id", payment_id)
                .eq("status", str(PaymentStatus.COMPLETED))
                .execute()
            )
        return bool(response.data)

    def list_payments(
        self, status: PaymentStatus | None, limit: int
    ) -> list[Payment]:
        """Return recent payments, newest first."""
        with store_errors("list_payments"):
            query = self.client.table("payments").select("*")
            if status is not None:
                query = query.eq("status", str(status))
            response = query.order("created_at", desc=True).limit(limit).execute()
        return [_parse_payment(row) for row in response.data or []]


def _parse_payment(row: dict[str, object]) -> Payment:
    profile_id = row.get("profile_id")
    failure_category = row.get("failure_category")
    line_items = row.get("line_items") or []
    return Payment(
        id=str(row["id"]),
        actor_id=UUID(str(row["user_id"])),
        profile_id=UUID(str(profile_id)) if profile_id else None,
        amount_minor_units=int(row["amount_cents"]),
        currency=str(row.get("currency") or "USD"),
        status=PaymentStatus(str(row["status"])),
        line_items=tuple(LineItem.from_metadata(item) for item in line_items),
        external_transaction_id=row.get("external_transaction_id"),
        failure_category=FailureCategory(str(failure_category)) if failure_category else None,
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
    )
