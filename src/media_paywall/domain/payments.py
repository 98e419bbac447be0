"""Domain models for checkout and payments."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from media_paywall.domain.catalog import ItemType, PackageType
from media_paywall.domain.unlocks import UnlockRecord


class PaymentStatus(StrEnum):
    """Lifecycle of a payment. Everything but pending is a sink."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class FailureCategory(StrEnum):
    """User-facing classes of provider-side payment failure."""

    CARD_DECLINED = "card_declined"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    CARD_EXPIRED = "card_expired"
    INVALID_CARD = "invalid_card"
    PROVIDER_ERROR = "provider_error"


@dataclass(frozen=True)
class LineItem:
    """One thing being purchased: a single item or a whole package."""

    profile_id: UUID
    item_type: ItemType | None = None
    item_index: int | None = None
    package_type: PackageType | None = None
    price_minor_units: int = 0

    @property
    def is_package(self) -> bool:
        return self.package_type is not None

    @property
    def key(self) -> str:
        """Identity of the purchased content, ignoring price."""
        if self.package_type is not None:
            return f"{self.profile_id}:{self.package_type}"
        return f"{self.profile_id}:{self.item_type}:{self.item_index}"

    def to_metadata(self) -> dict[str, object]:
        """Serialize for the payment's purchase metadata."""
        payload: dict[str, object] = {
            "profile_id": str(self.profile_id),
            "price_minor_units": self.price_minor_units,
        }
        if self.package_type is not None:
            payload["package_type"] = self.package_type.value
        else:
            payload["item_type"] = str(self.item_type)
            payload["item_index"] = self.item_index
        return payload

    @classmethod
    def from_metadata(cls, payload: dict[str, object]) -> "LineItem":
        package_type = payload.get("package_type")
        item_type = payload.get("item_type")
        item_index = payload.get("item_index")
        return cls(
            profile_id=UUID(str(payload["profile_id"])),
            item_type=ItemType(str(item_type)) if item_type else None,
            item_index=int(item_index) if item_index is not None else None,
            package_type=PackageType(str(package_type)) if package_type else None,
            price_minor_units=int(payload.get("price_minor_units", 0)),
        )

    def unlock_record(self, actor_id: UUID, payment_id: str) -> UnlockRecord:
        """Return the unlock this line item grants once paid."""
        if self.package_type is not None:
            return UnlockRecord.for_package(
                actor_id, self.profile_id, self.package_type, payment_id=payment_id
            )
        return UnlockRecord.for_item(
            actor_id,
            self.profile_id,
            int(self.item_index or 0),
            ItemType(str(self.item_type)),
            payment_id=payment_id,
        )


@dataclass(frozen=True)
class Payment:
    """A payment attempt. The id doubles as the checkout idempotency key."""

    id: str
    actor_id: UUID
    profile_id: UUID | None
    amount_minor_units: int
    currency: str
    status: PaymentStatus
    line_items: tuple[LineItem, ...] = field(default_factory=tuple)
    external_transaction_id: str | None = None
    failure_category: FailureCategory | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def unlock_records(self) -> list[UnlockRecord]:
        """Return the unlocks granted when this payment completes."""
        return [item.unlock_record(self.actor_id, self.id) for item in self.line_items]


@dataclass(frozen=True)
class ChargeResult:
    """Provider answer for a charge or a status lookup."""

    transaction_id: str | None
    status: PaymentStatus
    failure_category: FailureCategory | None = None
    reference_id: str | None = None


@dataclass(frozen=True)
class CheckoutIntent:
    """What the client needs to hand the purchase to the provider."""

    intent_id: str
    provider_token: str
    total_minor_units: int
    currency: str
    status: PaymentStatus


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of converting a provider status into unlock state."""

    payment_id: str
    status: PaymentStatus
    already_processed: bool
    unlocks_granted: tuple[UnlockRecord, ...] = ()
