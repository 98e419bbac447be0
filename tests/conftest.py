"""Shared test fixtures."""

import threading
from dataclasses import dataclass, field, replace
from uuid import UUID, uuid4

import pytest

from media_paywall.config import Settings
from media_paywall.containers import AppContainer
from media_paywall.domain.catalog import ItemType, MediaItem, PriceOverride, Profile
from media_paywall.domain.errors import AuthenticationRequired, StoreUnavailable
from media_paywall.domain.models import Actor
from media_paywall.domain.payments import (
    ChargeResult,
    FailureCategory,
    Payment,
    PaymentStatus,
)
from media_paywall.domain.unlocks import UnlockRecord
from media_paywall.services.audit import AuditRepository, AuditService
from media_paywall.services.cache import InMemoryCache
from media_paywall.services.catalog import CatalogRepository, CatalogService
from media_paywall.services.checkout import CheckoutService
from media_paywall.services.entitlements import EntitlementService, UnlockRepository
from media_paywall.services.identity import IdentityProvider
from media_paywall.services.payment_gateway import PaymentGateway
from media_paywall.services.pricing import PriceRepository, PricingService
from media_paywall.services.reconciliation import (
    PaymentRepository,
    ReconciliationService,
)


@dataclass
class InMemoryCatalogRepository(CatalogRepository):
    """In-memory catalog store for tests."""

    profiles: dict[UUID, Profile] = field(default_factory=dict)
    items: list[MediaItem] = field(default_factory=list)
    unavailable: bool = False

    def get_profile(self, profile_id: UUID) -> Profile | None:
        self._check()
        return self.profiles.get(profile_id)

    def list_profiles(self) -> list[Profile]:
        self._check()
        return list(self.profiles.values())

    def create_profile(self, payload: dict[str, object]) -> Profile:
        self._check()
        profile = Profile(id=uuid4(), **payload)  # type: ignore[arg-type]
        self.profiles[profile.id] = profile
        return profile

    def update_profile(
        self, profile_id: UUID, payload: dict[str, object]
    ) -> Profile | None:
        self._check()
        profile = self.profiles.get(profile_id)
        if profile is None:
            return None
        updated = replace(profile, **payload)  # type: ignore[arg-type]
        self.profiles[profile_id] = updated
        return updated

    def list_media_items(self, profile_id: UUID) -> list[MediaItem]:
        self._check()
        return sorted(
            (item for item in self.items if item.profile_id == profile_id),
            key=lambda item: (item.item_type, item.item_index),
        )

    def add_media_item(  # noqa: PLR0913
        self,
        profile_id: UUID,
        item_type: ItemType,
        item_index: int,
        url: str,
        is_locked: bool | None,
        is_cover: bool,
    ) -> MediaItem:
        self._check()
        item = MediaItem(
            id=uuid4(),
            profile_id=profile_id,
            item_type=item_type,
            item_index=item_index,
            url=url,
            is_cover=is_cover,
            is_locked=is_locked,
        )
        self.items.append(item)
        return item

    def update_media_item(
        self,
        profile_id: UUID,
        item_type: ItemType,
        item_index: int,
        payload: dict[str, object],
    ) -> MediaItem | None:
        self._check()
        for position, item in enumerate(self.items):
            if (
                item.profile_id == profile_id
                and item.item_type == item_type
                and item.item_index == item_index
            ):
                updated = replace(item, **payload)  # type: ignore[arg-type]
                self.items[position] = updated
                return updated
        return None

    def clear_cover(self, profile_id: UUID, item_type: ItemType) -> None:
        self._check()
        self.items = [
            replace(item, is_cover=False)
            if item.profile_id == profile_id and item.item_type == item_type
            else item
            for item in self.items
        ]

    def _check(self) -> None:
        if self.unavailable:
            raise StoreUnavailable("catalog offline")


@dataclass
class InMemoryPriceRepository(PriceRepository):
    """In-memory price override store for tests."""

    overrides: dict[tuple[UUID, int, str], PriceOverride] = field(default_factory=dict)

    def get_price_override(
        self, profile_id: UUID, item_index: int, item_type: ItemType
    ) -> PriceOverride | None:
        return self.overrides.get((profile_id, item_index, str(item_type)))

    def list_price_overrides(self, profile_id: UUID) -> list[PriceOverride]:
        return [o for o in self.overrides.values() if o.profile_id == profile_id]

    def upsert_price_override(self, override: PriceOverride) -> None:
        key = (override.profile_id, override.item_index, str(override.item_type))
        self.overrides[key] = override


@dataclass
class InMemoryUnlockRepository(UnlockRepository):
    """In-memory unlock store; duplicate keys are ignored."""

    records: dict[tuple[UUID, UUID, str], UnlockRecord] = field(default_factory=dict)
    write_calls: int = 0

    def list_unlocks(self, actor_id: UUID, profile_id: UUID) -> list[UnlockRecord]:
        return [
            record
            for (actor, profile, _key), record in self.records.items()
            if actor == actor_id and profile == profile_id
        ]

    def list_actor_unlocks(self, actor_id: UUID) -> list[UnlockRecord]:
        return [r for (actor, _p, _k), r in self.records.items() if actor == actor_id]

    def write_unlock(self, record: UnlockRecord) -> None:
        self.write_calls += 1
        self.records.setdefault((record.actor_id, record.profile_id, record.key), record)


@dataclass
class InMemoryPaymentRepository(PaymentRepository):
    """In-memory payment store with an atomic conditional finalize."""

    unlock_repository: InMemoryUnlockRepository
    payments: dict[str, Payment] = field(default_factory=dict)
    finalize_transitions: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def create_payment(self, payment: Payment) -> None:
        self.payments.setdefault(payment.id, payment)

    def get_payment(self, payment_id: str) -> Payment | None:
        return self.payments.get(payment_id)

    def get_by_transaction(self, external_transaction_id: str) -> Payment | None:
        for payment in self.payments.values():
            if payment.external_transaction_id == external_transaction_id:
                return payment
        return None

    def attach_transaction(self, payment_id: str, external_transaction_id: str) -> None:
        payment = self.payments[payment_id]
        if payment.external_transaction_id is None:
            self.payments[payment_id] = replace(
                payment, external_transaction_id=external_transaction_id
            )

    def finalize(
        self,
        payment_id: str,
        status: PaymentStatus,
        failure_category: FailureCategory | None,
        unlocks: list[UnlockRecord],
    ) -> bool:
        with self._lock:
            payment = self.payments[payment_id]
            if payment.status != PaymentStatus.PENDING:
                return False
            self.payments[payment_id] = replace(
                payment, status=status, failure_category=failure_category
            )
            for record in unlocks:
                self.unlock_repository.write_unlock(record)
            self.finalize_transitions += 1
            return True

    def mark_refunded(self, payment_id: str) -> bool:
        with self._lock:
            payment = self.payments.get(payment_id)
            if payment is None or payment.status != PaymentStatus.COMPLETED:
                return False
            self.payments[payment_id] = replace(payment, status=PaymentStatus.REFUNDED)
            return True

    def list_payments(
        self, status: PaymentStatus | None, limit: int
    ) -> list[Payment]:
        payments = [
            payment
            for payment in self.payments.values()
            if status is None or payment.status == status
        ]
        return payments[:limit]


@dataclass
class InMemoryAuditRepository(AuditRepository):
    """In-memory audit store for tests."""

    events: list[dict[str, object]] = field(default_factory=list)

    def create_event(
        self,
        entity_type: str,
        entity_id: str,
        event_type: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        self.events.append(
            {
                "entity_type": entity_type,
                "entity_id": entity_id,
                "event_type": event_type,
                "before_json": before,
                "after_json": after,
            }
        )

    def list_events(
        self, entity_type: str | None, limit: int
    ) -> list[dict[str, object]]:
        events = [
            event
            for event in reversed(self.events)
            if entity_type is None or event["entity_type"] == entity_type
        ]
        return events[:limit]


@dataclass
class FakeGateway(PaymentGateway):
    """Gateway that answers charges with a preset result."""

    next_charge: ChargeResult | None = None
    statuses: dict[str, ChargeResult] = field(default_factory=dict)
    charges: list[dict[str, object]] = field(default_factory=list)
    closed: bool = False

    async def tokenize(self, card_details: dict[str, object]) -> str:
        return str(card_details.get("source_id") or "cnon:card-nonce-ok")

    async def charge(
        self,
        token: str,
        amount_minor_units: int,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> ChargeResult:
        self.charges.append(
            {
                "token": token,
                "amount": amount_minor_units,
                "idempotency_key": idempotency_key,
                "metadata": metadata,
            }
        )
        if self.next_charge is not None:
            return self.next_charge
        return ChargeResult(
            transaction_id=f"sq_{len(self.charges)}",
            status=PaymentStatus.COMPLETED,
            reference_id=idempotency_key,
        )

    async def fetch_status(self, transaction_id: str) -> ChargeResult:
        return self.statuses.get(
            transaction_id,
            ChargeResult(transaction_id=transaction_id, status=PaymentStatus.PENDING),
        )

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeIdentityProvider(IdentityProvider):
    """Maps bearer tokens to user ids."""

    tokens: dict[str, UUID] = field(default_factory=dict)
    unavailable: bool = False

    def resolve(self, access_token: str | None) -> Actor:
        if not access_token:
            return Actor.guest()
        if self.unavailable:
            raise StoreUnavailable("auth offline")
        user_id = self.tokens.get(access_token)
        if user_id is None:
            raise AuthenticationRequired("Invalid or expired access token")
        return Actor(id=user_id)


def add_profile(
    catalog_repository: InMemoryCatalogRepository,
    photos: int = 3,
    videos: int = 0,
    **fields: object,
) -> Profile:
    """Create a profile with locked-by-default media items."""
    profile = Profile(id=uuid4(), name=str(fields.pop("name", "Gallery")), **fields)  # type: ignore[arg-type]
    catalog_repository.profiles[profile.id] = profile
    for index in range(photos):
        catalog_repository.add_media_item(
            profile.id, ItemType.PHOTO, index, f"https://cdn/p{index}.jpg", None, index == 0
        )
    for index in range(videos):
        catalog_repository.add_media_item(
            profile.id, ItemType.VIDEO, index, f"https://cdn/v{index}.mp4", None, index == 0
        )
    return profile


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        checkout_token_secret="checkout-secret",
        square_access_token="square-token",
        square_location_id="LOC123",
        square_webhook_signature_key="webhook-key",
        square_webhook_url="https://paywall.example.com/webhooks/square",
    )


@pytest.fixture
def catalog_repository() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture
def price_repository() -> InMemoryPriceRepository:
    return InMemoryPriceRepository()


@pytest.fixture
def unlock_repository() -> InMemoryUnlockRepository:
    return InMemoryUnlockRepository()


@pytest.fixture
def payment_repository(
    unlock_repository: InMemoryUnlockRepository,
) -> InMemoryPaymentRepository:
    return InMemoryPaymentRepository(unlock_repository=unlock_repository)


@pytest.fixture
def audit_repository() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def audit_service(audit_repository: InMemoryAuditRepository) -> AuditService:
    return AuditService(audit_repository)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def catalog_service(
    catalog_repository: InMemoryCatalogRepository, audit_service: AuditService
) -> CatalogService:
    return CatalogService(catalog_repository, audit_service)


@pytest.fixture
def entitlement_service(
    catalog_repository: InMemoryCatalogRepository,
    unlock_repository: InMemoryUnlockRepository,
) -> EntitlementService:
    return EntitlementService(catalog_repository, unlock_repository)


@pytest.fixture
def pricing_service(
    catalog_repository: InMemoryCatalogRepository,
    price_repository: InMemoryPriceRepository,
    audit_service: AuditService,
) -> PricingService:
    return PricingService(
        catalog_repository=catalog_repository,
        price_repository=price_repository,
        cache=InMemoryCache(),
        audit_service=audit_service,
    )


@pytest.fixture
def reconciliation_service(
    payment_repository: InMemoryPaymentRepository,
    gateway: FakeGateway,
    audit_service: AuditService,
) -> ReconciliationService:
    return ReconciliationService(payment_repository, gateway, audit_service)


@pytest.fixture
def checkout_service(  # noqa: PLR0913
    settings: Settings,
    catalog_repository: InMemoryCatalogRepository,
    entitlement_service: EntitlementService,
    pricing_service: PricingService,
    payment_repository: InMemoryPaymentRepository,
    reconciliation_service: ReconciliationService,
    gateway: FakeGateway,
) -> CheckoutService:
    return CheckoutService(
        catalog_repository=catalog_repository,
        entitlement_service=entitlement_service,
        pricing_service=pricing_service,
        payment_repository=payment_repository,
        reconciliation_service=reconciliation_service,
        gateway=gateway,
        token_secret=settings.checkout_token_secret,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    identity_provider: FakeIdentityProvider,
    gateway: FakeGateway,
    audit_service: AuditService,
    catalog_service: CatalogService,
    entitlement_service: EntitlementService,
    pricing_service: PricingService,
    reconciliation_service: ReconciliationService,
    checkout_service: CheckoutService,
) -> AppContainer:
    async def close_resources() -> None:
        await gateway.close()

    return AppContainer(
        settings=settings,
        identity_provider=identity_provider,
        gateway=gateway,
        audit_service=audit_service,
        catalog_service=catalog_service,
        entitlement_service=entitlement_service,
        pricing_service=pricing_service,
        reconciliation_service=reconciliation_service,
        checkout_service=checkout_service,
        close_resources=close_resources,
    )
