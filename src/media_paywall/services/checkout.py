"""Checkout orchestration: intents, server-side pricing and charge submission."""

import hashlib
import hmac
import logging
from dataclasses import dataclass, replace
from uuid import UUID

from media_paywall.domain.catalog import ItemType, PackageType
from media_paywall.domain.errors import (
    AlreadyUnlocked,
    AuthenticationRequired,
    EmptyCart,
    IntentNotFound,
    InvalidCard,
    InvalidLineItem,
    InvalidProviderToken,
    payment_failure,
)
from media_paywall.domain.models import Actor
from media_paywall.domain.payments import (
    CheckoutIntent,
    FailureCategory,
    LineItem,
    Payment,
    PaymentStatus,
)
from media_paywall.services.catalog import CatalogRepository
from media_paywall.services.entitlements import EntitlementService
from media_paywall.services.payment_gateway import PaymentGateway
from media_paywall.services.pricing import PricingService
from media_paywall.services.reconciliation import (
    PaymentRepository,
    ReconciliationService,
)

_logger = logging.getLogger(__name__)

INTENT_ID_PREFIX = "pi_"


@dataclass
class CheckoutService:
    """Create payment intents and hand them to the configured gateway.

    Client-supplied prices are ignored; every line item is re-priced from the
    store and re-checked against existing entitlements before anything is
    written.
    """

    catalog_repository: CatalogRepository
    entitlement_service: EntitlementService
    pricing_service: PricingService
    payment_repository: PaymentRepository
    reconciliation_service: ReconciliationService
    gateway: PaymentGateway
    token_secret: str
    currency: str = "USD"

    def create_intent(
        self, actor: Actor, line_items: list[LineItem], nonce: str
    ) -> CheckoutIntent:
        """Write a pending payment for the line items and return its intent.

        The intent id is derived from the actor, the line-item set and the
        client nonce, so a retry with the same nonce returns the same intent.
        """
        if actor.id is None:
            raise AuthenticationRequired("Sign in to purchase content")
        items = _dedupe(line_items)
        if not items:
            raise EmptyCart("Checkout requires at least one line item")
        for item in items:
            self._validate(item)

        intent_id = build_intent_id(actor.id, items, nonce)
        existing = self.payment_repository.get_payment(intent_id)
        if existing is not None:
            if existing.actor_id != actor.id:
                raise IntentNotFound(intent_id)
            _logger.info("Checkout retry reused intent: intent_id=%s", intent_id)
            return self._intent(existing)

        for item in items:
            self._ensure_locked(actor, item)
        priced = [replace(item, price_minor_units=self._price(item)) for item in items]
        profile_ids = {item.profile_id for item in priced}
        payment = Payment(
            id=intent_id,
            actor_id=actor.id,
            profile_id=next(iter(profile_ids)) if len(profile_ids) == 1 else None,
            amount_minor_units=sum(item.price_minor_units for item in priced),
            currency=self.currency,
            status=PaymentStatus.PENDING,
            line_items=tuple(priced),
        )
        self.payment_repository.create_payment(payment)
        # A concurrent request with the same nonce may have inserted first;
        # the stored row is the intent either way.
        stored = self.payment_repository.get_payment(intent_id) or payment
        _logger.info(
            "Checkout intent created: intent_id=%s amount=%s items=%s",
            intent_id,
            stored.amount_minor_units,
            len(stored.line_items),
        )
        return self._intent(stored)

    async def submit_payment(
        self,
        actor: Actor,
        intent_id: str,
        provider_token: str,
        card_details: dict[str, object],
    ) -> Payment:
        """Tokenize, charge and reconcile a pending intent.

        Raises the PaymentFailed subclass matching a definitive decline.
        """
        payment = self.payment_repository.get_payment(intent_id)
        if payment is None or actor.is_guest or payment.actor_id != actor.id:
            raise IntentNotFound(intent_id)
        if not verify_provider_token(
            self.token_secret, payment.id, payment.amount_minor_units, provider_token
        ):
            raise InvalidProviderToken(intent_id)
        if payment.status == PaymentStatus.FAILED:
            raise payment_failure(payment.failure_category)
        if payment.status != PaymentStatus.PENDING:
            return payment
        if payment.external_transaction_id:
            return await self.reconciliation_service.refresh_status(actor, intent_id)

        try:
            token = await self.gateway.tokenize(card_details)
        except InvalidCard:
            _logger.warning("Card data rejected: intent_id=%s", intent_id)
            self.reconciliation_service.settle(
                payment, PaymentStatus.FAILED, FailureCategory.INVALID_CARD
            )
            raise
        charge = await self.gateway.charge(
            token,
            payment.amount_minor_units,
            idempotency_key=payment.id,
            metadata={"reference_id": payment.id, "note": _charge_note(payment)},
        )
        if charge.transaction_id:
            self.payment_repository.attach_transaction(payment.id, charge.transaction_id)
        self.reconciliation_service.apply_charge(payment, charge)
        if charge.status == PaymentStatus.FAILED:
            _logger.warning(
                "Charge declined: intent_id=%s category=%s",
                intent_id,
                charge.failure_category,
            )
            raise payment_failure(charge.failure_category)
        return self.payment_repository.get_payment(intent_id) or payment

    def _intent(self, payment: Payment) -> CheckoutIntent:
        return CheckoutIntent(
            intent_id=payment.id,
            provider_token=sign_provider_token(
                self.token_secret, payment.id, payment.amount_minor_units
            ),
            total_minor_units=payment.amount_minor_units,
            currency=payment.currency,
            status=payment.status,
        )

    def _validate(self, item: LineItem) -> None:
        profile = self.catalog_repository.get_profile(item.profile_id)
        if profile is None:
            raise InvalidLineItem(f"Unknown profile {item.profile_id}")
        if item.is_package:
            if item.item_type is not None or item.item_index is not None:
                raise InvalidLineItem("A package line item carries no item index")
            return
        if item.item_type is None or item.item_index is None:
            raise InvalidLineItem("An item line item needs an item type and index")
        for media in self.catalog_repository.list_media_items(item.profile_id):
            if media.item_type == item.item_type and media.item_index == item.item_index:
                return
        raise InvalidLineItem(f"Unknown item {item.key}")

    def _ensure_locked(self, actor: Actor, item: LineItem) -> None:
        if item.package_type is not None:
            unlocked = self.entitlement_service.has_package_unlock(
                actor, item.profile_id, PackageType(item.package_type)
            )
        else:
            unlocked = self.entitlement_service.is_unlocked(
                actor, item.profile_id, int(item.item_index or 0), ItemType(str(item.item_type))
            )
        if unlocked:
            raise AlreadyUnlocked(item.key)

    def _price(self, item: LineItem) -> int:
        if item.package_type is not None:
            return self.pricing_service.package_type_price(
                item.profile_id, PackageType(item.package_type)
            )
        return self.pricing_service.price_for(
            item.profile_id, int(item.item_index or 0), ItemType(str(item.item_type))
        )


def build_intent_id(actor_id: UUID, line_items: list[LineItem], nonce: str) -> str:
    """Return the deterministic idempotency key for a checkout attempt."""
    keys = sorted(item.key for item in line_items)
    material = "|".join([str(actor_id), *keys, nonce])
    return INTENT_ID_PREFIX + hashlib.sha256(material.encode("utf-8")).hexdigest()[:32]


def sign_provider_token(secret: str, intent_id: str, amount_minor_units: int) -> str:
    """Return the token binding an intent id to its server-computed amount."""
    message = f"{intent_id}:{amount_minor_units}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_provider_token(
    secret: str, intent_id: str, amount_minor_units: int, token: str
) -> bool:
    """Return True when the token was issued for this intent and amount."""
    expected = sign_provider_token(secret, intent_id, amount_minor_units)
    return hmac.compare_digest(expected, token)


def _dedupe(line_items: list[LineItem]) -> list[LineItem]:
    seen: set[str] = set()
    unique: list[LineItem] = []
    for item in line_items:
        if item.key in seen:
            continue
        seen.add(item.key)
        unique.append(item)
    return unique


def _charge_note(payment: Payment) -> str:
    return ", ".join(item.key for item in payment.line_items)[:500]
