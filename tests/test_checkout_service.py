"""Tests for checkout intents and charge submission."""

import asyncio
from uuid import uuid4

import pytest

from media_paywall.domain.catalog import ItemType, PackageType
from media_paywall.domain.errors import (
    AlreadyUnlocked,
    AuthenticationRequired,
    CardDeclined,
    EmptyCart,
    IntentNotFound,
    InvalidCard,
    InvalidLineItem,
    InvalidProviderToken,
    ProviderError,
)
from media_paywall.domain.models import Actor
from media_paywall.domain.payments import (
    ChargeResult,
    FailureCategory,
    LineItem,
    PaymentStatus,
)
from media_paywall.domain.unlocks import UnlockRecord
from media_paywall.services.checkout import (
    build_intent_id,
    sign_provider_token,
    verify_provider_token,
)
from tests.conftest import add_profile


def _photo(profile_id, index: int, price: int = 1) -> LineItem:  # type: ignore[no-untyped-def]
    return LineItem(
        profile_id=profile_id,
        item_type=ItemType.PHOTO,
        item_index=index,
        price_minor_units=price,
    )


def test_create_intent_prices_server_side_and_writes_pending_payment(
    catalog_repository, checkout_service, payment_repository
) -> None:
    profile = add_profile(catalog_repository, photos=3)
    actor = Actor(id=uuid4())

    intent = checkout_service.create_intent(actor, [_photo(profile.id, 1, price=1)], "n1")

    assert intent.total_minor_units == 499
    assert intent.status == PaymentStatus.PENDING
    payment = payment_repository.get_payment(intent.intent_id)
    assert payment is not None
    assert payment.status == PaymentStatus.PENDING
    assert payment.amount_minor_units == 499
    assert payment.line_items[0].price_minor_units == 499
    assert payment.profile_id == profile.id


def test_create_intent_is_idempotent_for_same_nonce(
    catalog_repository, checkout_service, payment_repository
) -> None:
    profile = add_profile(catalog_repository, photos=3)
    actor = Actor(id=uuid4())
    items = [_photo(profile.id, 0), _photo(profile.id, 2)]

    first = checkout_service.create_intent(actor, items, "nonce-a")
    retry = checkout_service.create_intent(actor, list(reversed(items)), "nonce-a")
    other = checkout_service.create_intent(actor, items, "nonce-b")

    assert retry.intent_id == first.intent_id
    assert retry.provider_token == first.provider_token
    assert other.intent_id != first.intent_id
    assert len(payment_repository.payments) == 2


def test_same_nonce_race_returns_the_stored_intent(
    catalog_repository, checkout_service, payment_repository, monkeypatch
) -> None:
    profile = add_profile(catalog_repository, photos=1)
    actor = Actor(id=uuid4())
    first = checkout_service.create_intent(actor, [_photo(profile.id, 0)], "tab")
    stored = payment_repository.payments[first.intent_id]

    # Second tab checked for the intent before the first tab inserted it.
    lookups: list[str] = []
    read_through = payment_repository.get_payment

    def stale_lookup(payment_id: str):  # type: ignore[no-untyped-def]
        lookups.append(payment_id)
        return None if len(lookups) == 1 else read_through(payment_id)

    monkeypatch.setattr(payment_repository, "get_payment", stale_lookup)

    second = checkout_service.create_intent(actor, [_photo(profile.id, 0)], "tab")

    assert second == first
    assert len(lookups) == 2
    assert list(payment_repository.payments) == [first.intent_id]
    assert payment_repository.payments[first.intent_id] is stored


def test_duplicate_line_items_are_charged_once(catalog_repository, checkout_service) -> None:
    profile = add_profile(catalog_repository, photos=1)
    actor = Actor(id=uuid4())

    intent = checkout_service.create_intent(
        actor, [_photo(profile.id, 0), _photo(profile.id, 0)], "n"
    )

    assert intent.total_minor_units == 499


def test_empty_cart_is_rejected(checkout_service, payment_repository) -> None:
    with pytest.raises(EmptyCart):
        checkout_service.create_intent(Actor(id=uuid4()), [], "n")
    assert payment_repository.payments == {}


def test_guest_cannot_checkout(catalog_repository, checkout_service) -> None:
    profile = add_profile(catalog_repository, photos=1)

    with pytest.raises(AuthenticationRequired):
        checkout_service.create_intent(Actor.guest(), [_photo(profile.id, 0)], "n")


def test_already_unlocked_item_writes_no_payment(
    catalog_repository, unlock_repository, checkout_service, payment_repository
) -> None:
    profile = add_profile(catalog_repository, photos=2)
    actor = Actor(id=uuid4())
    unlock_repository.write_unlock(
        UnlockRecord.for_item(actor.id, profile.id, 1, ItemType.PHOTO)
    )

    with pytest.raises(AlreadyUnlocked):
        checkout_service.create_intent(
            actor, [_photo(profile.id, 0), _photo(profile.id, 1)], "n"
        )

    assert payment_repository.payments == {}


def test_item_covered_by_package_is_already_unlocked(
    catalog_repository, unlock_repository, checkout_service
) -> None:
    profile = add_profile(catalog_repository, photos=2)
    actor = Actor(id=uuid4())
    unlock_repository.write_unlock(
        UnlockRecord.for_package(actor.id, profile.id, PackageType.PHOTOS)
    )

    with pytest.raises(AlreadyUnlocked):
        checkout_service.create_intent(actor, [_photo(profile.id, 1)], "n")
    with pytest.raises(AlreadyUnlocked):
        checkout_service.create_intent(
            actor,
            [LineItem(profile_id=profile.id, package_type=PackageType.PHOTOS)],
            "n",
        )


def test_package_checkout_uses_package_price(catalog_repository, checkout_service) -> None:
    profile = add_profile(catalog_repository, photos=2, videos=1)
    actor = Actor(id=uuid4())

    photos = checkout_service.create_intent(
        actor, [LineItem(profile_id=profile.id, package_type=PackageType.PHOTOS)], "a"
    )
    bundle = checkout_service.create_intent(
        actor, [LineItem(profile_id=profile.id, package_type=PackageType.PROFILE)], "b"
    )

    assert photos.total_minor_units == 1999
    assert bundle.total_minor_units == 1999 + 3999


def test_invalid_line_items_are_rejected(catalog_repository, checkout_service) -> None:
    profile = add_profile(catalog_repository, photos=1)
    actor = Actor(id=uuid4())

    with pytest.raises(InvalidLineItem):
        checkout_service.create_intent(actor, [_photo(uuid4(), 0)], "n")
    with pytest.raises(InvalidLineItem):
        checkout_service.create_intent(actor, [_photo(profile.id, 9)], "n")
    with pytest.raises(InvalidLineItem):
        checkout_service.create_intent(
            actor, [LineItem(profile_id=profile.id, item_type=ItemType.PHOTO)], "n"
        )


def test_submit_payment_completes_and_unlocks(
    catalog_repository, checkout_service, entitlement_service, gateway
) -> None:
    profile = add_profile(catalog_repository, photos=2)
    actor = Actor(id=uuid4())
    intent = checkout_service.create_intent(actor, [_photo(profile.id, 0)], "n")

    payment = asyncio.run(
        checkout_service.submit_payment(
            actor, intent.intent_id, intent.provider_token, {"source_id": "cnon:ok"}
        )
    )

    assert payment.status == PaymentStatus.COMPLETED
    assert payment.external_transaction_id == "sq_1"
    assert gateway.charges[0]["idempotency_key"] == intent.intent_id
    assert gateway.charges[0]["amount"] == 499
    assert entitlement_service.is_unlocked(actor, profile.id, 0, ItemType.PHOTO)


def test_submit_payment_decline_fails_payment(
    catalog_repository, checkout_service, payment_repository, gateway
) -> None:
    profile = add_profile(catalog_repository, photos=1)
    actor = Actor(id=uuid4())
    intent = checkout_service.create_intent(actor, [_photo(profile.id, 0)], "n")
    gateway.next_charge = ChargeResult(
        transaction_id="sq_declined",
        status=PaymentStatus.FAILED,
        failure_category=FailureCategory.CARD_DECLINED,
    )

    with pytest.raises(CardDeclined) as excinfo:
        asyncio.run(
            checkout_service.submit_payment(
                actor, intent.intent_id, intent.provider_token, {"source_id": "cnon:x"}
            )
        )

    assert excinfo.value.category == FailureCategory.CARD_DECLINED
    payment = payment_repository.get_payment(intent.intent_id)
    assert payment.status == PaymentStatus.FAILED
    assert payment.failure_category == FailureCategory.CARD_DECLINED


def test_submit_payment_rejects_bad_token_and_other_actor(
    catalog_repository, checkout_service, gateway
) -> None:
    profile = add_profile(catalog_repository, photos=1)
    actor = Actor(id=uuid4())
    intent = checkout_service.create_intent(actor, [_photo(profile.id, 0)], "n")

    with pytest.raises(InvalidProviderToken):
        asyncio.run(
            checkout_service.submit_payment(actor, intent.intent_id, "forged", {})
        )
    with pytest.raises(IntentNotFound):
        asyncio.run(
            checkout_service.submit_payment(
                Actor(id=uuid4()), intent.intent_id, intent.provider_token, {}
            )
        )
    assert gateway.charges == []


def test_pending_charge_is_not_submitted_twice(
    catalog_repository, checkout_service, gateway
) -> None:
    profile = add_profile(catalog_repository, photos=1)
    actor = Actor(id=uuid4())
    intent = checkout_service.create_intent(actor, [_photo(profile.id, 0)], "n")
    gateway.next_charge = ChargeResult(
        transaction_id="sq_pending", status=PaymentStatus.PENDING
    )

    first = asyncio.run(
        checkout_service.submit_payment(
            actor, intent.intent_id, intent.provider_token, {"source_id": "cnon:ok"}
        )
    )
    second = asyncio.run(
        checkout_service.submit_payment(
            actor, intent.intent_id, intent.provider_token, {"source_id": "cnon:ok"}
        )
    )

    assert first.status == PaymentStatus.PENDING
    assert second.status == PaymentStatus.PENDING
    assert len(gateway.charges) == 1


def test_provider_error_leaves_payment_pending(
    catalog_repository, checkout_service, payment_repository
) -> None:
    profile = add_profile(catalog_repository, photos=1)
    actor = Actor(id=uuid4())
    intent = checkout_service.create_intent(actor, [_photo(profile.id, 0)], "n")

    class _BrokenGateway:
        async def tokenize(self, card_details):  # type: ignore[no-untyped-def]
            return "tok"

        async def charge(self, *args, **kwargs):  # type: ignore[no-untyped-def]
            raise ProviderError("Payment provider unreachable")

    checkout_service.gateway = _BrokenGateway()

    with pytest.raises(ProviderError):
        asyncio.run(
            checkout_service.submit_payment(
                actor, intent.intent_id, intent.provider_token, {"source_id": "x"}
            )
        )

    assert payment_repository.get_payment(intent.intent_id).status == PaymentStatus.PENDING


def test_intent_id_and_token_helpers() -> None:
    actor_id = uuid4()
    profile_id = uuid4()
    items = [_photo(profile_id, 0), _photo(profile_id, 1)]

    intent_id = build_intent_id(actor_id, items, "nonce")
    token = sign_provider_token("secret", intent_id, 998)

    assert intent_id.startswith("pi_")
    assert len(intent_id) == 35
    assert intent_id == build_intent_id(actor_id, list(reversed(items)), "nonce")
    assert verify_provider_token("secret", intent_id, 998, token)
    assert not verify_provider_token("secret", intent_id, 999, token)
    assert not verify_provider_token("other", intent_id, 998, token)


def test_rejected_card_data_fails_payment_without_charging(
    catalog_repository, checkout_service, payment_repository, gateway
) -> None:
    profile = add_profile(catalog_repository, photos=1)
    actor = Actor(id=uuid4())
    intent = checkout_service.create_intent(actor, [_photo(profile.id, 0)], "n")

    class _RejectingGateway:
        async def tokenize(self, card_details):  # type: ignore[no-untyped-def]
            raise InvalidCard("Missing card token")

    checkout_service.gateway = _RejectingGateway()

    with pytest.raises(InvalidCard):
        asyncio.run(
            checkout_service.submit_payment(
                actor, intent.intent_id, intent.provider_token, {}
            )
        )

    payment = payment_repository.get_payment(intent.intent_id)
    assert payment.status == PaymentStatus.FAILED
    assert payment.failure_category == FailureCategory.INVALID_CARD
    assert gateway.charges == []
    assert payment_repository.unlock_repository.records == {}
