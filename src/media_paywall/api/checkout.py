"""Checkout, charge submission and payment status endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request

from media_paywall.api.dependencies import current_actor
from media_paywall.api.models import CheckoutRequest, SubmitPaymentRequest
from media_paywall.domain.models import Actor
from media_paywall.domain.payments import Payment

if TYPE_CHECKING:
    from media_paywall.containers import AppContainer

router = APIRouter(tags=["checkout"])


@router.post("/checkout")
async def create_checkout(
    payload: CheckoutRequest, request: Request, actor: Actor = Depends(current_actor)
) -> dict[str, object]:
    """Create (or return the existing) payment intent for the line items."""
    container: AppContainer = request.app.state.container
    intent = container.checkout_service.create_intent(
        actor, [item.to_line_item() for item in payload.line_items], payload.nonce
    )
    return {
        "intent_id": intent.intent_id,
        "provider_token": intent.provider_token,
        "total_minor_units": intent.total_minor_units,
        "currency": intent.currency,
        "status": intent.status,
        "square_application_id": container.settings.square_application_id,
        "square_location_id": container.settings.square_location_id,
    }


@router.post("/checkout/{intent_id}/pay")
async def submit_payment(
    intent_id: str,
    payload: SubmitPaymentRequest,
    request: Request,
    actor: Actor = Depends(current_actor),
) -> dict[str, object]:
    """Charge the card for a pending intent."""
    container: AppContainer = request.app.state.container
    payment = await container.checkout_service.submit_payment(
        actor, intent_id, payload.provider_token, payload.card_details()
    )
    return payment_status_payload(payment)


@router.get("/payments/{intent_id}/status")
async def payment_status(
    intent_id: str, request: Request, actor: Actor = Depends(current_actor)
) -> dict[str, object]:
    """Return the intent status; polled by the client until terminal."""
    container: AppContainer = request.app.state.container
    payment = await container.reconciliation_service.refresh_status(actor, intent_id)
    return payment_status_payload(payment)


def payment_status_payload(payment: Payment) -> dict[str, object]:
    return {
        "intent_id": payment.id,
        "status": payment.status,
        "amount_minor_units": payment.amount_minor_units,
        "currency": payment.currency,
        "failure_category": payment.failure_category,
    }
