"""Inbound payment provider webhooks."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from media_paywall.adapters.square_webhook import (
    SIGNATURE_HEADER,
    parse_square_event,
    verify_square_signature,
)

if TYPE_CHECKING:
    from media_paywall.containers import AppContainer

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
_logger = logging.getLogger(__name__)


@router.post("/square")
async def square_webhook(request: Request) -> dict[str, object]:
    """Verify and apply a Square payment event.

    Unknown payments answer 404 so Square redelivers once the pending row
    exists.
    """
    container: AppContainer = request.app.state.container
    settings = container.settings
    body = await request.body()
    if not verify_square_signature(
        settings.square_webhook_signature_key,
        settings.square_webhook_url,
        body,
        request.headers.get(SIGNATURE_HEADER),
    ):
        _logger.warning("Rejected Square webhook with invalid signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST) from exc
    event = parse_square_event(payload if isinstance(payload, dict) else {})
    if event is None:
        return {"status": "ignored"}
    charge = event.charge
    if not charge.status.is_terminal or charge.transaction_id is None:
        return {"status": "pending"}

    result = container.reconciliation_service.reconcile(
        charge.transaction_id,
        charge.status,
        failure_category=charge.failure_category,
        reference_id=charge.reference_id,
    )
    return {
        "status": "ok",
        "payment_status": result.status,
        "already_processed": result.already_processed,
    }
