"""Square webhook authentication and parsing."""

import base64
import hashlib
import hmac
from dataclasses import dataclass

from media_paywall.adapters.square_gateway import parse_square_payment
from media_paywall.domain.payments import ChargeResult

SIGNATURE_HEADER = "x-square-hmacsha256-signature"
PAYMENT_EVENT_TYPES = frozenset({"payment.created", "payment.updated"})


@dataclass(frozen=True)
class SquarePaymentEvent:
    event_id: str | None
    event_type: str
    charge: ChargeResult


def verify_square_signature(
    signature_key: str, notification_url: str, body: bytes, signature: str | None
) -> bool:
    """Return True when the signature matches the notification URL and body.

    Square signs ``notification_url + raw_body`` with HMAC-SHA256 and sends
    the base64 digest. An unset key never verifies.
    """
    if not signature_key or not signature:
        return False
    digest = hmac.new(
        signature_key.encode("utf-8"),
        notification_url.encode("utf-8") + body,
        hashlib.sha256,
    ).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(expected, signature)


def parse_square_event(payload: dict[str, object]) -> SquarePaymentEvent | None:
    """Return the payment event carried by a webhook, or None for other events."""
    event_type = str(payload.get("type") or "")
    if event_type not in PAYMENT_EVENT_TYPES:
        return None
    data = payload.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    payment = obj.get("payment") if isinstance(obj, dict) else None
    if not isinstance(payment, dict) or not payment.get("id"):
        return None
    event_id = payload.get("event_id")
    return SquarePaymentEvent(
        event_id=str(event_id) if event_id else None,
        event_type=event_type,
        charge=parse_square_payment(payment),
    )
