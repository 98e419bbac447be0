"""Square card payments over the Square REST API."""

import logging
from dataclasses import dataclass

import httpx

from media_paywall.domain.errors import InvalidCard, ProviderError
from media_paywall.domain.payments import ChargeResult, FailureCategory, PaymentStatus
from media_paywall.services.payment_gateway import PaymentGateway

_logger = logging.getLogger(__name__)

SQUARE_BASE_URLS = {
    "sandbox": "https://connect.squareupsandbox.com",
    "production": "https://connect.squareup.com",
}
SQUARE_API_VERSION = "2024-07-17"

_PAYMENT_METHOD_ERROR = "PAYMENT_METHOD_ERROR"

_STATUS_MAP = {
    "COMPLETED": PaymentStatus.COMPLETED,
    "APPROVED": PaymentStatus.PENDING,
    "PENDING": PaymentStatus.PENDING,
    "FAILED": PaymentStatus.FAILED,
    "CANCELED": PaymentStatus.FAILED,
}

_ERROR_CODE_MAP = {
    "CARD_DECLINED": FailureCategory.CARD_DECLINED,
    "GENERIC_DECLINE": FailureCategory.CARD_DECLINED,
    "CVV_FAILURE": FailureCategory.CARD_DECLINED,
    "ADDRESS_VERIFICATION_FAILURE": FailureCategory.CARD_DECLINED,
    "INSUFFICIENT_FUNDS": FailureCategory.INSUFFICIENT_FUNDS,
    "CARD_EXPIRED": FailureCategory.CARD_EXPIRED,
    "INVALID_EXPIRATION": FailureCategory.CARD_EXPIRED,
    "INVALID_CARD": FailureCategory.INVALID_CARD,
    "INVALID_CARD_DATA": FailureCategory.INVALID_CARD,
    "INVALID_ACCOUNT": FailureCategory.INVALID_CARD,
}


def failure_category_for(code: str | None) -> FailureCategory:
    """Map a Square error code to a user-facing failure category."""
    return _ERROR_CODE_MAP.get(code or "", FailureCategory.PROVIDER_ERROR)


def parse_square_payment(
    payment: dict[str, object], errors: list[dict[str, object]] | None = None
) -> ChargeResult:
    """Convert a Square payment object into a ChargeResult."""
    status = _STATUS_MAP.get(str(payment.get("status") or ""), PaymentStatus.PENDING)
    category = None
    if status == PaymentStatus.FAILED:
        card_details = payment.get("card_details")
        card_errors = card_details.get("errors") if isinstance(card_details, dict) else None
        codes = [error.get("code") for error in (errors or card_errors or [])]
        category = failure_category_for(str(codes[0]) if codes else None)
    reference_id = payment.get("reference_id")
    return ChargeResult(
        transaction_id=str(payment["id"]) if payment.get("id") else None,
        status=status,
        failure_category=category,
        reference_id=str(reference_id) if reference_id else None,
    )


@dataclass
class SquareCardGateway(PaymentGateway):
    """Card payments through Square's Payments API."""

    access_token: str
    location_id: str
    currency: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls,
        access_token: str,
        location_id: str,
        environment: str = "sandbox",
        currency: str = "USD",
    ) -> "SquareCardGateway":
        """Create a gateway with a managed httpx session."""
        return cls(
            access_token=access_token,
            location_id=location_id,
            currency=currency,
            base_url=SQUARE_BASE_URLS.get(environment, SQUARE_BASE_URLS["sandbox"]),
            http_client=httpx.AsyncClient(),
        )

    async def tokenize(self, card_details: dict[str, object]) -> str:
        """Return the one-time source id produced by the hosted card widget."""
        source_id = card_details.get("source_id")
        if not isinstance(source_id, str) or not source_id:
            raise InvalidCard("Missing card token")
        return source_id

    async def charge(
        self,
        token: str,
        amount_minor_units: int,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> ChargeResult:
        """Create and autocomplete a Square payment."""
        body: dict[str, object] = {
            "source_id": token,
            "idempotency_key": idempotency_key,
            "amount_money": {"amount": amount_minor_units, "currency": self.currency},
            "location_id": self.location_id,
            "autocomplete": True,
        }
        if metadata.get("reference_id"):
            body["reference_id"] = metadata["reference_id"]
        if metadata.get("note"):
            body["note"] = metadata["note"]

        response = await self._request("POST", "/v2/payments", json=body)
        payload = _json(response)
        errors = payload.get("errors") or []
        declines = [error for error in errors if error.get("category") == _PAYMENT_METHOD_ERROR]
        if declines:
            payment = payload.get("payment") or {}
            _logger.warning("Square declined payment: code=%s", declines[0].get("code"))
            return ChargeResult(
                transaction_id=str(payment["id"]) if payment.get("id") else None,
                status=PaymentStatus.FAILED,
                failure_category=failure_category_for(str(declines[0].get("code"))),
                reference_id=metadata.get("reference_id"),
            )
        if response.is_error or errors or "payment" not in payload:
            raise ProviderError(_error_detail(response, errors))
        return parse_square_payment(payload["payment"])

    async def fetch_status(self, transaction_id: str) -> ChargeResult:
        """Return Square's current view of a payment."""
        response = await self._request("GET", f"/v2/payments/{transaction_id}")
        payload = _json(response)
        if response.is_error or "payment" not in payload:
            raise ProviderError(_error_detail(response, payload.get("errors") or []))
        return parse_square_payment(payload["payment"])

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self, method: str, path: str, json: dict[str, object] | None = None
    ) -> httpx.Response:
        try:
            return await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Square-Version": SQUARE_API_VERSION,
                },
                timeout=15,
            )
        except httpx.HTTPError as exc:
            _logger.exception("Square request failed: %s %s", method, path)
            raise ProviderError("Payment provider unreachable") from exc


def _json(response: httpx.Response) -> dict[str, object]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _error_detail(response: httpx.Response, errors: list[dict[str, object]]) -> str:
    if errors:
        first = errors[0]
        return str(first.get("detail") or first.get("code") or "Square error")
    return f"Square responded with HTTP {response.status_code}"
