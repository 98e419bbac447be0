"""Placeholder gateway for the not-yet-available crypto payment method."""

from dataclasses import dataclass

from media_paywall.domain.errors import ProviderError
from media_paywall.domain.payments import ChargeResult
from media_paywall.services.payment_gateway import PaymentGateway

CRYPTO_UNAVAILABLE_MESSAGE = (
    "Crypto payments are not yet available. Please use credit card payment."
)


@dataclass
class CryptoPlaceholderGateway(PaymentGateway):
    """Refuses every operation with a user-facing explanation."""

    async def tokenize(self, card_details: dict[str, object]) -> str:
        raise ProviderError(CRYPTO_UNAVAILABLE_MESSAGE)

    async def charge(
        self,
        token: str,
        amount_minor_units: int,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> ChargeResult:
        raise ProviderError(CRYPTO_UNAVAILABLE_MESSAGE)

    async def fetch_status(self, transaction_id: str) -> ChargeResult:
        raise ProviderError(CRYPTO_UNAVAILABLE_MESSAGE)

    async def close(self) -> None:
        return None
