"""Payment method capability shared by every gateway variant."""

from typing import Protocol

from media_paywall.domain.payments import ChargeResult


class PaymentGateway(Protocol):
    """Tokenize card details and charge them through an external provider."""

    async def tokenize(self, card_details: dict[str, object]) -> str:
        """Return a single-use payment token for the card details."""

    async def charge(
        self,
        token: str,
        amount_minor_units: int,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> ChargeResult:
        """Charge a token and return the provider's answer.

        Definitive declines come back as a failed ChargeResult; transport
        and server errors raise ProviderError.
        """

    async def fetch_status(self, transaction_id: str) -> ChargeResult:
        """Return the provider's current view of a transaction."""

    async def close(self) -> None:
        """Release network resources."""
