"""HTTP client the frontend side uses to poll payment status."""

import asyncio
from dataclasses import dataclass

import httpx

from media_paywall.domain.errors import PaymentNotFound, ProviderError
from media_paywall.domain.payments import PaymentStatus
from media_paywall.services.polling import RetryPolicy, poll_payment_status


@dataclass
class HttpxPaymentStatusClient:
    """Query ``GET /payments/{intent_id}/status`` on the paywall API."""

    base_url: str
    access_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, access_token: str) -> "HttpxPaymentStatusClient":
        """Create a status client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            access_token=access_token,
            http_client=httpx.AsyncClient(),
        )

    async def fetch_status(self, intent_id: str) -> PaymentStatus:
        """Return the current status of an intent."""
        try:
            response = await self.http_client.get(
                f"{self.base_url}/payments/{intent_id}/status",
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=15,
            )
        except httpx.HTTPError as exc:
            raise ProviderError("Payment status unavailable") from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            raise PaymentNotFound(intent_id)
        response.raise_for_status()
        return PaymentStatus(str(response.json()["status"]))

    async def wait_for_terminal(
        self,
        intent_id: str,
        policy: RetryPolicy,
        cancel: asyncio.Event | None = None,
    ) -> PaymentStatus:
        """Poll until the intent settles, times out or is cancelled."""
        return await poll_payment_status(
            lambda: self.fetch_status(intent_id), policy, cancel
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
