"""Payment method selection."""

from media_paywall.adapters.crypto_gateway import CryptoPlaceholderGateway
from media_paywall.adapters.square_gateway import SquareCardGateway
from media_paywall.config import Settings
from media_paywall.services.payment_gateway import PaymentGateway


def build_payment_gateway(settings: Settings) -> PaymentGateway:
    """Return the gateway variant named by ``settings.payment_method``."""
    if settings.payment_method == "crypto":
        return CryptoPlaceholderGateway()
    return SquareCardGateway.create(
        access_token=settings.square_access_token,
        location_id=settings.square_location_id,
        environment=settings.square_environment,
        currency=settings.currency,
    )
