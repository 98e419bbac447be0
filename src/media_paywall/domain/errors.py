"""Domain-level errors for the paywall."""

from media_paywall.domain.payments import FailureCategory


class PaywallError(Exception):
    """Base class for every error raised by the paywall domain."""


class StoreUnavailable(PaywallError):
    """Raised when the backing store cannot serve a request."""


class InvalidPrice(PaywallError):
    """Raised when an admin-set price is below the business floor."""


class ProfileNotFound(PaywallError):
    """Raised when a write targets a profile that does not exist."""


class MediaItemNotFound(PaywallError):
    """Raised when a write targets a media item that does not exist."""


class CheckoutError(PaywallError):
    """Raised when checkout preconditions are violated."""


class EmptyCart(CheckoutError):
    """Raised when a checkout carries no line items."""


class AlreadyUnlocked(CheckoutError):
    """Raised when a line item is already covered by an entitlement."""


class InvalidLineItem(CheckoutError):
    """Raised when a line item does not reference purchasable content."""


class AuthenticationRequired(CheckoutError):
    """Raised when a guest or an invalid token attempts a purchase."""


class IntentNotFound(CheckoutError):
    """Raised when a checkout intent does not exist for the actor."""


class InvalidProviderToken(CheckoutError):
    """Raised when a provider token does not match its intent."""


class PaymentNotFound(PaywallError):
    """Raised when a provider status refers to no payment we initiated."""


class InvalidTransition(PaywallError):
    """Raised when a payment status change is not allowed."""


class PaymentFailed(PaywallError):
    """Raised when the provider reports a definitive failure."""

    category = FailureCategory.PROVIDER_ERROR
    user_message = "The payment could not be processed. Please try again later."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail


class CardDeclined(PaymentFailed):
    category = FailureCategory.CARD_DECLINED
    user_message = "Your card was declined. Please try a different card."


class InsufficientFunds(PaymentFailed):
    category = FailureCategory.INSUFFICIENT_FUNDS
    user_message = "Your card has insufficient funds. Please try a different card."


class CardExpired(PaymentFailed):
    category = FailureCategory.CARD_EXPIRED
    user_message = "Your card has expired. Please use a different card."


class InvalidCard(PaymentFailed):
    category = FailureCategory.INVALID_CARD
    user_message = "The card details are invalid. Please check them and try again."


class ProviderError(PaymentFailed):
    category = FailureCategory.PROVIDER_ERROR


class VerificationTimeout(PaywallError):
    """Raised when client polling exhausts its attempts.

    The payment may still complete later through the provider webhook.
    """

    user_message = (
        "We could not confirm your payment yet. "
        "Please check back in a few minutes before trying again."
    )


class PollingCancelled(PaywallError):
    """Raised when the caller cancels status polling."""


_FAILURES: dict[FailureCategory, type[PaymentFailed]] = {
    FailureCategory.CARD_DECLINED: CardDeclined,
    FailureCategory.INSUFFICIENT_FUNDS: InsufficientFunds,
    FailureCategory.CARD_EXPIRED: CardExpired,
    FailureCategory.INVALID_CARD: InvalidCard,
    FailureCategory.PROVIDER_ERROR: ProviderError,
}


def payment_failure(
    category: FailureCategory | None, detail: str | None = None
) -> PaymentFailed:
    """Return the error matching a failure category."""
    error_type = _FAILURES.get(category or FailureCategory.PROVIDER_ERROR, ProviderError)
    return error_type(detail)
