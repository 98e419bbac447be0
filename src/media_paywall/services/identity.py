"""Identity provider interface."""

from typing import Protocol

from media_paywall.domain.models import Actor


class IdentityProvider(Protocol):
    """Resolve a bearer token to the actor it belongs to."""

    def resolve(self, access_token: str | None) -> Actor:
        """Return the actor; no token yields a guest.

        Raises AuthenticationRequired for a token that does not validate.
        """
