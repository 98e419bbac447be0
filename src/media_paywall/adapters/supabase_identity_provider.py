"""Supabase Auth implementation of the identity provider."""

import logging
from dataclasses import dataclass
from uuid import UUID

import httpx
from supabase import AuthError, Client

from media_paywall.domain.errors import AuthenticationRequired, StoreUnavailable
from media_paywall.domain.models import Actor
from media_paywall.services.identity import IdentityProvider

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityProvider(IdentityProvider):
    """Validate access tokens issued by Supabase Auth."""

    client: Client

    def resolve(self, access_token: str | None) -> Actor:
        """Return the token's user, or a guest when there is no token."""
        if not access_token:
            return Actor.guest()
        try:
            response = self.client.auth.get_user(access_token)
        except AuthError as exc:
            _logger.info("Rejected access token: %s", exc)
            raise AuthenticationRequired("Invalid or expired access token") from exc
        except httpx.HTTPError as exc:
            raise StoreUnavailable("Identity provider unreachable") from exc
        if response is None or response.user is None:
            raise AuthenticationRequired("Invalid or expired access token")
        return Actor(id=UUID(str(response.user.id)))
