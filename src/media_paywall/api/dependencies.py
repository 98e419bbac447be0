"""Shared FastAPI dependencies."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Header, Request

from media_paywall.domain.errors import StoreUnavailable
from media_paywall.domain.models import Actor

if TYPE_CHECKING:
    from media_paywall.containers import AppContainer

_BEARER_PREFIX = "bearer "
_logger = logging.getLogger(__name__)


async def current_actor(
    request: Request, authorization: str | None = Header(default=None)
) -> Actor:
    """Resolve the bearer token to an actor; no token means guest."""
    container: AppContainer = request.app.state.container
    return container.identity_provider.resolve(_bearer_token(authorization))


async def reading_actor(
    request: Request, authorization: str | None = Header(default=None)
) -> Actor:
    """Resolve the actor for a read path.

    An unreachable identity provider reads as a guest, and the request is
    flagged degraded so the response can say so.
    """
    container: AppContainer = request.app.state.container
    try:
        return container.identity_provider.resolve(_bearer_token(authorization))
    except StoreUnavailable:
        _logger.warning("Identity lookup degraded to guest: path=%s", request.url.path)
        request.state.degraded = True
        return Actor.guest()


def is_degraded(request: Request) -> bool:
    return bool(getattr(request.state, "degraded", False))


def _bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith(_BEARER_PREFIX):
        return authorization[len(_BEARER_PREFIX) :].strip() or None
    return None
