"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from media_paywall.api.checkout import payment_status_payload
from media_paywall.api.models import (
    GrantUnlockRequest,
    ItemLockRequest,
    ItemPriceRequest,
    MediaItemCreateRequest,
    ProfileCreateRequest,
    ProfilePricesRequest,
    ProfileUnlockRequest,
)
from media_paywall.domain.catalog import ItemType
from media_paywall.domain.errors import InvalidLineItem
from media_paywall.domain.payments import PaymentStatus  # noqa: TC001
from media_paywall.domain.unlocks import UnlockRecord

if TYPE_CHECKING:
    from media_paywall.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/profiles", dependencies=[Depends(require_admin)])
async def list_profiles(request: Request) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    return {"profiles": container.catalog_service.list_profiles()}


@router.post("/profiles", dependencies=[Depends(require_admin)])
async def create_profile(
    payload: ProfileCreateRequest, request: Request
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    profile = container.catalog_service.create_profile(payload.name, payload.bio)
    return {"profile": profile}


@router.get("/profiles/{profile_id}", dependencies=[Depends(require_admin)])
async def profile_detail(profile_id: UUID, request: Request) -> dict[str, object]:
    """Return a profile with its media items and resolved prices."""
    container: AppContainer = request.app.state.container
    profile = container.catalog_service.get_profile(profile_id)
    return {
        "profile": profile,
        "items": container.catalog_service.list_media_items(profile_id),
        "prices": container.pricing_service.price_quote(profile_id),
    }


@router.post("/profiles/{profile_id}/items", dependencies=[Depends(require_admin)])
async def add_media_item(
    profile_id: UUID, payload: MediaItemCreateRequest, request: Request
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    item = container.catalog_service.add_media_item(
        profile_id, payload.item_type, payload.url, payload.is_locked
    )
    return {"item": item}


@router.put(
    "/profiles/{profile_id}/items/{item_type}/{item_index}/lock",
    dependencies=[Depends(require_admin)],
)
async def set_item_lock(
    profile_id: UUID,
    item_type: ItemType,
    item_index: int,
    payload: ItemLockRequest,
    request: Request,
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    item = container.catalog_service.set_item_lock(
        profile_id, item_index, item_type, payload.is_locked
    )
    return {"item": item}


@router.put(
    "/profiles/{profile_id}/items/{item_type}/{item_index}/cover",
    dependencies=[Depends(require_admin)],
)
async def set_cover(
    profile_id: UUID, item_type: ItemType, item_index: int, request: Request
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    item = container.catalog_service.set_cover(profile_id, item_index, item_type)
    return {"item": item}


@router.put(
    "/profiles/{profile_id}/items/{item_type}/{item_index}/price",
    dependencies=[Depends(require_admin)],
)
async def set_item_price(
    profile_id: UUID,
    item_type: ItemType,
    item_index: int,
    payload: ItemPriceRequest,
    request: Request,
) -> dict[str, object]:
    """Set an explicit per-item price in minor units."""
    container: AppContainer = request.app.state.container
    override = container.pricing_service.set_item_price(
        profile_id, item_index, item_type, payload.minor_units
    )
    return {"price": override}


@router.put("/profiles/{profile_id}/prices", dependencies=[Depends(require_admin)])
async def set_profile_prices(
    profile_id: UUID, payload: ProfilePricesRequest, request: Request
) -> dict[str, object]:
    """Set profile-level price defaults in minor units."""
    container: AppContainer = request.app.state.container
    profile = container.pricing_service.set_profile_prices(
        profile_id, payload.model_dump(exclude_unset=True)
    )
    return {"profile": profile}


@router.put("/profiles/{profile_id}/unlocked", dependencies=[Depends(require_admin)])
async def set_profile_unlocked(
    profile_id: UUID, payload: ProfileUnlockRequest, request: Request
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    profile = container.catalog_service.set_profile_unlocked(
        profile_id, payload.is_unlocked
    )
    return {"profile": profile}


@router.post("/unlocks", dependencies=[Depends(require_admin)])
async def grant_unlock(payload: GrantUnlockRequest, request: Request) -> dict[str, str]:
    """Grant complimentary access to an item or a package."""
    container: AppContainer = request.app.state.container
    if payload.package_type is not None:
        record = UnlockRecord.for_package(
            payload.user_id, payload.profile_id, payload.package_type
        )
    elif payload.item_type is not None and payload.item_index is not None:
        record = UnlockRecord.for_item(
            payload.user_id, payload.profile_id, payload.item_index, payload.item_type
        )
    else:
        raise InvalidLineItem("An unlock needs a package type or an item")
    container.catalog_service.get_profile(payload.profile_id)
    container.entitlement_service.grant(record)
    container.audit_service.record_event(
        "unlock", payload.user_id, "granted", after={"key": record.key}
    )
    return {"status": "ok"}


@router.get("/payments", dependencies=[Depends(require_admin)])
async def list_payments(
    request: Request,
    payment_status: PaymentStatus | None = Query(default=None, alias="status"),
    limit: int = 50,
) -> dict[str, object]:
    """Return recent payments, optionally filtered by status."""
    container: AppContainer = request.app.state.container
    payments = container.reconciliation_service.list_payments(payment_status, limit)
    return {"payments": [payment_status_payload(payment) for payment in payments]}


@router.post(
    "/payments/{intent_id}/refund", dependencies=[Depends(require_admin)]
)
async def refund_payment(intent_id: str, request: Request) -> dict[str, object]:
    """Record a refund for a completed payment."""
    container: AppContainer = request.app.state.container
    payment = container.reconciliation_service.refund(intent_id)
    return payment_status_payload(payment)


@router.get("/audit", dependencies=[Depends(require_admin)])
async def audit_events(
    request: Request, entity_type: str | None = None, limit: int = 50
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    return {"events": container.audit_service.recent_events(entity_type, limit)}
