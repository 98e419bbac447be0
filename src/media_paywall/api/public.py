"""Client-facing read endpoints: entitlements, prices and purchases.

Store failures on these paths degrade to locked content and system default
prices instead of failing the page.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request

from media_paywall.api.dependencies import is_degraded, reading_actor
from media_paywall.domain.catalog import ItemType, PackageType
from media_paywall.domain.errors import StoreUnavailable
from media_paywall.domain.models import Actor
from media_paywall.domain.pricing import (
    DEFAULT_ITEM_PRICES,
    DEFAULT_PACKAGE_PRICES,
    format_price,
)

if TYPE_CHECKING:
    from media_paywall.containers import AppContainer

router = APIRouter(tags=["gallery"])
_logger = logging.getLogger(__name__)


@router.get("/profiles/{profile_id}/items/{item_type}/{item_index}/entitlement")
async def item_entitlement(
    profile_id: UUID,
    item_type: ItemType,
    item_index: int,
    request: Request,
    actor: Actor = Depends(reading_actor),
) -> dict[str, object]:
    """Return whether the actor may view one item."""
    container: AppContainer = request.app.state.container
    try:
        unlocked = container.entitlement_service.is_unlocked(
            actor, profile_id, item_index, item_type
        )
    except StoreUnavailable:
        _logger.warning("Entitlement degraded to locked: profile_id=%s", profile_id)
        return {"unlocked": False, "degraded": True}
    return {"unlocked": unlocked, "degraded": is_degraded(request)}


@router.get("/profiles/{profile_id}/entitlements")
async def profile_entitlements(
    profile_id: UUID, request: Request, actor: Actor = Depends(reading_actor)
) -> dict[str, object]:
    """Return per-item unlock flags and progress for a profile page."""
    container: AppContainer = request.app.state.container
    try:
        entitlements = container.entitlement_service.profile_entitlements(
            actor, profile_id
        )
    except StoreUnavailable:
        _logger.warning("Entitlements degraded to locked: profile_id=%s", profile_id)
        return {
            "profile_id": str(profile_id),
            "photos": [],
            "videos": [],
            "progress": None,
            "package_fully_unlocked": False,
            "degraded": True,
        }
    progress = entitlements.progress
    return {
        "profile_id": str(profile_id),
        "photos": entitlements.photos,
        "videos": entitlements.videos,
        "progress": {
            "photos_unlocked": progress.photos_unlocked,
            "videos_unlocked": progress.videos_unlocked,
            "total_photos": progress.total_photos,
            "total_videos": progress.total_videos,
            "all_photos_unlocked": progress.all_photos_unlocked,
            "all_videos_unlocked": progress.all_videos_unlocked,
        },
        "package_fully_unlocked": entitlements.package_fully_unlocked,
        "degraded": is_degraded(request),
    }


@router.get("/profiles/{profile_id}/items/{item_type}/{item_index}/price")
async def item_price(
    profile_id: UUID, item_type: ItemType, item_index: int, request: Request
) -> dict[str, object]:
    """Return the display price of one item."""
    container: AppContainer = request.app.state.container
    try:
        minor_units = container.pricing_service.price_for(
            profile_id, item_index, item_type, use_cache=True
        )
    except StoreUnavailable:
        _logger.warning("Item price degraded to default: profile_id=%s", profile_id)
        return _price_payload(DEFAULT_ITEM_PRICES[item_type], degraded=True)
    return _price_payload(minor_units)


@router.get("/profiles/{profile_id}/packages/{package_type}/price")
async def package_price(
    profile_id: UUID, package_type: PackageType, request: Request
) -> dict[str, object]:
    """Return the display price of a package."""
    container: AppContainer = request.app.state.container
    try:
        minor_units = container.pricing_service.package_type_price(
            profile_id, package_type, use_cache=True
        )
    except StoreUnavailable:
        _logger.warning("Package price degraded to default: profile_id=%s", profile_id)
        return _price_payload(_default_package_price(package_type), degraded=True)
    return _price_payload(minor_units)


@router.get("/profiles/{profile_id}/prices")
async def price_quote(profile_id: UUID, request: Request) -> dict[str, object]:
    """Return every price a profile page renders."""
    container: AppContainer = request.app.state.container
    try:
        quote = container.pricing_service.price_quote(profile_id)
    except StoreUnavailable:
        # The item list is unknown; clients price each item from item_defaults.
        _logger.warning("Price quote degraded to defaults: profile_id=%s", profile_id)
        return {
            "profile_id": str(profile_id),
            "photos": [],
            "videos": [],
            "photo_package": DEFAULT_PACKAGE_PRICES[ItemType.PHOTO],
            "video_package": DEFAULT_PACKAGE_PRICES[ItemType.VIDEO],
            "item_defaults": {
                str(item_type): price for item_type, price in DEFAULT_ITEM_PRICES.items()
            },
            "degraded": True,
        }
    return {
        "profile_id": str(profile_id),
        "photos": quote.photos,
        "videos": quote.videos,
        "photo_package": quote.photo_package,
        "video_package": quote.video_package,
        "degraded": False,
    }


@router.get("/me/purchases")
async def purchased_items(
    request: Request, actor: Actor = Depends(reading_actor)
) -> dict[str, object]:
    """Return the signed-in actor's unlock records."""
    container: AppContainer = request.app.state.container
    try:
        records = container.entitlement_service.purchased_items(actor)
    except StoreUnavailable:
        _logger.warning("Purchases degraded to empty: actor_id=%s", actor.id)
        return {"purchases": [], "degraded": True}
    return {
        "purchases": [
            {
                "profile_id": str(record.profile_id),
                "unlock_type": record.unlock_type,
                "item_type": record.item_type,
                "item_index": record.item_index,
                "payment_id": record.payment_id,
                "unlocked_at": record.unlocked_at,
            }
            for record in records
        ],
        "degraded": is_degraded(request),
    }


def _price_payload(minor_units: int, degraded: bool = False) -> dict[str, object]:
    return {
        "minor_units": minor_units,
        "display": format_price(minor_units),
        "degraded": degraded,
    }


def _default_package_price(package_type: PackageType) -> int:
    if package_type == PackageType.PHOTOS:
        return DEFAULT_PACKAGE_PRICES[ItemType.PHOTO]
    if package_type == PackageType.VIDEOS:
        return DEFAULT_PACKAGE_PRICES[ItemType.VIDEO]
    return sum(DEFAULT_PACKAGE_PRICES.values())
