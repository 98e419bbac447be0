"""Pydantic request models for the paywall API."""

from uuid import UUID

from pydantic import BaseModel, Field

from media_paywall.domain.catalog import ItemType, PackageType
from media_paywall.domain.payments import LineItem


class LineItemRequest(BaseModel):
    """One purchase line. A client-supplied price is accepted but ignored."""

    profile_id: UUID
    item_type: ItemType | None = None
    item_index: int | None = Field(default=None, ge=0)
    package_type: PackageType | None = None
    price_minor_units: int | None = None

    def to_line_item(self) -> LineItem:
        return LineItem(
            profile_id=self.profile_id,
            item_type=self.item_type,
            item_index=self.item_index,
            package_type=self.package_type,
        )


class CheckoutRequest(BaseModel):
    """Checkout payload; the nonce is reused by the client on retry."""

    line_items: list[LineItemRequest]
    nonce: str = Field(min_length=1, max_length=128)


class SubmitPaymentRequest(BaseModel):
    """Card submission for a pending intent."""

    provider_token: str
    source_id: str | None = None
    verification_token: str | None = None

    def card_details(self) -> dict[str, object]:
        return self.model_dump(exclude={"provider_token"}, exclude_none=True)


class ProfileCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    bio: str | None = None


class MediaItemCreateRequest(BaseModel):
    item_type: ItemType
    url: str = Field(min_length=1)
    is_locked: bool | None = None


class ItemLockRequest(BaseModel):
    is_locked: bool


class ProfileUnlockRequest(BaseModel):
    is_unlocked: bool


class ItemPriceRequest(BaseModel):
    minor_units: int


class ProfilePricesRequest(BaseModel):
    """Profile-level defaults in minor units; omitted fields are left alone."""

    photo_price: int | None = None
    package_price: int | None = None
    video_price: int | None = None
    video_package_price: int | None = None


class GrantUnlockRequest(BaseModel):
    """Complimentary unlock for one user."""

    user_id: UUID
    profile_id: UUID
    item_type: ItemType | None = None
    item_index: int | None = Field(default=None, ge=0)
    package_type: PackageType | None = None
