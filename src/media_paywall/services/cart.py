"""Client-side shopping cart."""

from collections import defaultdict
from dataclasses import dataclass, field
from uuid import UUID

from media_paywall.domain.catalog import ItemType
from media_paywall.domain.payments import LineItem


@dataclass(frozen=True)
class CartItem:
    profile_id: UUID
    item_index: int
    item_type: ItemType
    price_minor_units: int


@dataclass
class Cart:
    """Ephemeral selection of items; prices here are for display only."""

    items: list[CartItem] = field(default_factory=list)

    def add(self, item: CartItem) -> bool:
        """Add an item. Returns False when the same item is already present."""
        if any(_same_item(existing, item) for existing in self.items):
            return False
        self.items.append(item)
        return True

    def remove(self, profile_id: UUID, item_index: int, item_type: ItemType) -> None:
        self.items = [
            item
            for item in self.items
            if not (
                item.profile_id == profile_id
                and item.item_index == item_index
                and item.item_type == item_type
            )
        ]

    def clear(self) -> None:
        self.items = []

    def __len__(self) -> int:
        return len(self.items)

    def total_minor_units(self) -> int:
        return sum(item.price_minor_units for item in self.items)

    def grouped_by_profile(self) -> dict[UUID, list[CartItem]]:
        """Return items grouped per profile, keeping insertion order."""
        grouped: dict[UUID, list[CartItem]] = defaultdict(list)
        for item in self.items:
            grouped[item.profile_id].append(item)
        return dict(grouped)

    def to_line_items(self) -> list[LineItem]:
        """Return checkout line items; the server re-prices them."""
        return [
            LineItem(
                profile_id=item.profile_id,
                item_type=item.item_type,
                item_index=item.item_index,
                price_minor_units=item.price_minor_units,
            )
            for item in self.items
        ]


def _same_item(left: CartItem, right: CartItem) -> bool:
    return (
        left.profile_id == right.profile_id
        and left.item_index == right.item_index
        and left.item_type == right.item_type
    )
