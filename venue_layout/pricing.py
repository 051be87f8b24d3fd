from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from .model import ItemType, LayoutItem, PRICED_ITEM_TYPES, SeatCategory, VenueLayout


CURRENCY = "KD"


def categories_by_id(categories: Iterable[SeatCategory]) -> dict[str, SeatCategory]:
    return {c.id: c for c in categories}


def _positive_number(v: object) -> bool:
    # bool is an int subclass; a stray True must not read as a price of 1.
    return isinstance(v, (int, float)) and not isinstance(v, bool) and v > 0


def effective_price(item: LayoutItem, cats: Mapping[str, SeatCategory]) -> Optional[float]:
    """
    Resolve the price a buyer pays for an item.

    Tables and booths use their own metadata price first, then their category's
    price; both must be positive to count. Seats are priced only through their
    category (0 when it does not resolve). Other item types are never priced.
    """
    cat = cats.get(item.category_id) if item.category_id else None

    if item.type in PRICED_ITEM_TYPES:
        own = item.metadata.get("price")
        if _positive_number(own):
            return float(own)
        if cat is not None and cat.price > 0:
            return cat.price
        return None

    if item.type == ItemType.seat:
        return cat.price if cat is not None else 0.0

    return None


def format_price(price: Optional[float], currency: str = CURRENCY) -> str:
    if price is None:
        return "Not set"
    if float(price).is_integer():
        return f"{currency} {int(price)}"
    return f"{currency} {price:.2f}"


def categories_for_item_type(categories: Iterable[SeatCategory], item_type: ItemType) -> list[SeatCategory]:
    # A category without an explicit target is a seat category.
    target = ItemType(item_type)
    return [c for c in categories if (c.applies_to or ItemType.seat) == target]


@dataclass(frozen=True)
class PricedItem:
    id: str
    type: ItemType
    label: str
    category_id: Optional[str]
    price: Optional[float]


@dataclass
class PriceOverview:
    tables: list[PricedItem] = field(default_factory=list)
    booths: list[PricedItem] = field(default_factory=list)

    @property
    def missing_tables(self) -> int:
        return sum(1 for t in self.tables if t.price is None)

    @property
    def missing_booths(self) -> int:
        return sum(1 for b in self.booths if b.price is None)

    def to_dict(self) -> dict:
        def _row(p: PricedItem) -> dict:
            return {"id": p.id, "label": p.label, "categoryId": p.category_id, "price": p.price}

        return {
            "tables": [_row(t) for t in self.tables],
            "booths": [_row(b) for b in self.booths],
            "missingTables": self.missing_tables,
            "missingBooths": self.missing_booths,
        }


def price_overview(layout: VenueLayout) -> PriceOverview:
    cats = layout.categories_by_id()
    out = PriceOverview()
    for item in layout.items:
        if item.type not in PRICED_ITEM_TYPES:
            continue
        row = PricedItem(
            id=item.id,
            type=item.type,
            label=item.label or item.type.value.capitalize(),
            category_id=item.category_id,
            price=effective_price(item, cats),
        )
        (out.tables if item.type == ItemType.table else out.booths).append(row)
    return out
