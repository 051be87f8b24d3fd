from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .model import ItemType, PRICED_ITEM_TYPES, VenueLayout
from .pricing import effective_price, format_price


@dataclass(frozen=True)
class LegendCategory:
    id: str
    name: str
    color: str
    price: float

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color, "price": self.price}


@dataclass(frozen=True)
class LegendPricedItem:
    id: str
    type: ItemType
    label: str
    color: Optional[str]
    price: Optional[float]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "color": self.color,
            "price": self.price,
            "priceText": format_price(self.price),
        }


@dataclass
class Legend:
    seat_categories: list[LegendCategory] = field(default_factory=list)
    item_categories: list[LegendCategory] = field(default_factory=list)
    tables_and_booths: list[LegendPricedItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "seatCategories": [c.to_dict() for c in self.seat_categories],
            "itemCategories": [c.to_dict() for c in self.item_categories],
            "tablesAndBooths": [t.to_dict() for t in self.tables_and_booths],
        }


def build_legend(layout: VenueLayout) -> Legend:
    """
    Categories in use, split into seat and table/booth lists, plus every
    table and booth with its effective price.

    A category's appliesTo decides its list. Older documents without it fall
    back to usage: a category used by seats and by tables lands in both.
    """
    used_by_seats: set[str] = set()
    used_by_items: set[str] = set()
    for item in layout.items:
        if not item.category_id:
            continue
        if item.is_seat:
            used_by_seats.add(item.category_id)
        elif item.type in PRICED_ITEM_TYPES:
            used_by_items.add(item.category_id)

    legend = Legend()
    for cat in layout.categories:
        if cat.id not in used_by_seats and cat.id not in used_by_items:
            continue
        entry = LegendCategory(cat.id, cat.name, cat.color, cat.price)
        if cat.applies_to is not None:
            if cat.applies_to == ItemType.seat:
                legend.seat_categories.append(entry)
            else:
                legend.item_categories.append(entry)
            continue
        if cat.id in used_by_seats:
            legend.seat_categories.append(entry)
        if cat.id in used_by_items:
            legend.item_categories.append(entry)

    cats = layout.categories_by_id()
    priced = []
    for item in layout.items:
        if item.type not in PRICED_ITEM_TYPES:
            continue
        cat = cats.get(item.category_id) if item.category_id else None
        priced.append(
            LegendPricedItem(
                id=item.id,
                type=item.type,
                label=item.label or item.type.value.capitalize(),
                color=cat.color if cat is not None else None,
                price=effective_price(item, cats),
            )
        )
    legend.tables_and_booths = sorted(priced, key=lambda p: p.label)
    return legend
