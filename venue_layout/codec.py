from __future__ import annotations

from typing import Any, Mapping, Optional

from .availability import SeatStatus
from .model import (
    DEFAULT_CANVAS_H,
    DEFAULT_CANVAS_W,
    ItemType,
    LayoutError,
    LayoutItem,
    PRICED_ITEM_TYPES,
    SeatCategory,
    VenueLayout,
)
from .pricing import effective_price


# Compact booking format: seats and other items travel in separate lists with
# short keys (pos/size/rot/lbl/rl/sn/shp/ts/sc/catId/grpId).

NO_CATEGORY = "default"
WIRE_SEAT_SIZE = 24
WIRE_ITEM_SIZE = 50


def _xy(x: float, y: float) -> dict:
    return {"x": x, "y": y}


def _drop_none(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


def encode_seat(item: LayoutItem, status: SeatStatus = SeatStatus.available) -> dict:
    return _drop_none(
        {
            "id": item.id,
            "pos": _xy(item.x, item.y),
            "size": _xy(item.w, item.h),
            "catId": item.category_id or NO_CATEGORY,
            "rot": item.rotation,
            "rl": item.row_label,
            "sn": item.seat_number,
            "lbl": item.label,
            "grpId": item.table_id,
            "status": SeatStatus(status).value,
        }
    )


def encode_item(item: LayoutItem, cats: Mapping[str, SeatCategory]) -> dict:
    return _drop_none(
        {
            "id": item.id,
            "type": item.type.value,
            "pos": _xy(item.x, item.y),
            "size": _xy(item.w, item.h),
            "rot": item.rotation,
            "lbl": item.label,
            "shp": item.shape.value if item.shape else None,
            "ts": item.table_seats,
            "sc": item.seat_count,
            "catId": item.category_id,
            "price": effective_price(item, cats) if item.type in PRICED_ITEM_TYPES else None,
        }
    )


def encode_layout(layout: VenueLayout, *, statuses: Optional[Mapping[str, SeatStatus]] = None) -> dict:
    """Compact document for the booking side; table/booth prices are resolved here."""
    statuses = statuses or {}
    cats = layout.categories_by_id()
    seats = [encode_seat(i, statuses.get(i.id, SeatStatus.available)) for i in layout.items if i.is_seat]
    items = [encode_item(i, cats) for i in layout.items if not i.is_seat]
    return _drop_none(
        {
            "_id": layout.id,
            "name": layout.name,
            "venueOwnerId": layout.venue_owner_id,
            "eventId": layout.event_id,
            "seats": seats,
            "items": items,
            "categories": [c.model_dump(by_alias=True, exclude_none=True, mode="json") for c in layout.categories],
            "canvasW": layout.canvas_w,
            "canvasH": layout.canvas_h,
            "isActive": layout.is_active,
            "ownerCanEdit": layout.owner_can_edit,
        }
    )


def _pos(d: Mapping, key: str, default: float) -> tuple[float, float]:
    v = d.get(key) or {}
    if not isinstance(v, Mapping):
        raise TypeError(f"{key} must be an object with x and y")
    return (float(v.get("x", default)), float(v.get("y", default)))


def decode_seat(d: Mapping, category_ids: set[str]) -> tuple[LayoutItem, SeatStatus]:
    x, y = _pos(d, "pos", 0)
    w, h = _pos(d, "size", WIRE_SEAT_SIZE)
    cat = d.get("catId")
    if cat == NO_CATEGORY and NO_CATEGORY not in category_ids:
        cat = None
    item = LayoutItem(
        id=str(d["id"]),
        type=ItemType.seat,
        x=x,
        y=y,
        w=w,
        h=h,
        rotation=d.get("rot") or 0,
        category_id=cat,
        row_label=d.get("rl"),
        seat_number=d.get("sn"),
        label=d.get("lbl"),
        table_id=d.get("grpId"),
    )
    return item, SeatStatus(d.get("status") or SeatStatus.available)


def decode_item(d: Mapping) -> LayoutItem:
    x, y = _pos(d, "pos", 0)
    w, h = _pos(d, "size", WIRE_ITEM_SIZE)
    metadata: dict[str, Any] = {}
    if d.get("price") is not None:
        metadata["price"] = d["price"]
    return LayoutItem(
        id=str(d["id"]),
        type=ItemType(d["type"]),
        x=x,
        y=y,
        w=w,
        h=h,
        rotation=d.get("rot") or 0,
        label=d.get("lbl"),
        shape=d.get("shp"),
        table_seats=d.get("ts"),
        seat_count=d.get("sc"),
        category_id=d.get("catId"),
        metadata=metadata,
    )


def decode_layout_with_statuses(data: Mapping) -> tuple[VenueLayout, dict[str, SeatStatus]]:
    try:
        categories = [SeatCategory.model_validate(c) for c in data.get("categories") or []]
        cat_ids = {c.id for c in categories}
        items: list[LayoutItem] = []
        statuses: dict[str, SeatStatus] = {}
        for raw in data.get("seats") or []:
            seat, status = decode_seat(raw, cat_ids)
            items.append(seat)
            statuses[seat.id] = status
        items.extend(decode_item(raw) for raw in data.get("items") or [])
        layout = VenueLayout(
            id=data.get("_id") or data.get("id"),
            name=data.get("name") or "Untitled layout",
            venue_owner_id=data.get("venueOwnerId"),
            event_id=data.get("eventId"),
            items=items,
            categories=categories,
            canvas_w=data.get("canvasW") or DEFAULT_CANVAS_W,
            canvas_h=data.get("canvasH") or DEFAULT_CANVAS_H,
            is_active=data.get("isActive", True),
            owner_can_edit=bool(data.get("ownerCanEdit", False)),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise LayoutError(f"invalid compact layout: {e}") from e
    return layout, statuses


def decode_layout(data: Mapping) -> VenueLayout:
    return decode_layout_with_statuses(data)[0]
