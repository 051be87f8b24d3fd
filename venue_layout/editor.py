from __future__ import annotations

import math
from collections import deque
from typing import Any, Iterable, Optional, Union

from loguru import logger
from pydantic import ValidationError

from .curves import CurveConfig, arc_positions
from .generators import SEAT_SIZE, SeatBlockConfig, TableConfig, new_id, seat_block, table_with_seats
from .geometry import chord_arc_points, clamp_position, rotated, scaled_frame
from .model import (
    CATEGORY_TARGETS,
    ItemType,
    LayoutItem,
    LayoutValidationError,
    SeatCategory,
    VenueLayout,
)
from .numbering import SeatOverview, is_seat_number_taken, seat_label, seat_overview, suggest_seat_position
from .pricing import PriceOverview, effective_price, price_overview


HISTORY_LIMIT = 50
DEFAULT_CATEGORY_COLOR = "#10b981"

DEFAULT_ITEM_SIZES: dict[ItemType, tuple[float, float]] = {
    ItemType.seat: (SEAT_SIZE, SEAT_SIZE),
    ItemType.table: (60, 60),
    ItemType.booth: (80, 40),
    ItemType.stage: (120, 60),
    ItemType.screen: (100, 20),
    ItemType.entry: (40, 40),
    ItemType.exit: (40, 40),
    ItemType.washroom: (40, 40),
}


def _validation_message(e: ValidationError) -> str:
    first = e.errors()[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))


def _check_category_fields(fields: dict[str, Any]) -> dict[str, Any]:
    out = dict(fields)
    if "name" in out:
        name = (out["name"] or "").strip() if isinstance(out["name"], str) else ""
        if not name:
            raise LayoutValidationError("category name is required")
        out["name"] = name
    if "color" in out and not out["color"]:
        raise LayoutValidationError("category color is required")
    if "price" in out:
        price = out["price"]
        if isinstance(price, str):
            try:
                price = float(price)
            except ValueError:
                raise LayoutValidationError(f"category price must be a number: {out['price']!r}") from None
        if isinstance(price, bool) or not isinstance(price, (int, float)) or not math.isfinite(price):
            raise LayoutValidationError(f"category price must be a number: {out['price']!r}")
        if price < 0:
            raise LayoutValidationError("category price must be zero or more")
        out["price"] = float(price)
    if out.get("applies_to") is not None:
        try:
            target = ItemType(out["applies_to"])
        except ValueError:
            raise LayoutValidationError(f"unknown item type: {out['applies_to']!r}") from None
        if target not in CATEGORY_TARGETS:
            raise LayoutValidationError("categories apply to seats, tables or booths only")
        out["applies_to"] = target
    return out


class LayoutEditor:
    """
    Single-user editing session over one VenueLayout.

    Every mutation records an undo checkpoint first. Calls naming ids that no
    longer exist are no-ops and record nothing.
    """

    def __init__(self, layout: Optional[VenueLayout] = None, *, history_limit: int = HISTORY_LIMIT):
        self.layout = layout if layout is not None else VenueLayout()
        self._undo: deque[VenueLayout] = deque(maxlen=history_limit)
        self._redo: deque[VenueLayout] = deque(maxlen=history_limit)

    # history

    def _checkpoint(self) -> None:
        self._undo.append(self.layout.model_copy(deep=True))
        self._redo.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.layout)
        self.layout = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.layout)
        self.layout = self._redo.pop()
        return True

    def snapshot(self) -> dict:
        """Whole-document copy suitable for a last-write-wins save."""
        return self.layout.to_document()

    # lookups

    def _index(self, item_id: str) -> Optional[int]:
        for i, item in enumerate(self.layout.items):
            if item.id == item_id:
                return i
        return None

    def _existing(self, ids: Iterable[str]) -> list[int]:
        wanted = set(ids)
        return [i for i, item in enumerate(self.layout.items) if item.id in wanted]

    def _category_index(self, category_id: str) -> Optional[int]:
        for i, cat in enumerate(self.layout.categories):
            if cat.id == category_id:
                return i
        return None

    # items

    def _prepare_item(self, item: Union[LayoutItem, dict], taken: set[str]) -> LayoutItem:
        if isinstance(item, LayoutItem):
            data = item.model_dump()
        else:
            data = dict(item)
        item_type = data.get("type")
        try:
            item_type = ItemType(item_type)
        except ValueError:
            raise LayoutValidationError(f"unknown item type: {item_type!r}") from None
        dw, dh = DEFAULT_ITEM_SIZES[item_type]
        data.setdefault("w", dw)
        data.setdefault("h", dh)
        data.setdefault("x", 0.0)
        data.setdefault("y", 0.0)
        if not data.get("id"):
            while True:
                data["id"] = new_id(item_type.value)
                if data["id"] not in taken:
                    break
        elif data["id"] in taken:
            raise LayoutValidationError(f"item id already exists: {data['id']}")
        try:
            return LayoutItem.model_validate(data)
        except ValidationError as e:
            raise LayoutValidationError(_validation_message(e)) from e

    def add_item(self, item: Union[LayoutItem, dict]) -> LayoutItem:
        return self.add_items([item])[0]

    def add_items(self, items: Iterable[Union[LayoutItem, dict]]) -> list[LayoutItem]:
        taken = {i.id for i in self.layout.items}
        prepared = []
        for raw in items:
            item = self._prepare_item(raw, taken)
            taken.add(item.id)
            prepared.append(item)
        if not prepared:
            return []
        self._checkpoint()
        self.layout.items.extend(prepared)
        logger.debug("added {} item(s) to layout {}", len(prepared), self.layout.id)
        return prepared

    def add_default_item(self, item_type: Union[ItemType, str], x: float, y: float) -> LayoutItem:
        """Drop a palette item centered on (x, y) with its type's default size and label."""
        item_type = ItemType(item_type)
        w, h = DEFAULT_ITEM_SIZES[item_type]
        x, y = clamp_position(x - w / 2, y - h / 2, w, h, self.layout.canvas_w, self.layout.canvas_h)
        return self.add_item({"type": item_type, "x": x, "y": y, "w": w, "h": h, "label": item_type.value.capitalize()})

    def update_item(self, item_id: str, **fields: Any) -> Optional[LayoutItem]:
        idx = self._index(item_id)
        if idx is None:
            logger.debug("update_item: no item {}", item_id)
            return None
        fields.pop("id", None)
        current = self.layout.items[idx]
        try:
            updated = LayoutItem.model_validate({**current.model_dump(), **fields})
        except ValidationError as e:
            raise LayoutValidationError(_validation_message(e)) from e
        self._checkpoint()
        self.layout.items[idx] = updated
        return updated

    def remove_item(self, item_id: str) -> bool:
        return self.remove_items([item_id]) == 1

    def remove_items(self, ids: Iterable[str]) -> int:
        doomed = set(ids)
        keep = [i for i in self.layout.items if i.id not in doomed]
        removed = len(self.layout.items) - len(keep)
        if removed:
            self._checkpoint()
            self.layout.items = keep
            logger.debug("removed {} item(s)", removed)
        return removed

    remove = remove_items

    def move_items(self, ids: Iterable[str], dx: float, dy: float) -> int:
        idxs = self._existing(ids)
        if not idxs:
            return 0
        self._checkpoint()
        cw, ch = self.layout.canvas_w, self.layout.canvas_h
        for i in idxs:
            item = self.layout.items[i]
            x, y = clamp_position(item.x + dx, item.y + dy, item.w, item.h, cw, ch)
            self.layout.items[i] = item.model_copy(update={"x": x, "y": y})
        return len(idxs)

    def set_canvas_size(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise LayoutValidationError("canvas width and height must be positive")
        self._checkpoint()
        self.layout.canvas_w = int(width)
        self.layout.canvas_h = int(height)

    # categories

    def add_category(
        self,
        name: str,
        color: str = DEFAULT_CATEGORY_COLOR,
        price: Union[float, str] = 0,
        *,
        applies_to: Union[ItemType, str] = ItemType.seat,
    ) -> SeatCategory:
        fields = _check_category_fields({"name": name, "color": color, "price": price, "applies_to": applies_to})
        taken = {c.id for c in self.layout.categories}
        cat_id = new_id("cat")
        while cat_id in taken:
            cat_id = new_id("cat")
        cat = SeatCategory(id=cat_id, **fields)
        self._checkpoint()
        self.layout.categories.append(cat)
        logger.debug("added category {} ({})", cat.name, cat.id)
        return cat

    def update_category(self, category_id: str, **fields: Any) -> Optional[SeatCategory]:
        idx = self._category_index(category_id)
        if idx is None:
            logger.debug("update_category: no category {}", category_id)
            return None
        fields.pop("id", None)
        unknown = set(fields) - set(SeatCategory.model_fields)
        if unknown:
            raise LayoutValidationError(f"unknown category field(s): {', '.join(sorted(unknown))}")
        fields = _check_category_fields(fields)
        try:
            updated = SeatCategory.model_validate({**self.layout.categories[idx].model_dump(), **fields})
        except ValidationError as e:
            raise LayoutValidationError(_validation_message(e)) from e
        self._checkpoint()
        self.layout.categories[idx] = updated
        return updated

    def remove_category(self, category_id: str) -> int:
        """Delete a category and detach it from every item; returns the number detached."""
        idx = self._category_index(category_id)
        if idx is None:
            return 0
        self._checkpoint()
        del self.layout.categories[idx]
        detached = 0
        for i, item in enumerate(self.layout.items):
            if item.category_id == category_id:
                self.layout.items[i] = item.model_copy(update={"category_id": None})
                detached += 1
        logger.debug("removed category {}; detached {} item(s)", category_id, detached)
        return detached

    def duplicate_category(self, category_id: str) -> Optional[SeatCategory]:
        cat = self.layout.get_category(category_id)
        if cat is None:
            return None
        return self.add_category(
            f"{cat.name} Copy",
            cat.color,
            cat.price,
            applies_to=cat.applies_to or ItemType.seat,
        )

    # bulk transforms

    def rotate(self, ids: Iterable[str], delta: float) -> int:
        if isinstance(delta, bool) or not isinstance(delta, (int, float)) or not math.isfinite(delta):
            raise LayoutValidationError(f"rotation must be a finite number of degrees: {delta!r}")
        idxs = self._existing(ids)
        if not idxs:
            return 0
        self._checkpoint()
        for i in idxs:
            item = self.layout.items[i]
            self.layout.items[i] = item.model_copy(update={"rotation": rotated(item.rotation, delta)})
        logger.debug("rotated {} item(s) by {}", len(idxs), delta)
        return len(idxs)

    def scale(self, ids: Iterable[str], factor: float) -> int:
        idxs = self._existing(ids)
        if not idxs:
            return 0
        frames = {i: scaled_frame(self.layout.items[i], factor) for i in idxs}
        self._checkpoint()
        for i, (x, y, w, h) in frames.items():
            self.layout.items[i] = self.layout.items[i].model_copy(update={"x": x, "y": y, "w": w, "h": h})
        logger.debug("scaled {} item(s) by {}", len(idxs), factor)
        return len(idxs)

    def bulk_update_category(self, ids: Iterable[str], category_id: str) -> list[str]:
        """Assign category_id to the seats among ids; other item types are left alone."""
        if self.layout.get_category(category_id) is None:
            logger.debug("bulk_update_category: no category {}", category_id)
            return []
        seat_idxs = [i for i in self._existing(ids) if self.layout.items[i].is_seat]
        if not seat_idxs:
            return []
        self._checkpoint()
        for i in seat_idxs:
            self.layout.items[i] = self.layout.items[i].model_copy(update={"category_id": category_id})
        return [self.layout.items[i].id for i in seat_idxs]

    def arrange_along_curve(self, ids: Iterable[str], curvature: float, *, face_tangent: bool = True) -> int:
        """
        Spread the items evenly along an arc through the first and last item
        centers (layout order). The endpoints stay where they are.
        """
        idxs = self._existing(ids)
        if len(idxs) < 2:
            raise LayoutValidationError("select at least two items to arrange along a curve")
        items = [self.layout.items[i] for i in idxs]
        points = chord_arc_points(items[0].center, items[-1].center, len(items), curvature)
        self._checkpoint()
        last = len(idxs) - 1
        for n, (i, item, p) in enumerate(zip(idxs, items, points)):
            update: dict[str, Any] = {}
            if 0 < n < last:
                update["x"] = p.x - item.w / 2
                update["y"] = p.y - item.h / 2
            if face_tangent:
                update["rotation"] = p.tangent_deg
            self.layout.items[i] = item.model_copy(update=update)
        return len(idxs)

    def arrange_in_curve(self, ids: Iterable[str], config: CurveConfig) -> int:
        idxs = self._existing(ids)
        if not idxs:
            return 0
        points = arc_positions(config, len(idxs))
        self._checkpoint()
        for i, p in zip(idxs, points):
            item = self.layout.items[i]
            self.layout.items[i] = item.model_copy(
                update={"x": p.x - item.w / 2, "y": p.y - item.h / 2, "rotation": p.tangent_deg}
            )
        return len(idxs)

    # seats and tables

    def add_seat(self, x: float, y: float, category_id: Optional[str] = None, *, size: float = SEAT_SIZE) -> LayoutItem:
        """Place one seat centered on (x, y), numbered after the seats already in place."""
        row, number = suggest_seat_position(self.layout.items)
        sx, sy = clamp_position(x - size / 2, y - size / 2, size, size, self.layout.canvas_w, self.layout.canvas_h)
        return self.add_item(
            {
                "type": ItemType.seat,
                "x": sx,
                "y": sy,
                "w": size,
                "h": size,
                "category_id": category_id,
                "row_label": row,
                "seat_number": number,
                "label": seat_label(row, number),
            }
        )

    def renumber_seat(self, item_id: str, row_label: str, seat_number: int) -> Optional[LayoutItem]:
        item = self.layout.get_item(item_id)
        if item is None or not item.is_seat:
            return None
        row_label = (row_label or "").strip().upper()
        if not row_label:
            raise LayoutValidationError("row label is required")
        if seat_number is None or seat_number <= 0:
            raise LayoutValidationError("seat number must be a positive integer")
        if is_seat_number_taken(self.layout.items, row_label, seat_number, exclude_id=item_id):
            raise LayoutValidationError(f"seat {row_label}{seat_number} already exists")
        return self.update_item(item_id, row_label=row_label, seat_number=seat_number, label=seat_label(row_label, seat_number))

    def add_seat_block(self, config: SeatBlockConfig, x: float, y: float) -> list[LayoutItem]:
        try:
            seats = seat_block(
                config,
                x,
                y,
                canvas_w=self.layout.canvas_w,
                canvas_h=self.layout.canvas_h,
                existing=self.layout.items,
            )
        except ValueError as e:
            raise LayoutValidationError(str(e)) from e
        return self.add_items(seats)

    def add_table(self, config: TableConfig, x: float, y: float) -> list[LayoutItem]:
        return self.add_items(table_with_seats(config, x, y))

    # read-side helpers

    def effective_price(self, item_id: str) -> Optional[float]:
        item = self.layout.get_item(item_id)
        if item is None:
            return None
        return effective_price(item, self.layout.categories_by_id())

    def seat_overview(self) -> SeatOverview:
        return seat_overview(self.layout.items)

    def price_overview(self) -> PriceOverview:
        return price_overview(self.layout)
