from __future__ import annotations

import math
from collections import Counter
from typing import Iterable, Iterator, Optional

from .editor import LayoutEditor
from .geometry import item_at_point, items_in_box
from .model import ItemType, LayoutValidationError, SeatCategory
from .pricing import categories_for_item_type


ROTATE_STEP = 90
SCALE_DOWN = 0.8
SCALE_UP = 1.2
MIN_CUSTOM_SCALE = 0.1
MAX_CUSTOM_SCALE = 3.0


class Selection:
    """Ordered set of selected item ids. Lives only as long as the editing session."""

    def __init__(self, ids: Iterable[str] = ()):
        self._ids: dict[str, None] = dict.fromkeys(ids)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def set(self, ids: Iterable[str]) -> None:
        self._ids = dict.fromkeys(ids)

    def clear(self) -> None:
        self._ids.clear()

    def click(self, item_id: str, *, multi: bool = False) -> None:
        if not multi:
            self._ids = {item_id: None}
        elif item_id in self._ids:
            del self._ids[item_id]
        else:
            self._ids[item_id] = None

    def prune(self, existing: Iterable[str]) -> None:
        keep = set(existing)
        self._ids = {i: None for i in self._ids if i in keep}


class BulkOperationsPanel:
    """Batch actions over the current selection; every action goes through the editor."""

    def __init__(self, editor: LayoutEditor, selection: Optional[Selection] = None):
        self.editor = editor
        self.selection = selection if selection is not None else Selection()
        self.custom_angle = 0
        self.custom_scale = 1.0
        self.chosen_category_id: Optional[str] = None

    # selection

    def _sync(self) -> None:
        self.selection.prune(i.id for i in self.editor.layout.items)

    def select_at(self, x: float, y: float, *, multi: bool = False) -> Optional[str]:
        item = item_at_point(self.editor.layout.items, x, y)
        if item is None:
            if not multi:
                self.selection.clear()
            return None
        self.selection.click(item.id, multi=multi)
        return item.id

    def select_box(self, x1: float, y1: float, x2: float, y2: float, *, extend: bool = False) -> list[str]:
        hits = [i.id for i in items_in_box(self.editor.layout.items, x1, y1, x2, y2)]
        if extend:
            self.selection.set([*self.selection.ids, *hits])
        else:
            self.selection.set(hits)
        return hits

    def select_all(self) -> None:
        self.selection.set(i.id for i in self.editor.layout.items)

    @property
    def visible(self) -> bool:
        self._sync()
        return len(self.selection) > 0

    def selected_items(self):
        chosen = set(self.selection)
        return [i for i in self.editor.layout.items if i.id in chosen]

    def counts_by_type(self) -> dict[str, int]:
        counts = Counter(i.type.value for i in self.selected_items())
        return dict(counts)

    def selected_seat_ids(self) -> list[str]:
        return [i.id for i in self.selected_items() if i.type == ItemType.seat]

    # rotation

    def rotate_left(self) -> int:
        return self.editor.rotate(self.selection.ids, -ROTATE_STEP)

    def rotate_right(self) -> int:
        return self.editor.rotate(self.selection.ids, ROTATE_STEP)

    def set_custom_angle(self, value) -> int:
        try:
            self.custom_angle = int(float(value))
        except (TypeError, ValueError, OverflowError):
            self.custom_angle = 0
        return self.custom_angle

    def apply_custom_rotation(self) -> int:
        return self.editor.rotate(self.selection.ids, self.custom_angle)

    # scale

    def scale_down(self) -> int:
        return self.editor.scale(self.selection.ids, SCALE_DOWN)

    def scale_up(self) -> int:
        return self.editor.scale(self.selection.ids, SCALE_UP)

    def set_custom_scale(self, value) -> float:
        try:
            factor = float(value)
        except (TypeError, ValueError):
            raise LayoutValidationError(f"scale factor must be a number: {value!r}") from None
        if not math.isfinite(factor) or factor <= 0:
            raise LayoutValidationError("scale factor must be greater than zero")
        if not (MIN_CUSTOM_SCALE <= factor <= MAX_CUSTOM_SCALE):
            raise LayoutValidationError(f"scale factor must be between {MIN_CUSTOM_SCALE} and {MAX_CUSTOM_SCALE}")
        self.custom_scale = factor
        return factor

    def apply_custom_scale(self) -> int:
        return self.editor.scale(self.selection.ids, self.custom_scale)

    # category

    def category_options(self) -> list[SeatCategory]:
        return categories_for_item_type(self.editor.layout.categories, ItemType.seat)

    def choose_category(self, category_id: Optional[str]) -> None:
        self.chosen_category_id = category_id or None

    @property
    def can_apply_category(self) -> bool:
        return bool(self.chosen_category_id) and bool(self.selected_seat_ids())

    def apply_category(self) -> list[str]:
        if not self.chosen_category_id:
            raise LayoutValidationError("choose a category first")
        updated = self.editor.bulk_update_category(self.selection.ids, self.chosen_category_id)
        self.chosen_category_id = None
        return updated

    # curve

    @property
    def can_arrange_curve(self) -> bool:
        return len(self.selected_items()) >= 2

    def arrange_curve(self, curvature: float, *, face_tangent: bool = True) -> int:
        return self.editor.arrange_along_curve(self.selection.ids, curvature, face_tangent=face_tangent)

    # delete

    def delete_selected(self) -> int:
        removed = self.editor.remove(self.selection.ids)
        self.selection.clear()
        return removed
