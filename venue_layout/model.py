from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


DEFAULT_CANVAS_W = 1200
DEFAULT_CANVAS_H = 800


class LayoutError(Exception):
    pass


class LayoutValidationError(LayoutError):
    """Raised when user input is rejected; nothing has been applied."""


class ItemType(str, Enum):
    seat = "seat"
    table = "table"
    booth = "booth"
    stage = "stage"
    screen = "screen"
    entry = "entry"
    exit = "exit"
    washroom = "washroom"


# Tables and booths carry their own price; seats are priced through their category.
PRICED_ITEM_TYPES = frozenset({ItemType.table, ItemType.booth})
CATEGORY_TARGETS = frozenset({ItemType.seat, ItemType.table, ItemType.booth})


class TableShape(str, Enum):
    round = "round"
    rect = "rect"
    half = "half"
    triangle = "triangle"


# Shape names used by the table creator before the compact format settled on four.
LEGACY_SHAPES = {
    "square": "rect",
    "rectangle": "rect",
    "semi-circle": "half",
}


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SeatCategory(_Document):
    id: str
    name: str = Field(min_length=1)
    color: str = Field(min_length=1)
    price: float = Field(ge=0)
    applies_to: Optional[ItemType] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("category name must not be blank")
        return v

    @field_validator("price")
    @classmethod
    def _finite_price(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("category price must be a finite number")
        return v

    @field_validator("applies_to")
    @classmethod
    def _category_target(cls, v: Optional[ItemType]) -> Optional[ItemType]:
        if v is not None and v not in CATEGORY_TARGETS:
            raise ValueError("appliesTo must be one of seat, table, booth")
        return v


class LayoutItem(_Document):
    id: str
    type: ItemType
    x: float
    y: float
    w: float = Field(gt=0)
    h: float = Field(gt=0)
    rotation: float = 0.0
    category_id: Optional[str] = None
    label: Optional[str] = None

    # tables
    shape: Optional[TableShape] = None
    table_seats: Optional[int] = Field(default=None, ge=0)
    seat_count: Optional[int] = Field(default=None, ge=0)

    # seats
    row_label: Optional[str] = None
    seat_number: Optional[int] = Field(default=None, gt=0)
    table_id: Optional[str] = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("shape", mode="before")
    @classmethod
    def _legacy_shape(cls, v: Any) -> Any:
        if isinstance(v, str):
            return LEGACY_SHAPES.get(v, v)
        return v

    @field_validator("rotation")
    @classmethod
    def _normalize_rotation(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("rotation must be a finite number")
        return v % 360

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.w / 2, self.y + self.h / 2)

    @property
    def is_seat(self) -> bool:
        return self.type == ItemType.seat

    @property
    def display_label(self) -> str:
        if self.label:
            return self.label
        if self.row_label and self.seat_number is not None:
            return f"{self.row_label}{self.seat_number}"
        if self.seat_number is not None:
            return str(self.seat_number)
        return ""


class VenueLayout(_Document):
    id: Optional[str] = Field(default=None, alias="_id")
    name: str = "Untitled layout"
    venue_owner_id: Optional[str] = None
    event_id: Optional[str] = None
    items: list[LayoutItem] = Field(default_factory=list)
    categories: list[SeatCategory] = Field(default_factory=list)
    canvas_w: int = Field(default=DEFAULT_CANVAS_W, gt=0)
    canvas_h: int = Field(default=DEFAULT_CANVAS_H, gt=0)
    is_active: bool = True
    owner_can_edit: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def categories_by_id(self) -> dict[str, SeatCategory]:
        return {c.id: c for c in self.categories}

    def get_item(self, item_id: str) -> Optional[LayoutItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def get_category(self, category_id: Optional[str]) -> Optional[SeatCategory]:
        if not category_id:
            return None
        for cat in self.categories:
            if cat.id == category_id:
                return cat
        return None

    def seats(self) -> list[LayoutItem]:
        return [i for i in self.items if i.is_seat]

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    @classmethod
    def from_document(cls, data: dict) -> "VenueLayout":
        try:
            return cls.model_validate(data)
        except ValueError as e:
            raise LayoutError(f"invalid layout document: {e}") from e
