from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from venue_layout.availability import SeatStatus
from venue_layout.model import LayoutItem, SeatCategory


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LayoutCreate(_Body):
    name: str = Field(min_length=1)
    venue_owner_id: Optional[str] = None
    event_id: Optional[str] = None
    items: list[LayoutItem] = Field(default_factory=list)
    categories: list[SeatCategory] = Field(default_factory=list)
    canvas_w: int = Field(default=1200, gt=0)
    canvas_h: int = Field(default=800, gt=0)
    is_active: bool = True
    owner_can_edit: bool = False


class LayoutPatch(_Body):
    # Any subset of the document; omitted fields are left as stored.
    name: Optional[str] = Field(default=None, min_length=1)
    venue_owner_id: Optional[str] = None
    event_id: Optional[str] = None
    items: Optional[list[LayoutItem]] = None
    categories: Optional[list[SeatCategory]] = None
    canvas_w: Optional[int] = Field(default=None, gt=0)
    canvas_h: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None
    owner_can_edit: Optional[bool] = None


class DuplicateRequest(_Body):
    name: Optional[str] = Field(default=None, min_length=1)


class SeatStatusUpdate(_Body):
    seat_id: str
    status: SeatStatus


class SeatStatusBatch(_Body):
    updates: list[SeatStatusUpdate] = Field(min_length=1)


class DecorUpsert(_Body):
    # Entries are stored as sent; the viewer normalizes them when it reads.
    items: list[dict[str, Any]] = Field(default_factory=list)
