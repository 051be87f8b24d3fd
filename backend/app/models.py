from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

from venue_layout.availability import SeatStatus
from venue_layout.model import VenueLayout


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return uuid.uuid4().hex


class LayoutRecord(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    venue_owner_id: Optional[str] = Field(default=None, index=True)
    event_id: Optional[str] = Field(default=None, index=True)

    canvas_w: int = 1200
    canvas_h: int = 800

    # JSON lists of layout items / categories in their document shape.
    items_json: str = "[]"
    categories_json: str = "[]"
    # JSON object: seat id -> SeatStatus value. Seats missing here are available.
    seat_status_json: str = "{}"

    is_active: bool = True
    owner_can_edit: bool = False

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def seat_statuses(self) -> dict[str, SeatStatus]:
        return {k: SeatStatus(v) for k, v in json.loads(self.seat_status_json or "{}").items()}

    def set_seat_statuses(self, statuses: dict[str, SeatStatus]) -> None:
        self.seat_status_json = json.dumps({k: SeatStatus(v).value for k, v in statuses.items()}, sort_keys=True)

    def to_layout(self) -> VenueLayout:
        return VenueLayout.model_validate(
            {
                "_id": self.id,
                "name": self.name,
                "venueOwnerId": self.venue_owner_id,
                "eventId": self.event_id,
                "items": json.loads(self.items_json or "[]"),
                "categories": json.loads(self.categories_json or "[]"),
                "canvasW": self.canvas_w,
                "canvasH": self.canvas_h,
                "isActive": self.is_active,
                "ownerCanEdit": self.owner_can_edit,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )

    def apply_layout(self, layout: VenueLayout) -> None:
        doc = layout.to_document()
        self.name = layout.name
        self.venue_owner_id = layout.venue_owner_id
        self.event_id = layout.event_id
        self.canvas_w = layout.canvas_w
        self.canvas_h = layout.canvas_h
        self.items_json = json.dumps(doc.get("items", []))
        self.categories_json = json.dumps(doc.get("categories", []))
        self.is_active = layout.is_active
        self.owner_can_edit = layout.owner_can_edit
        self.updated_at = _utc_now()


class EventDecor(SQLModel, table=True):
    event_id: str = Field(primary_key=True)

    # JSON list of decor entries as sent by the event editor (flat or nested shape).
    items_json: str = "[]"

    updated_at: datetime = Field(default_factory=_utc_now)

    def items(self) -> list[dict]:
        return json.loads(self.items_json or "[]")
