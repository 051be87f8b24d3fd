from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from .model import VenueLayout


class SeatStatus(str, Enum):
    available = "available"
    booked = "booked"
    reserved = "reserved"
    blocked = "blocked"


UNCATEGORIZED = "Uncategorized"


@dataclass
class CategoryCount:
    total: int = 0
    available: int = 0
    price: float = 0.0

    def to_dict(self) -> dict:
        return {"total": self.total, "available": self.available, "price": self.price}


@dataclass
class SeatAvailability:
    total_seats: int = 0
    available_seats: int = 0
    booked_seats: int = 0
    reserved_seats: int = 0
    blocked_seats: int = 0
    category_counts: dict[str, CategoryCount] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalSeats": self.total_seats,
            "availableSeats": self.available_seats,
            "bookedSeats": self.booked_seats,
            "reservedSeats": self.reserved_seats,
            "blockedSeats": self.blocked_seats,
            "categoryCounts": {k: v.to_dict() for k, v in self.category_counts.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "SeatAvailability":
        return cls(
            total_seats=int(data.get("totalSeats", 0)),
            available_seats=int(data.get("availableSeats", 0)),
            booked_seats=int(data.get("bookedSeats", 0)),
            reserved_seats=int(data.get("reservedSeats", 0)),
            blocked_seats=int(data.get("blockedSeats", 0)),
            category_counts={
                name: CategoryCount(
                    total=int(c.get("total", 0)),
                    available=int(c.get("available", 0)),
                    price=float(c.get("price", 0)),
                )
                for name, c in (data.get("categoryCounts") or {}).items()
            },
        )


def seat_availability(layout: VenueLayout, statuses: Mapping[str, SeatStatus]) -> SeatAvailability:
    """Count seats by status; seats with no recorded status are available."""
    cats = layout.categories_by_id()
    out = SeatAvailability()
    for seat in layout.seats():
        status = SeatStatus(statuses.get(seat.id, SeatStatus.available))
        out.total_seats += 1
        if status == SeatStatus.available:
            out.available_seats += 1
        elif status == SeatStatus.booked:
            out.booked_seats += 1
        elif status == SeatStatus.reserved:
            out.reserved_seats += 1
        else:
            out.blocked_seats += 1

        cat = cats.get(seat.category_id) if seat.category_id else None
        name = cat.name if cat is not None else UNCATEGORIZED
        bucket = out.category_counts.setdefault(name, CategoryCount(price=cat.price if cat is not None else 0.0))
        bucket.total += 1
        if status == SeatStatus.available:
            bucket.available += 1
    return out
