from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .model import LayoutItem


UNKNOWN_ROW = "Unknown"
DEFAULT_ROW_CAPACITY = 10

# Search bound for free row labels; covers A..ZZ plus some of the three-letter range.
_ROW_SEARCH_LIMIT = 1000


def row_label(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA, 51 -> AZ, 52 -> BA, 701 -> ZZ, 702 -> AAA."""
    if index < 0:
        raise ValueError(f"row index must be non-negative: {index}")
    out = ""
    n = index + 1
    while n > 0:
        n -= 1
        out = chr(ord("A") + n % 26) + out
        n //= 26
    return out


def row_index(label: str) -> int:
    label = (label or "").strip().upper()
    if not label or not label.isascii() or not label.isalpha():
        raise ValueError(f"row label must be letters A-Z: {label!r}")
    n = 0
    for ch in label:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def _row_sort_key(label: str) -> tuple:
    try:
        return (0, row_index(label), label)
    except ValueError:
        return (1, 0, label)


def seat_label(row: Optional[str], number: Optional[int]) -> str:
    return f"{row or ''}{number if number is not None else ''}"


def seats_by_row(items: Iterable[LayoutItem]) -> dict[str, list[LayoutItem]]:
    rows: dict[str, list[LayoutItem]] = {}
    for item in items:
        if not item.is_seat:
            continue
        rows.setdefault(item.row_label or UNKNOWN_ROW, []).append(item)
    return {k: rows[k] for k in sorted(rows, key=_row_sort_key)}


def used_rows(items: Iterable[LayoutItem]) -> set[str]:
    return {i.row_label for i in items if i.is_seat and i.row_label}


def next_available_row(rows: Iterable[str]) -> str:
    taken = set(rows)
    for i in range(_ROW_SEARCH_LIMIT):
        label = row_label(i)
        if label not in taken:
            return label
    return row_label(_ROW_SEARCH_LIMIT)


def next_available_seat(items: Iterable[LayoutItem]) -> tuple[str, int]:
    return (next_available_row(used_rows(items)), 1)


def next_seat_number(items: Iterable[LayoutItem], row: str) -> int:
    taken = {i.seat_number for i in items if i.is_seat and i.row_label == row and i.seat_number}
    n = 1
    while n in taken:
        n += 1
    return n


def row_gaps(numbers: Iterable[int]) -> list[int]:
    present = sorted({n for n in numbers if n and n > 0})
    if not present:
        return []
    have = set(present)
    return [n for n in range(present[0], present[-1] + 1) if n not in have]


@dataclass(frozen=True)
class RowStats:
    row: str
    count: int
    min_seat: Optional[int]
    max_seat: Optional[int]
    gaps: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "row": self.row,
            "count": self.count,
            "minSeat": self.min_seat,
            "maxSeat": self.max_seat,
            "gaps": list(self.gaps),
        }


def row_stats(row: str, seats: Iterable[LayoutItem]) -> RowStats:
    seats = list(seats)
    numbers = [s.seat_number for s in seats if s.seat_number and s.seat_number > 0]
    return RowStats(
        row=row,
        count=len(seats),
        min_seat=min(numbers) if numbers else None,
        max_seat=max(numbers) if numbers else None,
        gaps=row_gaps(numbers),
    )


@dataclass(frozen=True)
class SeatOverview:
    total_seats: int
    rows: list[RowStats]
    next_available_row: str

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def rows_with_gaps(self) -> list[str]:
        return [r.row for r in self.rows if r.gaps]

    def to_dict(self) -> dict:
        return {
            "totalSeats": self.total_seats,
            "totalRows": self.total_rows,
            "nextAvailableRow": self.next_available_row,
            "rows": [r.to_dict() for r in self.rows],
        }


def seat_overview(items: Iterable[LayoutItem]) -> SeatOverview:
    items = list(items)
    grouped = seats_by_row(items)
    return SeatOverview(
        total_seats=sum(len(v) for v in grouped.values()),
        rows=[row_stats(k, v) for k, v in grouped.items()],
        next_available_row=next_available_row(used_rows(items)),
    )


def suggest_seat_position(items: Iterable[LayoutItem], *, row_capacity: int = DEFAULT_ROW_CAPACITY) -> tuple[str, int]:
    """
    Where the next hand-placed seat goes: keep filling the last row until it
    holds row_capacity seats, then open the next free row at seat 1.
    """
    items = list(items)
    rows = [r for r in seats_by_row(items) if r != UNKNOWN_ROW]
    if not rows:
        return ("A", 1)
    last = rows[-1]
    in_last = [i for i in items if i.is_seat and i.row_label == last]
    if len(in_last) < row_capacity:
        return (last, next_seat_number(items, last))
    return next_available_seat(items)


def is_seat_number_taken(
    items: Iterable[LayoutItem],
    row: Optional[str],
    number: int,
    *,
    exclude_id: Optional[str] = None,
) -> bool:
    return any(
        i.is_seat and i.id != exclude_id and i.row_label == row and i.seat_number == number for i in items
    )
