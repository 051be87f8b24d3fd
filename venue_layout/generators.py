from __future__ import annotations

import math
import uuid
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field
from shapely.geometry import Polygon

from .geometry import clamp_position
from .model import ItemType, LayoutItem, TableShape
from .numbering import next_available_row, row_index, row_label, used_rows


SEAT_SIZE = 24
TABLE_SEAT_OFFSET = 24

DEFAULT_TABLE_SIZES: dict[TableShape, tuple[float, float]] = {
    TableShape.round: (80, 80),
    TableShape.rect: (120, 60),
    TableShape.triangle: (90, 78),
    TableShape.half: (100, 50),
}


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class RowDirection(str, Enum):
    a_to_z = "A-Z"
    z_to_a = "Z-A"
    one_to_n = "1-N"
    n_to_one = "N-1"


class NumberDirection(str, Enum):
    one_to_n = "1-N"
    n_to_one = "N-1"


class SeatBlockConfig(BaseModel):
    rows: int = Field(default=5, ge=1, le=50)
    columns: int = Field(default=10, ge=1, le=100)
    seat_size: float = Field(default=SEAT_SIZE, gt=0)
    row_spacing: float = Field(default=30, gt=0)
    column_spacing: float = Field(default=30, gt=0)
    category_id: Optional[str] = None
    rotation: float = 0.0
    row_direction: RowDirection = RowDirection.a_to_z
    number_direction: NumberDirection = NumberDirection.one_to_n
    starting_row: Optional[str] = None


def _block_row_label(config: SeatBlockConfig, row: int, taken_rows: set[str]) -> str:
    start = (config.starting_row or "").strip()
    numeric = config.row_direction in (RowDirection.one_to_n, RowDirection.n_to_one)

    if numeric:
        first = int(start) if start.isdigit() and int(start) > 0 else None
        if config.row_direction == RowDirection.one_to_n:
            return str((first or 1) + row)
        return str(max(1, (first or config.rows) - row))

    if start:
        base = row_index(start)
    elif config.row_direction == RowDirection.z_to_a:
        base = 25
    else:
        base = row_index(next_available_row(taken_rows))

    if config.row_direction == RowDirection.z_to_a:
        return row_label(max(0, base - row))
    return row_label(base + row)


def seat_block(
    config: SeatBlockConfig,
    x: float,
    y: float,
    *,
    canvas_w: float,
    canvas_h: float,
    existing: Iterable[LayoutItem] = (),
) -> list[LayoutItem]:
    """
    A rows x columns grid of seats centered on (x, y), numbered per the
    configured row/number directions and kept inside the canvas.
    """
    taken = used_rows(existing)
    seats: list[LayoutItem] = []
    for r in range(config.rows):
        rl = _block_row_label(config, r, taken)
        for c in range(config.columns):
            number = c + 1 if config.number_direction == NumberDirection.one_to_n else config.columns - c
            sx = x + c * config.column_spacing - config.columns * config.column_spacing / 2
            sy = y + r * config.row_spacing - config.rows * config.row_spacing / 2
            sx, sy = clamp_position(sx, sy, config.seat_size, config.seat_size, canvas_w, canvas_h)
            seats.append(
                LayoutItem(
                    id=new_id("seat"),
                    type=ItemType.seat,
                    x=sx,
                    y=sy,
                    w=config.seat_size,
                    h=config.seat_size,
                    rotation=config.rotation,
                    category_id=config.category_id,
                    row_label=rl,
                    seat_number=number,
                    label=f"{rl}{number}",
                )
            )
    return seats


class TableConfig(BaseModel):
    shape: TableShape = TableShape.round
    seat_count: int = Field(default=4, ge=0, le=24)
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    label: Optional[str] = None
    category_id: Optional[str] = None
    seat_category_id: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)

    def size(self) -> tuple[float, float]:
        dw, dh = DEFAULT_TABLE_SIZES[self.shape]
        return (self.width or dw, self.height or dh)


def _outline(shape: TableShape, w: float, h: float) -> Polygon:
    if shape == TableShape.triangle:
        return Polygon([(w / 2, 0), (w, h), (0, h)])
    return Polygon([(0, 0), (w, 0), (w, h), (0, h)])


def table_seat_positions(
    shape: TableShape,
    seat_count: int,
    width: float,
    height: float,
    *,
    offset: float = TABLE_SEAT_OFFSET,
) -> list[tuple[float, float]]:
    """Seat centers relative to the table's top-left corner."""
    if seat_count <= 0:
        return []
    cx, cy = width / 2, height / 2

    if shape == TableShape.round:
        dist = min(width, height) / 2 + offset
        out = []
        for i in range(seat_count):
            a = 2 * math.pi * i / seat_count - math.pi / 2  # first seat at the top
            out.append((cx + math.cos(a) * dist, cy + math.sin(a) * dist))
        return out

    if shape == TableShape.half:
        dist = width / 2 + offset
        out = []
        for i in range(seat_count):
            a = math.pi * i / (seat_count - 1) if seat_count > 1 else math.pi / 2
            out.append((cx + math.cos(a) * dist, cy + math.sin(a) * dist))
        return out

    ring = _outline(shape, width, height).buffer(offset, join_style="mitre").exterior
    step = ring.length / seat_count
    return [(p.x, p.y) for p in (ring.interpolate(i * step) for i in range(seat_count))]


def table_with_seats(
    config: TableConfig,
    x: float,
    y: float,
    *,
    seat_size: float = SEAT_SIZE,
) -> list[LayoutItem]:
    """A table centered on (x, y) followed by its seats, labelled "<table>-<n>"."""
    w, h = config.size()
    table_id = new_id("table")
    label = config.label or f"Table {table_id[-4:]}"
    metadata = {"price": config.price} if config.price else {}
    table = LayoutItem(
        id=table_id,
        type=ItemType.table,
        x=x - w / 2,
        y=y - h / 2,
        w=w,
        h=h,
        label=label,
        shape=config.shape,
        table_seats=config.seat_count,
        seat_count=config.seat_count,
        category_id=config.category_id,
        metadata=metadata,
    )
    items = [table]
    for n, (px, py) in enumerate(table_seat_positions(config.shape, config.seat_count, w, h), start=1):
        items.append(
            LayoutItem(
                id=f"seat_{table_id}_{n}",
                type=ItemType.seat,
                x=table.x + px - seat_size / 2,
                y=table.y + py - seat_size / 2,
                w=seat_size,
                h=seat_size,
                category_id=config.seat_category_id,
                label=f"{label}-{n}",
                seat_number=n,
                table_id=table_id,
            )
        )
    return items
