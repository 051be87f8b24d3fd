from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from shapely import affinity
from shapely.geometry import Point, box
from shapely.geometry.base import BaseGeometry

from .model import LayoutItem, LayoutValidationError


@dataclass(frozen=True)
class ArcPoint:
    x: float
    y: float
    tangent_deg: float


def _deg_to_rad(d: float) -> float:
    return d * math.pi / 180.0


def _rad_to_deg(r: float) -> float:
    return r * 180.0 / math.pi


def _norm_deg(d: float) -> float:
    return d % 360


def rotated(rotation: float, delta: float) -> float:
    return _norm_deg(rotation + delta)


def scaled_frame(item: LayoutItem, factor: float) -> tuple[float, float, float, float]:
    """Scale an item's box by factor about its center; returns (x, y, w, h)."""
    if not (isinstance(factor, (int, float)) and math.isfinite(factor) and factor > 0):
        raise LayoutValidationError(f"scale factor must be a positive number: {factor!r}")
    return (
        item.x - item.w * (factor - 1) / 2,
        item.y - item.h * (factor - 1) / 2,
        item.w * factor,
        item.h * factor,
    )


def clamp_position(x: float, y: float, w: float, h: float, canvas_w: float, canvas_h: float) -> tuple[float, float]:
    # Items larger than the canvas are pinned to the origin.
    return (
        max(0.0, min(canvas_w - w, x)),
        max(0.0, min(canvas_h - h, y)),
    )


def item_footprint(item: LayoutItem) -> BaseGeometry:
    """Area the item covers on the canvas: a disc for seats, a rotated box otherwise."""
    cx, cy = item.center
    if item.is_seat:
        return Point(cx, cy).buffer(min(item.w, item.h) / 2)
    rect = box(item.x, item.y, item.x + item.w, item.y + item.h)
    if item.rotation:
        rect = affinity.rotate(rect, item.rotation, origin=(cx, cy))
    return rect


def item_at_point(items: Sequence[LayoutItem], x: float, y: float) -> Optional[LayoutItem]:
    p = Point(x, y)
    # Later items are drawn on top.
    for item in reversed(items):
        if item_footprint(item).intersects(p):
            return item
    return None


def items_in_box(items: Iterable[LayoutItem], x1: float, y1: float, x2: float, y2: float) -> list[LayoutItem]:
    """Items whose center lies inside the (unordered) corner pair, edges inclusive."""
    region = box(min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))
    return [i for i in items if region.intersects(Point(*i.center))]


def selection_bounds(items: Iterable[LayoutItem]) -> Optional[tuple[float, float, float, float]]:
    items = list(items)
    if not items:
        return None
    return (
        min(i.x for i in items),
        min(i.y for i in items),
        max(i.x + i.w for i in items),
        max(i.y + i.h for i in items),
    )


def selection_center(items: Iterable[LayoutItem]) -> Optional[tuple[float, float]]:
    b = selection_bounds(items)
    if b is None:
        return None
    return ((b[0] + b[2]) / 2, (b[1] + b[3]) / 2)


def chord_arc_points(
    start: tuple[float, float],
    end: tuple[float, float],
    count: int,
    curvature: float,
) -> list[ArcPoint]:
    """
    Evenly spaced points on the circular arc through start and end whose
    sagitta is curvature * chord / 2. Curvature 0 is the straight chord,
    +1 / -1 a semicircle bulging to the left / right of the start->end
    direction (canvas coordinates, y down).
    """
    if count < 2:
        raise LayoutValidationError("curve arrangement needs at least two items")
    if not math.isfinite(curvature):
        raise LayoutValidationError(f"curvature must be a finite number: {curvature!r}")

    (x0, y0), (x1, y1) = start, end
    chord = math.hypot(x1 - x0, y1 - y0)
    steps = count - 1

    if chord == 0 or curvature == 0:
        heading = _rad_to_deg(math.atan2(y1 - y0, x1 - x0)) if chord else 0.0
        return [
            ArcPoint(x0 + (x1 - x0) * i / steps, y0 + (y1 - y0) * i / steps, _norm_deg(heading))
            for i in range(count)
        ]

    ux, uy = (x1 - x0) / chord, (y1 - y0) / chord
    nx, ny = uy, -ux  # left of travel when y grows downward
    sagitta = curvature * chord / 2
    radius = (chord * chord / 4 + sagitta * sagitta) / (2 * abs(sagitta))

    mx, my = (x0 + x1) / 2, (y0 + y1) / 2
    offset = sagitta - math.copysign(radius, sagitta)
    cx, cy = mx + nx * offset, my + ny * offset

    a0 = math.atan2(y0 - cy, x0 - cx)
    a1 = math.atan2(y1 - cy, x1 - cx)
    apex = math.atan2(my + ny * sagitta - cy, mx + nx * sagitta - cx)

    ccw = (a1 - a0) % (2 * math.pi)
    if (apex - a0) % (2 * math.pi) < ccw:
        sweep = ccw
    else:
        sweep = ccw - 2 * math.pi

    out: list[ArcPoint] = []
    for i in range(count):
        if i == 0:
            px, py, a = x0, y0, a0
        elif i == steps:
            px, py, a = x1, y1, a1
        else:
            a = a0 + sweep * i / steps
            px, py = cx + radius * math.cos(a), cy + radius * math.sin(a)
        tangent = a + (math.pi / 2 if sweep > 0 else -math.pi / 2)
        out.append(ArcPoint(px, py, _norm_deg(_rad_to_deg(tangent))))
    return out
