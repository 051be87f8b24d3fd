from __future__ import annotations

import math
from typing import Iterable, Mapping, Optional, Sequence
from xml.sax.saxutils import escape, quoteattr

from .decor import DecorItem, render_decor_overlay
from .model import ItemType, LayoutItem, SeatCategory, VenueLayout
from .pricing import effective_price, format_price


BACKGROUND = "#fafafa"
SEAT_STROKE = "#065f46"
ITEM_STROKE = "#374151"
SELECTED_STROKE = "#2563eb"

DEFAULT_FILLS: dict[ItemType, str] = {
    ItemType.seat: "#10b981",
    ItemType.table: "#fbbf24",
    ItemType.booth: "#93c5fd",
    ItemType.stage: "#374151",
    ItemType.screen: "#111827",
}
NEUTRAL_FILL = "#e5e7eb"
DARK_FILLS = frozenset({ItemType.stage, ItemType.screen})


def _num(v: float) -> str:
    # Compact, stable numbers for attributes.
    r = round(float(v), 2)
    return str(int(r)) if r.is_integer() else f"{r:g}"


def item_fill(item: LayoutItem, cats: Mapping[str, SeatCategory]) -> str:
    cat = cats.get(item.category_id) if item.category_id else None
    if cat is not None:
        return cat.color
    return DEFAULT_FILLS.get(item.type, NEUTRAL_FILL)


def item_text(item: LayoutItem) -> str:
    if item.is_seat:
        return item.display_label
    return item.display_label or item.type.value.capitalize()


def item_title(item: LayoutItem, cats: Mapping[str, SeatCategory]) -> str:
    parts = [item.display_label or item.type.value]
    cat = cats.get(item.category_id) if item.category_id else None
    if cat is not None:
        parts.append(cat.name)
    price = effective_price(item, cats)
    # An uncategorized seat resolves to 0; there is nothing worth showing.
    if price is not None and not (item.is_seat and cat is None):
        parts.append(format_price(price))
    return " • ".join(parts)


def _font_size(item: LayoutItem) -> int:
    return max(10, min(16, math.floor(min(item.w, item.h) / 3)))


def _render_item(item: LayoutItem, cats: Mapping[str, SeatCategory], selected: bool) -> list[str]:
    cx, cy = item.center
    fill = item_fill(item, cats)
    text = item_text(item)
    lines = [f'<g transform="rotate({_num(item.rotation)} {_num(cx)} {_num(cy)})" data-id={quoteattr(item.id)}>']
    lines.append(f"<title>{escape(item_title(item, cats))}</title>")

    if item.is_seat:
        stroke = SELECTED_STROKE if selected else SEAT_STROKE
        r = min(item.w, item.h) / 2
        lines.append(
            f'<circle cx="{_num(cx)}" cy="{_num(cy)}" r="{_num(r)}" fill={quoteattr(fill)} '
            f'stroke="{stroke}" stroke-width="{2 if selected else 1}"/>'
        )
        if text:
            lines.append(
                f'<text x="{_num(cx)}" y="{_num(cy)}" font-size="10" text-anchor="middle" '
                f'dominant-baseline="central" fill="#ffffff">{escape(text)}</text>'
            )
    else:
        stroke = SELECTED_STROKE if selected else ITEM_STROKE
        lines.append(
            f'<rect x="{_num(item.x)}" y="{_num(item.y)}" width="{_num(item.w)}" height="{_num(item.h)}" '
            f'rx="4" fill={quoteattr(fill)} stroke="{stroke}" stroke-width="{2 if selected else 1}"/>'
        )
        dark = item.type in DARK_FILLS and fill == DEFAULT_FILLS[item.type]
        text_fill = "#ffffff" if dark else "#111827"
        lines.append(
            f'<text x="{_num(cx)}" y="{_num(cy)}" font-size="{_font_size(item)}" text-anchor="middle" '
            f'dominant-baseline="central" fill="{text_fill}">{escape(text)}</text>'
        )

    lines.append("</g>")
    return lines


def render_svg(
    layout: VenueLayout,
    *,
    decor: Optional[Sequence[DecorItem]] = None,
    decor_offset: tuple[float, float] = (0.0, 0.0),
    selected: Iterable[str] = (),
) -> str:
    """
    Read-only SVG of a layout, scaled to its container (viewBox + meet).
    Decor, when given, is drawn above the layout items.
    """
    cats = layout.categories_by_id()
    chosen = set(selected)
    w, h = layout.canvas_w, layout.canvas_h

    lines = [
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {w} {h}" '
        f'preserveAspectRatio="xMidYMid meet" width="100%" height="100%">',
        f'<rect x="0" y="0" width="{w}" height="{h}" fill="{BACKGROUND}"/>',
    ]
    for item in layout.items:
        lines.extend(_render_item(item, cats, item.id in chosen))

    if decor:
        lines.append(render_decor_overlay(decor, offset_x=decor_offset[0], offset_y=decor_offset[1]))

    lines.append("</svg>")
    return "\n".join(lines) + "\n"
