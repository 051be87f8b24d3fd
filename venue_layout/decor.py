from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Literal, Optional
from xml.sax.saxutils import escape

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator

from .model import LayoutError

if TYPE_CHECKING:
    from .client import LayoutStorageClient


DecorType = Literal["stage", "screen", "entry", "exit", "washroom"]

# (background, text, border) per decor type
DECOR_STYLES: dict[str, tuple[str, str, str]] = {
    "stage": ("#374151", "#FFFFFF", "#1F2937"),
    "screen": ("#111827", "#FFFFFF", "#000000"),
    "entry": ("#DCFCE7", "#065F46", "#10B981"),
    "exit": ("#FEE2E2", "#991B1B", "#EF4444"),
    "washroom": ("#DBEAFE", "#1E40AF", "#3B82F6"),
}


def _pick(raw: dict, flat: str, nested: str, axis: str) -> Any:
    if raw.get(flat) is not None:
        return raw[flat]
    inner = raw.get(nested)
    if isinstance(inner, dict):
        return inner.get(axis)
    return None


class DecorItem(BaseModel):
    """
    Fixed venue feature drawn over a layout. The event feed sends either flat
    (x, y, w, h, label) or nested (pos.x, pos.y, size.x, size.y, lbl) entries;
    both normalize to this shape on the way in.
    """

    id: str
    type: DecorType
    x: float = 0.0
    y: float = 0.0
    w: float = Field(gt=0)
    h: float = Field(gt=0)
    label: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = {
            "id": data.get("id") or data.get("_id"),
            "type": data.get("type"),
            "x": _pick(data, "x", "pos", "x"),
            "y": _pick(data, "y", "pos", "y"),
            "w": _pick(data, "w", "size", "x"),
            "h": _pick(data, "h", "size", "y"),
            "label": data.get("label") or data.get("lbl"),
        }
        if out["id"] is not None:
            out["id"] = str(out["id"])
        return {k: v for k, v in out.items() if v is not None}

    @property
    def display_label(self) -> str:
        return self.label or self.type.upper()


def normalize_decor(payload: Any) -> list[DecorItem]:
    """Accepts {"items": [...]} or a bare list; entries that do not parse are dropped."""
    if isinstance(payload, dict):
        payload = payload.get("items")
    if not isinstance(payload, list):
        return []
    out: list[DecorItem] = []
    for raw in payload:
        try:
            out.append(DecorItem.model_validate(raw))
        except ValidationError as e:
            logger.debug("skipping decor entry {!r}: {}", raw, e.error_count())
    return out


def load_event_decor(client: "LayoutStorageClient", event_id: Optional[str]) -> list[DecorItem]:
    """Event decor for an overlay. Any failure yields no decor rather than an error."""
    if not event_id:
        return []
    try:
        return normalize_decor(client.get_event_decor(event_id))
    except LayoutError as e:
        logger.warning("decor for event {} unavailable: {}", event_id, e)
        return []


def render_decor_overlay(items: Iterable[DecorItem], *, offset_x: float = 0.0, offset_y: float = 0.0) -> str:
    lines = ['<g class="decor" pointer-events="none">']
    for d in items:
        bg, fg, border = DECOR_STYLES[d.type]
        x, y = d.x + offset_x, d.y + offset_y
        size = max(10, min(16, int(min(d.w, d.h) / 3)))
        lines.append(
            f'<rect x="{x:g}" y="{y:g}" width="{d.w:g}" height="{d.h:g}" rx="6" '
            f'fill="{bg}" stroke="{border}" stroke-width="2" opacity="0.9"/>'
        )
        lines.append(
            f'<text x="{x + d.w / 2:g}" y="{y + d.h / 2:g}" font-size="{size}" font-weight="600" '
            f'text-anchor="middle" dominant-baseline="central" fill="{fg}">{escape(d.display_label)}</text>'
        )
    lines.append("</g>")
    return "\n".join(lines)

