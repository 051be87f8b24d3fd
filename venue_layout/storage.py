from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from .model import LayoutError, VenueLayout


def load_layout(path: str | Path) -> VenueLayout:
    p = Path(path)
    if not p.exists():
        raise LayoutError(f"layout file not found: {p}")

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise LayoutError(f"failed to read layout JSON: {e}") from e

    if not isinstance(data, dict):
        raise LayoutError("layout JSON must be an object")
    return VenueLayout.from_document(data)


def save_layout(layout: VenueLayout, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(layout.to_document(), indent=2, sort_keys=True) + "\n", encoding="utf-8")


def maybe_init_layout(
    path: str | Path,
    *,
    name: Optional[str] = None,
    canvas_w: Optional[int] = None,
    canvas_h: Optional[int] = None,
    overwrite: bool = False,
) -> VenueLayout:
    p = Path(path)
    if p.exists() and not overwrite:
        return load_layout(p)

    fields = {"name": name, "canvas_w": canvas_w, "canvas_h": canvas_h}
    try:
        layout = VenueLayout(**{k: v for k, v in fields.items() if v is not None})
    except ValueError as e:
        raise LayoutError(f"invalid layout settings: {e}") from e
    save_layout(layout, p)
    return layout
