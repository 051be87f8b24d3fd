from __future__ import annotations

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .geometry import ArcPoint, _deg_to_rad, _norm_deg


class CurveKind(str, Enum):
    arc = "arc"
    circle = "circle"
    semi_circle = "semi-circle"


class CurveConfig(BaseModel):
    """Place items on a circle of a given center and radius; items face the center."""

    center_x: float
    center_y: float
    radius: float = Field(gt=0)
    start_angle: float = -30.0
    end_angle: float = 30.0
    kind: CurveKind = CurveKind.arc


class CurvePreset(BaseModel):
    name: str
    radius: float
    start_angle: float
    end_angle: float
    kind: CurveKind = CurveKind.arc

    def at(self, center_x: float, center_y: float) -> CurveConfig:
        return CurveConfig(
            center_x=center_x,
            center_y=center_y,
            radius=self.radius,
            start_angle=self.start_angle,
            end_angle=self.end_angle,
            kind=self.kind,
        )


PRESETS: dict[str, CurvePreset] = {
    p.name: p
    for p in (
        CurvePreset(name="Theatre Curve", radius=200, start_angle=-30, end_angle=30),
        CurvePreset(name="Full Circle", radius=150, start_angle=0, end_angle=360, kind=CurveKind.circle),
        CurvePreset(name="Semi Circle", radius=180, start_angle=0, end_angle=180, kind=CurveKind.semi_circle),
        CurvePreset(name="Wide Arc", radius=250, start_angle=-60, end_angle=60),
    )
}


def preset(name: str) -> Optional[CurvePreset]:
    return PRESETS.get(name)


def _angle_at(config: CurveConfig, i: int, count: int) -> float:
    if config.kind == CurveKind.circle:
        return i / count * 360
    span = 180.0 if config.kind == CurveKind.semi_circle else config.end_angle - config.start_angle
    if count == 1:
        return config.start_angle
    return config.start_angle + i / (count - 1) * span


def arc_positions(config: CurveConfig, count: int) -> list[ArcPoint]:
    """Center points for count items; tangent_deg is the inward-facing rotation."""
    out = []
    for i in range(count):
        deg = _angle_at(config, i, count)
        rad = _deg_to_rad(deg)
        out.append(
            ArcPoint(
                config.center_x + math.cos(rad) * config.radius,
                config.center_y + math.sin(rad) * config.radius,
                _norm_deg(deg + 90),
            )
        )
    return out
