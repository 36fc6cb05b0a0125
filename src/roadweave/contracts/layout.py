"""Output contract of the generator using Pydantic models.

These records are the only data handed to persistence and rendering.  They
carry no behaviour; every vector is stored as a plain ``(x, y)`` tuple so the
whole document round-trips through JSON unchanged.
"""

from __future__ import annotations

import math
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

XY = tuple[float, float]
RectT = tuple[float, float, float, float]  # (x_min, y_min, width, height)


def _finite(xy: XY, what: str) -> XY:
    if len(xy) != 2 or any(not math.isfinite(c) for c in xy):
        raise ValueError(f"{what} must be finite (x,y)")
    return (float(xy[0]), float(xy[1]))


class RoadClass(str, Enum):
    ARTERIAL = "arterial"
    LOCAL = "local"


class RoadSegment(BaseModel):
    start: XY
    end: XY
    width: float = Field(gt=0)
    road_class: RoadClass

    model_config = ConfigDict(extra="forbid")

    @field_validator("start", "end")
    @classmethod
    def _check_xy(cls, v: XY) -> XY:
        return _finite(v, "road endpoint")

    @property
    def length(self) -> float:
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])


class IntersectionConnector(BaseModel):
    """Contact point between a road and an intersection polygon."""

    point: XY
    normal: XY  # road direction, pointing away from the intersection center
    width: float

    model_config = ConfigDict(extra="forbid")


class IntersectionData(BaseModel):
    points: list[XY]
    connectors: list[IntersectionConnector] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @field_validator("points")
    @classmethod
    def _check_points(cls, v: list[XY]) -> list[XY]:
        if len(v) < 3:
            raise ValueError("intersection polygon must have >=3 vertices")
        return [_finite(xy, f"points[{i}]") for i, xy in enumerate(v)]


class LotData(BaseModel):
    lot_id: str
    bounds: RectT
    corners: list[XY]
    rotation_deg: float
    owner_character_id: str | None = None

    model_config = ConfigDict(extra="forbid")


class WorldLayout(BaseModel):
    world_bounds: RectT
    park_bounds: RectT
    park_corners: list[XY] = Field(default_factory=list)
    park_rotation_deg: float = 0.0
    lots: list[LotData] = Field(default_factory=list)
    intersections: list[IntersectionData] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class GeneratedWorld(BaseModel):
    """Save document: layout, road network and optional character records."""

    save_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    layout: WorldLayout
    road_network: list[RoadSegment] = Field(default_factory=list)
    mains: list[Any] = Field(default_factory=list)
    sides: list[Any] = Field(default_factory=list)
    extras: list[Any] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def lots(self) -> list[LotData]:
        return self.layout.lots


__all__ = [
    "XY",
    "RectT",
    "RoadClass",
    "RoadSegment",
    "IntersectionConnector",
    "IntersectionData",
    "LotData",
    "WorldLayout",
    "GeneratedWorld",
]
