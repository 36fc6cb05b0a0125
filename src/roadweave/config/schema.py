"""Pydantic models for generation configuration."""
from __future__ import annotations

from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FOOT_TO_METER = 0.3048

Range = Tuple[float, float]


def _check_range(v: Range) -> Range:
    lo, hi = float(v[0]), float(v[1])
    if hi < lo:
        raise ValueError(f"range upper bound {hi} is below lower bound {lo}")
    return (lo, hi)


class WorldCfg(BaseModel):
    edge_padding: float = Field(default=60.0, ge=0)
    edge_padding_percent: float = Field(default=0.10, ge=0, lt=0.5)

    model_config = ConfigDict(extra="forbid")


class PatchCfg(BaseModel):
    patches_x: int = Field(default=3, ge=1)
    patches_y: int = Field(default=3, ge=1)
    seed_jitter: float = Field(default=0.33, ge=0, le=0.5)
    angle_step_deg: int = Field(default=15, ge=1, le=180)
    cell_w_range: Range = (80.0, 180.0)
    cell_h_range: Range = (80.0, 180.0)
    arterial_every_range: Range = (3.0, 5.0)
    local_bounds_margin: float = Field(default=2.0, ge=0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("cell_w_range", "cell_h_range", "arterial_every_range")
    @classmethod
    def _ordered(cls, v: Range) -> Range:
        v = _check_range(v)
        if v[0] <= 0:
            raise ValueError("ranges must be positive")
        return v


class RoadCfg(BaseModel):
    units_per_meter: float = Field(default=1.0, gt=0)
    local_lane_ft: float = Field(default=11.0, gt=0)
    local_lanes_per_dir: int = Field(default=1, ge=1)
    arterial_lane_ft: float = Field(default=12.0, gt=0)
    arterial_lanes_per_dir: int = Field(default=2, ge=1)
    sidewalk_ft: float = Field(default=6.0, ge=0)
    clearance_ft: float = Field(default=1.5, ge=0)
    curb_setback_ft: float = Field(default=0.5, ge=0)

    model_config = ConfigDict(extra="forbid")

    def feet(self, ft: float) -> float:
        return float(ft) * FOOT_TO_METER * self.units_per_meter

    @property
    def local_width(self) -> float:
        return self.feet(2 * self.local_lanes_per_dir * self.local_lane_ft)

    @property
    def arterial_width(self) -> float:
        return self.feet(2 * self.arterial_lanes_per_dir * self.arterial_lane_ft)

    @property
    def expand(self) -> float:
        """Sidewalk plus clearance margin around intersections."""
        return self.feet(self.sidewalk_ft + self.clearance_ft)

    @property
    def curb_setback(self) -> float:
        return self.feet(self.curb_setback_ft)


class ConnectorCfg(BaseModel):
    min_spacing: float = Field(default=40.0, ge=0)
    min_reach: float = Field(default=10.0, ge=0)
    base_max_reach: float = Field(default=60.0, gt=0)
    max_reach_scale: float = Field(default=5.0, gt=0)
    hit_bias: float = Field(default=0.001, ge=0)
    edge_every_cells: int = Field(default=3, ge=1)
    edge_stripe_near_scale: float = Field(default=0.8, ge=0)
    corner_edge_margin: float = Field(default=0.2, ge=0)

    model_config = ConfigDict(extra="forbid")


class FrayCfg(BaseModel):
    enable: bool = True
    detect_radius: float = Field(default=25.0, ge=0)
    length_range: Range = (-80.0, 400.0)
    pull_back_range: Range = (0.3, 0.6)
    min_length: float = Field(default=1.0, ge=0)
    max_retract_ratio: float = Field(default=0.95, gt=0, lt=1)

    model_config = ConfigDict(extra="forbid")

    @field_validator("length_range")
    @classmethod
    def _ordered(cls, v: Range) -> Range:
        return _check_range(v)

    @field_validator("pull_back_range")
    @classmethod
    def _fraction(cls, v: Range) -> Range:
        v = _check_range(v)
        if v[0] < 0 or v[1] >= 1:
            raise ValueError("pull_back_range must lie in [0, 1)")
        return v


class IntersectionCfg(BaseModel):
    parallel_dot: float = Field(default=0.995, gt=0, le=1)
    emit_min_length_sq: float = Field(default=0.25, ge=0)

    model_config = ConfigDict(extra="forbid")


class LotCfg(BaseModel):
    enable: bool = True
    frontage_ft_range: Range = (35.0, 60.0)
    depth_ft_range: Range = (50.0, 90.0)
    spacing_ft_range: Range = (8.0, 16.0)
    front_setback_ft: float = Field(default=6.0, ge=0)
    intersection_setback_ft: float = Field(default=35.0, ge=0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("frontage_ft_range", "depth_ft_range", "spacing_ft_range")
    @classmethod
    def _positive(cls, v: Range) -> Range:
        v = _check_range(v)
        if v[0] <= 0:
            raise ValueError("lot ranges must be positive")
        return v


class ProgressCfg(BaseModel):
    """Number of loop iterations between yields of each stage."""

    fray_every: int = Field(default=32, ge=1)
    scan_rows_every: int = Field(default=32, ge=1)
    groups_every: int = Field(default=8, ge=1)
    trims_every: int = Field(default=64, ge=1)
    lots_every: int = Field(default=64, ge=1)

    model_config = ConfigDict(extra="forbid")


class GenerationConfig(BaseModel):
    seed: int | None = None
    log_level: Literal["none", "info", "debug"] = "none"
    world: WorldCfg = Field(default_factory=WorldCfg)
    patches: PatchCfg = Field(default_factory=PatchCfg)
    roads: RoadCfg = Field(default_factory=RoadCfg)
    connectors: ConnectorCfg = Field(default_factory=ConnectorCfg)
    fray: FrayCfg = Field(default_factory=FrayCfg)
    intersections: IntersectionCfg = Field(default_factory=IntersectionCfg)
    lots: LotCfg = Field(default_factory=LotCfg)
    progress: ProgressCfg = Field(default_factory=ProgressCfg)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_reach(self):
        c = self.connectors
        if c.min_reach > max(c.base_max_reach, c.max_reach_scale * 10.0):
            raise ValueError("connectors.min_reach exceeds every possible maximum reach")
        return self

    @property
    def merge_distance(self) -> float:
        r = self.roads
        return max(r.arterial_width, r.local_width) + 2.0 * r.expand


__all__ = [
    "FOOT_TO_METER",
    "WorldCfg",
    "PatchCfg",
    "RoadCfg",
    "ConnectorCfg",
    "FrayCfg",
    "IntersectionCfg",
    "LotCfg",
    "ProgressCfg",
    "GenerationConfig",
]
