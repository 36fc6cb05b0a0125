"""Building lots along both sides of local roads."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterator, List, Set

import numpy as np

from roadweave.config.schema import LotCfg, RoadCfg
from roadweave.contracts.layout import LotData, RoadClass, RoadSegment
from roadweave.geometry import Array, Rect, normalized, polygon_bounds, polygons_intersect, vec
from .park import all_inside
from .segments import EdgeKey, edge_key

logger = logging.getLogger(__name__)

__all__ = ["LotDims", "lot_dims", "lot_corners", "place_lots"]


@dataclass(frozen=True)
class LotDims:
    sidewalk: float
    frontage: tuple
    depth: tuple
    spacing: tuple
    front_setback: float
    intersection_setback: float


def lot_dims(cfg: LotCfg, roads: RoadCfg) -> LotDims:
    ft = roads.feet
    fr = (ft(cfg.frontage_ft_range[0]), ft(cfg.frontage_ft_range[1]))
    de = (ft(cfg.depth_ft_range[0]), ft(cfg.depth_ft_range[1]))
    sp = (ft(cfg.spacing_ft_range[0]), ft(cfg.spacing_ft_range[1]))
    return LotDims(
        sidewalk=ft(roads.sidewalk_ft),
        frontage=(fr[0], max(fr)),
        depth=(de[0], max(de)),
        spacing=(sp[0], max(sp)),
        front_setback=ft(cfg.front_setback_ft),
        intersection_setback=ft(cfg.intersection_setback_ft),
    )


def lot_corners(start: Array, d: Array, perp: Array, pos: float, frontage: float,
                base: float, back: float, side: float) -> Array:
    return np.array(
        [
            start + d * pos + perp * side * base,
            start + d * (pos + frontage) + perp * side * base,
            start + d * (pos + frontage) + perp * side * back,
            start + d * pos + perp * side * back,
        ]
    )


class _LotIndex:
    """Placed lot polygons; bounding boxes as ``(x0, y0, x1, y1)`` rows."""

    def __init__(self):
        self.polys: List[Array] = []
        self.boxes = np.zeros((0, 4), dtype=float)

    def hits(self, corners: Array, box: Rect) -> bool:
        b = self.boxes
        near = (b[:, 2] > box.x_min) & (b[:, 0] < box.x_max) & (b[:, 3] > box.y_min) & (b[:, 1] < box.y_max)
        return any(polygons_intersect(corners, self.polys[k]) for k in np.flatnonzero(near))

    def add(self, corners: Array, box: Rect) -> None:
        self.polys.append(corners)
        self.boxes = np.vstack([self.boxes, [box.x_min, box.y_min, box.x_max, box.y_max]])


def _try_place(dims: LotDims, frontage, depth, start, d, perp, pos, max_frontage, base, side,
               world: Rect, park_corners: Array, park_box: Rect, index: _LotIndex):
    """One lot with up to 3 depth x 3 frontage shrink attempts."""
    f_min, f_max = dims.frontage
    d_min, d_max = dims.depth
    for depth_try in range(3):
        test_depth = min(max(depth * 0.75 ** depth_try, d_min), d_max)
        back = base + test_depth
        for front_try in range(3):
            test_front = min(max(frontage * 0.85 ** front_try, f_min), min(f_max, max_frontage))
            if test_front < f_min:
                continue
            corners = lot_corners(start, d, perp, pos, test_front, base, back, side)
            box = polygon_bounds(corners)
            if box.width < 0.5 or box.height < 0.5:
                continue
            if not all_inside(world, corners):
                continue
            if park_box.overlaps(box) and polygons_intersect(corners, park_corners):
                continue
            if index.hits(corners, box):
                continue
            return corners, box, test_front
    return None


def place_lots(
    roads: List[RoadSegment],
    world: Rect,
    park_corners: Array,
    dims: LotDims,
    rng: np.random.Generator,
    every: int = 64,
) -> Iterator[float]:
    """Place lots on both sides of each unique local road.

    Generator: yields progress, returns the list of :class:`LotData`.
    """
    lots: List[LotData] = []
    index = _LotIndex()
    seen: Set[EdgeKey] = set()
    park_box = polygon_bounds(park_corners)
    f_min = dims.frontage[0]
    s_min, s_max = dims.spacing

    for ri, road in enumerate(roads):
        if road.road_class is not RoadClass.LOCAL:
            continue
        start = np.asarray(road.start, dtype=float)
        end = np.asarray(road.end, dtype=float)
        key = edge_key(start, end, road.road_class)
        if key in seen:
            continue
        seen.add(key)
        length = float(np.linalg.norm(end - start))
        if length < f_min * 1.5 or length <= 2.0 * dims.intersection_setback + f_min:
            continue
        d = normalized(end - start)
        if float(np.dot(d, d)) <= 1e-6:
            continue
        perp = vec(-d[1], d[0])
        base = road.width * 0.5 + dims.sidewalk + dims.front_setback

        for side in (1.0, -1.0):
            pos = dims.intersection_setback + float(rng.uniform(s_min, s_max))
            while pos + f_min <= length - dims.intersection_setback:
                max_frontage = length - dims.intersection_setback - pos
                if max_frontage < f_min:
                    break
                frontage = float(rng.uniform(f_min, dims.frontage[1]))
                depth = float(rng.uniform(*dims.depth))
                spacing_after = float(rng.uniform(s_min, s_max))
                placed = _try_place(dims, frontage, depth, start, d, perp, pos, max_frontage, base, side,
                                    world, park_corners, park_box, index)
                if placed is None:
                    pos += max(s_min, spacing_after)
                    continue
                corners, box, frontage = placed
                index.add(corners, box)
                rotation = math.degrees(math.atan2(d[1], d[0])) % 360.0
                lots.append(
                    LotData(
                        lot_id=f"lot-{len(lots):05d}",
                        bounds=box.as_tuple(),
                        corners=[(float(p[0]), float(p[1])) for p in corners],
                        rotation_deg=rotation,
                    )
                )
                if len(lots) % every == 0:
                    yield ri / max(1, len(roads))
                pos += frontage + spacing_after

    logger.debug("lots: %d placed", len(lots))
    yield 1.0
    return lots
