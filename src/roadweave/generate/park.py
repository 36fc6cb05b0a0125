"""Seat the center park beside a road and turn it to the road's heading."""
from __future__ import annotations

import math
from typing import List, Sequence, Tuple

import numpy as np

from roadweave.contracts.layout import RoadClass, RoadSegment
from roadweave.geometry import Array, Rect, normalized, polygon_bounds, project_point_on_segment, vec

__all__ = ["normalize_angle", "rotated_rect_corners", "all_inside", "align_center_park"]


def normalize_angle(deg: float) -> float:
    if not math.isfinite(deg):
        return 0.0
    return deg % 360.0


def rotated_rect_corners(rect: Rect, rotation_deg: float) -> Array:
    rad = math.radians(rotation_deg)
    d = vec(math.cos(rad), math.sin(rad))
    perp = vec(-d[1], d[0])
    c = rect.center
    hd = d * (rect.width * 0.5)
    hp = perp * (rect.height * 0.5)
    return np.array([c - hd - hp, c + hd - hp, c + hd + hp, c - hd + hp])


def all_inside(outer: Rect, corners: Sequence[Array]) -> bool:
    return all(outer.contains(p) for p in corners)


def _road_points(road: RoadSegment) -> Tuple[Array, Array]:
    return np.asarray(road.start, dtype=float), np.asarray(road.end, dtype=float)


def _nearest_road_heading(park: Rect, roads: List[RoadSegment]) -> float:
    center = park.center
    best_d = math.inf
    best_dir = vec(1.0, 0.0)
    for road in roads:
        a, b = _road_points(road)
        diff = b - a
        if float(np.dot(diff, diff)) < 1.0:
            continue
        closest, _ = project_point_on_segment(center, a, b)
        d = float(np.sum((closest - center) ** 2))
        if d < best_d:
            best_d = d
            best_dir = normalized(diff)
    return normalize_angle(math.degrees(math.atan2(best_dir[1], best_dir[0])))


def _fallback(park: Rect, roads: List[RoadSegment]) -> Tuple[Rect, float, Array]:
    rot = _nearest_road_heading(park, roads)
    return park, rot, rotated_rect_corners(park, rot)


def align_center_park(
    park: Rect,
    world: Rect,
    roads: List[RoadSegment],
    sidewalk: float,
    front_setback: float,
    intersection_setback: float,
) -> Tuple[Rect, float, Array]:
    """Return ``(bounds, rotation_deg, corners)`` of the placed park.

    The best road scores +2 when it is long enough for the park plus two
    intersection setbacks and +1 when Local; ties go to the road closest to
    the park center.  If the seated park cannot be shifted inside ``world``
    the requested bounds are kept, turned to the nearest road.
    """
    if not roads:
        return park, 0.0, park.corners()
    if park.width <= 0.0 or park.height <= 0.0:
        return _fallback(park, roads)

    center = park.center
    half_w, half_h = park.width * 0.5, park.height * 0.5

    best = None
    best_score = -1
    best_d = math.inf
    for road in roads:
        a, b = _road_points(road)
        diff = b - a
        len_sq = float(np.dot(diff, diff))
        if len_sq < 1.0:
            continue
        length = math.sqrt(len_sq)
        score = (2 if length >= park.width + 2.0 * intersection_setback else 0) + (
            1 if road.road_class is RoadClass.LOCAL else 0
        )
        closest, _ = project_point_on_segment(center, a, b)
        d = float(np.sum((closest - center) ** 2))
        if score < best_score or (score == best_score and d >= best_d):
            continue
        best_score, best_d = score, d
        best = (road, a, closest, length)

    if best is None:
        return _fallback(park, roads)
    road, a, closest, length = best
    direction = normalized(_road_points(road)[1] - a)
    if float(np.dot(direction, direction)) <= 1e-6:
        return _fallback(park, roads)

    perp = vec(-direction[1], direction[0])
    side = float(np.sign(np.dot(center - closest, perp)))
    if abs(side) < 1e-3:
        side = 1.0
    base_offset = road.width * 0.5 + sidewalk + front_setback
    lo = intersection_setback + half_w
    hi = length - intersection_setback - half_w
    along = float(np.dot(closest - a, direction))
    along = min(max(along, lo), hi) if hi >= lo else length * 0.5

    new_center = a + direction * along + perp * side * (base_offset + half_h)
    rotation = normalize_angle(math.degrees(math.atan2(direction[1], direction[0])))
    bounds = Rect(new_center[0] - half_w, new_center[1] - half_h, park.width, park.height)
    corners = rotated_rect_corners(bounds, rotation)

    if not all_inside(world, corners):
        box = polygon_bounds(corners)
        shift = np.zeros(2)
        if box.x_min < world.x_min and box.x_max <= world.x_max:
            shift[0] = world.x_min - box.x_min
        elif box.x_max > world.x_max and box.x_min >= world.x_min:
            shift[0] = world.x_max - box.x_max
        if box.y_min < world.y_min and box.y_max <= world.y_max:
            shift[1] = world.y_min - box.y_min
        elif box.y_max > world.y_max and box.y_min >= world.y_min:
            shift[1] = world.y_max - box.y_max
        if np.any(shift != 0.0):
            new_center = new_center + shift
            bounds = Rect(new_center[0] - half_w, new_center[1] - half_h, park.width, park.height)
            corners = rotated_rect_corners(bounds, rotation)
        if not all_inside(world, corners):
            return _fallback(park, roads)

    return bounds, rotation, corners
