"""Crossing detection, proximity grouping and intersection polygons.

Every crossing point of two roads is assigned to the first group whose
running-average center lies within ``merge_distance``.  Because the center
moves as points are added, a group can absorb crossings that are not
pairwise close; the merge radius is tied to road and sidewalk widths, so the
result is still a single physical junction.

For each group with at least two member roads, the end of every road nearest
the center is taken as its entry.  Entries are sorted by the polar angle of
their direction toward the center, and each adjacent pair of entries
contributes one vertex to two polygons:

* the *trim* polygon, from the road edges offset by half width plus the
  sidewalk margin, whose edge midpoints become the new road ends;
* the *visual* polygon, offset by half width plus a curb setback, which is
  exported together with one connector per edge.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

import numpy as np

from roadweave.contracts.layout import IntersectionConnector, IntersectionData
from roadweave.geometry import (
    Array,
    line_line_intersection,
    normalized,
    polygon_self_intersect,
    segment_intersections_many,
    unit_rows,
)
from .segments import SegmentArena

logger = logging.getLogger(__name__)

__all__ = [
    "IntersectionGroup",
    "Entry",
    "Trims",
    "find_intersection_groups",
    "build_intersection",
    "merge_intersections",
]

Trims = Dict[Tuple[int, bool], Array]


@dataclass
class IntersectionGroup:
    center: Array = field(default_factory=lambda: np.zeros(2, dtype=float))
    # insertion-ordered set of arena indices
    members: Dict[int, None] = field(default_factory=dict)

    def add(self, index: int, point: Array) -> None:
        count = len(self.members)
        if count > 0:
            self.center = (self.center * count + point) / (count + 1)
        else:
            self.center = np.array(point, dtype=float)
        self.members[index] = None

    def __len__(self) -> int:
        return len(self.members)


class Entry(NamedTuple):
    segment: int
    point: Array
    direction: Array  # toward the group center
    width: float


def _match_group(groups: List[IntersectionGroup], p: Array, merge_sq: float) -> IntersectionGroup:
    for g in groups:
        d = g.center - p
        if float(np.dot(d, d)) < merge_sq:
            return g
    g = IntersectionGroup()
    groups.append(g)
    return g


def find_intersection_groups(
    arena: SegmentArena,
    merge_distance: float,
    parallel_dot: float = 0.995,
    every: int = 32,
) -> Iterator[float]:
    """Pairwise crossing scan; yields every ``every`` rows, returns the groups."""
    A = arena.starts.copy()
    B = arena.ends.copy()
    D = unit_rows(B - A)
    n = len(A)
    merge_sq = merge_distance * merge_distance
    groups: List[IntersectionGroup] = []
    crossings = 0

    for i in range(n):
        if i % every == 0:
            # the scan over row i touches n - i - 1 pairs
            done = i * (2 * n - i - 1) / 2.0
            yield done / max(1.0, n * (n - 1) / 2.0)
        if i + 1 >= n:
            break
        ok, pts = segment_intersections_many(A[i], B[i], A[i + 1 :], B[i + 1 :])
        ok &= np.abs(D[i + 1 :] @ D[i]) <= parallel_dot
        for k in np.flatnonzero(ok):
            j = i + 1 + int(k)
            p = pts[k]
            g = _match_group(groups, p, merge_sq)
            g.add(i, p)
            g.add(j, p)
            crossings += 1

    logger.debug("intersections: %d crossings merged into %d groups", crossings, len(groups))
    yield 1.0
    return groups


def _entries(arena: SegmentArena, group: IntersectionGroup) -> List[Entry]:
    out = []
    for si in group.members:
        a, b = arena.start(si), arena.end(si)
        da = float(np.sum((group.center - a) ** 2))
        db = float(np.sum((group.center - b) ** 2))
        entry, other = (a, b) if da < db else (b, a)
        out.append(Entry(si, entry, normalized(entry - other), arena.width(si)))
    out.sort(key=lambda e: math.atan2(e.direction[1], e.direction[0]))
    return out


def _corner(e1: Entry, e2: Entry, offset1: float, offset2: float) -> Array:
    n1 = np.array([e1.direction[1], -e1.direction[0]])
    n2 = np.array([-e2.direction[1], e2.direction[0]])
    p1 = e1.point + n1 * offset1
    p2 = e2.point + n2 * offset2
    hit = line_line_intersection(p1, e1.direction, p2, e2.direction)
    if hit is None:
        return (p1 + p2) * 0.5
    return hit


def build_intersection(
    arena: SegmentArena,
    group: IntersectionGroup,
    expand: float,
    curb_setback: float,
) -> Optional[Tuple[IntersectionData, Trims]]:
    """Polygon, connectors and road trims for one group, or ``None`` if degenerate."""
    if len(group) < 2:
        return None
    entries = _entries(arena, group)
    m = len(entries)
    trim_poly: List[Array] = []
    vis_poly: List[Array] = []
    for k in range(m):
        e1, e2 = entries[k], entries[(k + 1) % m]
        trim_poly.append(_corner(e1, e2, e1.width * 0.5 + expand, e2.width * 0.5 + expand))
        vis_poly.append(_corner(e1, e2, e1.width * 0.5 + curb_setback, e2.width * 0.5 + curb_setback))
    if len(trim_poly) < 3 or len(vis_poly) < 3:
        return None
    # crossed fans are degenerate
    if polygon_self_intersect(np.array(trim_poly)) or polygon_self_intersect(np.array(vis_poly)):
        return None

    trims: Trims = {}
    connectors = []
    for k, e in enumerate(entries):
        prev = k - 1 if k > 0 else m - 1
        a, b = arena.start(e.segment), arena.end(e.segment)
        is_start = float(np.sum((e.point - a) ** 2)) < float(np.sum((e.point - b) ** 2))
        trims[(e.segment, is_start)] = (trim_poly[prev] + trim_poly[k]) * 0.5
        mid = (vis_poly[prev] + vis_poly[k]) * 0.5
        connectors.append(
            IntersectionConnector(
                point=(float(mid[0]), float(mid[1])),
                normal=(float(-e.direction[0]), float(-e.direction[1])),
                width=e.width,
            )
        )
    data = IntersectionData(
        points=[(float(p[0]), float(p[1])) for p in vis_poly],
        connectors=connectors,
    )
    return data, trims


def merge_intersections(
    arena: SegmentArena,
    groups: List[IntersectionGroup],
    expand: float,
    curb_setback: float,
    groups_every: int = 8,
    trims_every: int = 64,
) -> Iterator[float]:
    """Build every intersection, then trim roads in one pass.

    Generator: yields progress, returns the list of :class:`IntersectionData`.
    """
    out: List[IntersectionData] = []
    trims: Trims = {}
    total = max(1, len(groups))
    for gi, group in enumerate(groups):
        if gi % groups_every == 0:
            yield 0.8 * gi / total
        built = build_intersection(arena, group, expand, curb_setback)
        if built is None:
            continue
        data, group_trims = built
        out.append(data)
        trims.update(group_trims)

    for n, ((si, is_start), point) in enumerate(trims.items()):
        if n % trims_every == 0:
            yield 0.8 + 0.2 * n / max(1, len(trims))
        arena.set_endpoint(si, is_start, point)

    logger.debug("intersections: %d kept of %d groups, %d road ends trimmed", len(out), len(groups), len(trims))
    yield 1.0
    return out
