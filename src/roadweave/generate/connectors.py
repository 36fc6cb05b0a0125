"""Cross-patch connectors grown from outward corners and bare boundary stripes."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

import numpy as np

from roadweave.config.schema import ConnectorCfg, PatchCfg
from roadweave.contracts.layout import RoadClass
from roadweave.geometry import (
    Array,
    Rect,
    project_point_on_segments,
    ray_segments,
    segments_intersect_many,
)
from .segments import (
    CONNECTOR_PATCH_ID,
    EdgeKey,
    EdgeSample,
    SegmentArena,
    SegmentBuildResult,
    StripeKey,
    edge_key,
)

logger = logging.getLogger(__name__)

__all__ = ["ConnectorReach", "ConnectorState", "connector_reach", "bridge_connector", "connect_patches"]


@dataclass(frozen=True)
class ConnectorReach:
    min_reach: float
    max_reach: float
    hit_bias: float
    min_spacing: float
    stripe_near: float


def connector_reach(cfg: ConnectorCfg, patches: PatchCfg) -> ConnectorReach:
    """Derive connector distances from the typical grid cell size."""
    avg_w = sum(patches.cell_w_range) * 0.5
    avg_h = sum(patches.cell_h_range) * 0.5
    typical = max(10.0, min(avg_w, avg_h))
    return ConnectorReach(
        min_reach=cfg.min_reach,
        max_reach=max(cfg.base_max_reach, typical * cfg.max_reach_scale),
        hit_bias=cfg.hit_bias,
        min_spacing=cfg.min_spacing,
        stripe_near=max(2.0, typical * cfg.edge_stripe_near_scale),
    )


@dataclass
class ConnectorState:
    anchors: List[Array] = field(default_factory=list)
    endpoints: List[Array] = field(default_factory=list)
    keys: Set[EdgeKey] = field(default_factory=set)

    @staticmethod
    def _near(points: List[Array], p: Array, dist_sq: float) -> bool:
        if not points:
            return False
        d = np.asarray(points) - p
        return bool(np.any(np.einsum("ij,ij->i", d, d) < dist_sq))

    def crowded(self, p: Array, spacing: float) -> bool:
        s2 = spacing * spacing
        return self._near(self.anchors, p, s2) or self._near(self.endpoints, p, s2)

    def anchor_near(self, p: Array, dist: float) -> bool:
        if not self.anchors:
            return False
        d = np.asarray(self.anchors) - p
        return bool(np.any(np.einsum("ij,ij->i", d, d) <= dist * dist))


def _find_target(
    arena: SegmentArena,
    origin: Array,
    normal: Array,
    patch_id: int,
    rect: Rect,
    reach: ConnectorReach,
) -> Optional[Tuple[Array, int]]:
    A, B = arena.starts, arena.ends
    pid = arena.patch_ids
    other = (pid != patch_id) & (pid >= 0)

    ok, t, hits = ray_segments(origin, normal, A, B)
    ok &= other & (t >= reach.min_reach) & (t <= reach.max_reach + reach.hit_bias)
    ok &= rect.contains_many(hits)
    if np.any(ok):
        k = int(np.argmin(np.where(ok, t, np.inf)))
        return hits[k], k

    # near-parallel cases the ray misses
    proj, _ = project_point_on_segments(origin, A, B)
    d = np.linalg.norm(proj - origin, axis=1)
    ok = other & (d >= reach.min_reach) & (d <= reach.max_reach) & rect.contains_many(proj)
    if np.any(ok):
        k = int(np.argmin(np.where(ok, d, np.inf)))
        return proj[k], k
    return None


def bridge_connector(
    arena: SegmentArena,
    state: ConnectorState,
    origin: Array,
    normal: Array,
    patch_id: int,
    rect: Rect,
    reach: ConnectorReach,
    width: float,
) -> Optional[int]:
    """Try to connect ``origin`` to the nearest segment of another patch.

    Returns the arena index of the new connector, or ``None`` when no
    admissible target exists.
    """
    target = _find_target(arena, origin, normal, patch_id, rect, reach)
    if target is None:
        return None
    hit, target_index = target
    if state.crowded(origin, reach.min_spacing) or state.crowded(hit, reach.min_spacing):
        return None

    crosses = segments_intersect_many(origin, hit, arena.starts, arena.ends)
    crosses[target_index] = False
    if np.any(crosses):
        return None

    key = edge_key(origin, hit, RoadClass.LOCAL)
    if key in state.keys:
        return None
    state.keys.add(key)
    index = arena.add(origin, hit, width, RoadClass.LOCAL, CONNECTOR_PATCH_ID)
    state.anchors.append(np.array(origin, dtype=float))
    state.endpoints.append(np.array(hit, dtype=float))
    return index


def _stripe_picks(samples: List[EdgeSample], every: int) -> List[EdgeSample]:
    ordered = sorted(samples, key=lambda s: s.param)
    return ordered[every // 2 :: every]


def connect_patches(
    built: SegmentBuildResult,
    rect: Rect,
    cfg: ConnectorCfg,
    reach: ConnectorReach,
    width: float,
) -> Iterator[float]:
    """Bridge neighbouring patches; yields progress, returns the connector count."""
    arena = built.arena
    state = ConnectorState()
    corners = built.corners
    stripes: Dict[StripeKey, List[EdgeSample]] = built.stripes
    total = max(1, len(corners) + len(stripes))
    placed = 0

    for n, sp in enumerate(corners, start=1):
        if rect.contains(sp.pos) and rect.dist_to_edge(sp.pos) >= cfg.corner_edge_margin:
            if bridge_connector(arena, state, sp.pos, sp.normal, sp.patch_id, rect, reach, width) is not None:
                placed += 1
        if n % 32 == 0:
            yield n / total

    for n, samples in enumerate(stripes.values(), start=len(corners) + 1):
        if samples and not any(state.anchor_near(s.pos, reach.stripe_near) for s in samples):
            for sp in _stripe_picks(samples, cfg.edge_every_cells):
                if bridge_connector(arena, state, sp.pos, sp.normal, sp.patch_id, rect, reach, width) is not None:
                    placed += 1
        if n % 32 == 0:
            yield n / total

    logger.debug("connectors: %d placed from %d corners, %d stripes", placed, len(corners), len(stripes))
    yield 1.0
    return placed
