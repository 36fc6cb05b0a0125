"""Randomize road ends near the buildable edge so the network has no hard cut."""
from __future__ import annotations

import logging
from typing import Iterator

import numpy as np

from roadweave.config.schema import FrayCfg
from roadweave.geometry import Rect, clip_segment_to_rect, normalized
from .segments import SegmentArena

logger = logging.getLogger(__name__)

__all__ = ["fray_segments"]


def fray_segments(
    arena: SegmentArena,
    rect: Rect,
    world: Rect,
    cfg: FrayCfg,
    rng: np.random.Generator,
    every: int = 32,
) -> Iterator[float]:
    """Move endpoints that sit within ``cfg.detect_radius`` of ``rect``'s edge.

    Only endpoint positions change, never the set of segments.  Extended
    ends are clipped to ``world``.
    """
    n = len(arena)
    frayed = 0
    lo, hi = cfg.length_range
    for i in range(n):
        if i % every == 0:
            yield i / max(1, n)
        a, b = arena.start(i), arena.end(i)
        length = float(np.linalg.norm(a - b))
        if length < cfg.min_length:
            continue
        da = rect.dist_to_edge(a)
        db = rect.dist_to_edge(b)
        r = cfg.detect_radius
        if da <= r and db <= r:
            ratio = float(rng.uniform(*cfg.pull_back_range))
            arena.set_endpoint(i, True, a + (b - a) * ratio)
            arena.set_endpoint(i, False, b + (a - b) * ratio)
            frayed += 1
            continue

        if da <= r and da < db:
            is_start, outer, inner = True, a, b
        elif db <= r and db < da:
            is_start, outer, inner = False, b, a
        else:
            continue
        direction = normalized(outer - inner)
        extent = float(rng.uniform(max(lo, -cfg.max_retract_ratio * length), hi))
        moved = outer + direction * extent
        if not world.contains(moved):
            clipped = clip_segment_to_rect(world, inner, moved)
            if clipped is None:
                continue
            moved = clipped[1]
        arena.set_endpoint(i, is_start, moved)
        frayed += 1

    logger.debug("fray: %d of %d segments adjusted", frayed, n)
    yield 1.0
    return frayed
