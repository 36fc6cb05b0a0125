from __future__ import annotations

import logging
from typing import List

import numpy as np

from roadweave.contracts.layout import RoadSegment
from roadweave.geometry import Rect, clip_segment_to_rect
from .segments import SegmentArena

logger = logging.getLogger(__name__)

__all__ = ["emit_roads"]


def emit_roads(arena: SegmentArena, world: Rect, min_length_sq: float = 0.25) -> List[RoadSegment]:
    """Copy surviving arena records into the final road list.

    Segments trimmed down to (near) zero length are dropped, the rest are
    clipped to ``world``.
    """
    roads: List[RoadSegment] = []
    dropped = 0
    for a, b, width, road_class in arena.iter_records():
        if not (world.contains(a) and world.contains(b)):
            clipped = clip_segment_to_rect(world, a, b)
            if clipped is None:
                dropped += 1
                continue
            a, b = clipped
        d = b - a
        if float(np.dot(d, d)) < min_length_sq:
            dropped += 1
            continue
        roads.append(
            RoadSegment(
                start=(float(a[0]), float(a[1])),
                end=(float(b[0]), float(b[1])),
                width=width,
                road_class=road_class,
            )
        )
    logger.debug("emit: %d roads, %d degenerate dropped", len(roads), dropped)
    return roads
