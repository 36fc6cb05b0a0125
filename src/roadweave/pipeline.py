"""Step-wise world generation.

:func:`iter_generate` is a generator of :class:`ProgressEvent` that performs
one bounded slice of work between events, so a host loop can render progress
or stop between steps.  Its return value (``StopIteration.value``) is the
finished :class:`GeneratedWorld`.  :func:`generate_world` drives it to the end
and forwards progress and status to plain callbacks.

All randomness comes from the injected ``numpy.random.Generator``; the same
seed and request reproduce the same layout.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Generator, Iterator, Optional, Tuple

import numpy as np

from roadweave.config.schema import GenerationConfig, WorldCfg
from roadweave.contracts.layout import GeneratedWorld, WorldLayout
from roadweave.events import CancelToken, ProgressEvent
from roadweave.generate.connectors import connect_patches, connector_reach
from roadweave.generate.emit import emit_roads
from roadweave.generate.fray import fray_segments
from roadweave.generate.intersections import find_intersection_groups, merge_intersections
from roadweave.generate.lots import lot_dims, place_lots
from roadweave.generate.park import align_center_park
from roadweave.generate.patches import plan_patches
from roadweave.generate.segments import build_segments
from roadweave.geometry import Rect

logger = logging.getLogger(__name__)

__all__ = ["GenerationRequest", "buildable_rect", "iter_generate", "generate_world"]

CharacterFactory = Callable[[str], Any]


@dataclass(frozen=True)
class GenerationRequest:
    world_size: Tuple[float, float]
    park_size: Tuple[float, float]
    main_count: int = 0
    side_count: int = 0
    extra_count: int = 0


def buildable_rect(world: Rect, cfg: WorldCfg) -> Rect:
    """``world`` inset by the larger of the absolute and relative edge padding."""
    short = min(world.width, world.height)
    pct = short * cfg.edge_padding_percent if cfg.edge_padding_percent > 0 else 0.0
    pad = max(cfg.edge_padding, pct)
    pad = min(max(pad, 10.0), short * 0.45)
    return world.inset(pad)


class _Tracker:
    """Keeps reported progress monotonic and checks cancellation."""

    def __init__(self, cancel: Optional[CancelToken]):
        self.cancel = cancel
        self.last = 0.0

    def event(self, value: float, status: str | None = None, stage: str = "") -> ProgressEvent:
        if self.cancel is not None:
            self.cancel.raise_if_cancelled()
        self.last = max(self.last, min(1.0, float(value)))
        return ProgressEvent(self.last, status, stage)

    def drive(self, steps: Iterator[float], lo: float, hi: float, stage: str) -> Generator[ProgressEvent, None, Any]:
        """Re-yield a stage's local fractions mapped into ``[lo, hi]``."""
        while True:
            try:
                frac = next(steps)
            except StopIteration as stop:
                return stop.value
            yield self.event(lo + (hi - lo) * min(1.0, max(0.0, frac)), stage=stage)


def iter_generate(
    request: GenerationRequest,
    cfg: GenerationConfig | None = None,
    rng: np.random.Generator | None = None,
    cancel: CancelToken | None = None,
    character_factory: CharacterFactory | None = None,
) -> Generator[ProgressEvent, None, GeneratedWorld]:
    cfg = cfg or GenerationConfig()
    if rng is None:
        rng = np.random.default_rng(cfg.seed)
    t = _Tracker(cancel)
    roads_cfg = cfg.roads

    yield t.event(0.0, "Preparing world…", "prepare")
    world = Rect.centered(request.world_size)
    park = Rect.centered(request.park_size)
    rect = buildable_rect(world, cfg.world)

    yield t.event(0.0, "Laying out world & park…", "patches")
    patches = plan_patches(rect, cfg.patches, rng)
    logger.info("planned %d patches over %.0fx%.0f", len(patches), rect.width, rect.height)

    yield t.event(0.05, "Building street grid…", "segments")
    built = yield from t.drive(
        build_segments(patches, rect, roads_cfg.local_width, roads_cfg.arterial_width), 0.05, 0.20, "segments"
    )
    arena = built.arena

    yield t.event(0.20, "Connecting patches…", "connectors")
    reach = connector_reach(cfg.connectors, cfg.patches)
    n_conn = yield from t.drive(
        connect_patches(built, rect, cfg.connectors, reach, roads_cfg.local_width), 0.20, 0.35, "connectors"
    )
    logger.info("%d raw segments, %d connectors", len(arena), n_conn)

    if cfg.fray.enable:
        yield t.event(0.35, "Fraying outer roads…", "fray")
        yield from t.drive(
            fray_segments(arena, rect, world, cfg.fray, rng, cfg.progress.fray_every), 0.35, 0.40, "fray"
        )

    yield t.event(0.40, "Building roads & intersections…", "intersections")
    groups = yield from t.drive(
        find_intersection_groups(
            arena, cfg.merge_distance, cfg.intersections.parallel_dot, cfg.progress.scan_rows_every
        ),
        0.40,
        0.75,
        "intersections",
    )
    intersections = yield from t.drive(
        merge_intersections(
            arena,
            groups,
            roads_cfg.expand,
            roads_cfg.curb_setback,
            cfg.progress.groups_every,
            cfg.progress.trims_every,
        ),
        0.75,
        0.85,
        "intersections",
    )
    logger.info("%d intersections from %d groups", len(intersections), len(groups))

    yield t.event(0.85, "Finalizing world data…", "emit")
    roads = emit_roads(arena, world, cfg.intersections.emit_min_length_sq)
    logger.info("%d roads emitted", len(roads))

    layout = WorldLayout(
        world_bounds=world.as_tuple(),
        park_bounds=park.as_tuple(),
        park_corners=[(float(x), float(y)) for x, y in park.corners()],
        intersections=intersections,
    )

    if cfg.lots.enable:
        yield t.event(0.86, "Placing lots…", "lots")
        dims = lot_dims(cfg.lots, roads_cfg)
        park_bounds, rotation, corners = align_center_park(
            park, world, roads, dims.sidewalk, dims.front_setback, dims.intersection_setback
        )
        layout.park_bounds = park_bounds.as_tuple()
        layout.park_rotation_deg = rotation
        layout.park_corners = [(float(x), float(y)) for x, y in corners]
        layout.lots = yield from t.drive(
            place_lots(roads, world, corners, dims, rng, cfg.progress.lots_every), 0.86, 0.90, "lots"
        )
        logger.info("%d lots placed", len(layout.lots))

    result = GeneratedWorld(
        save_id=str(uuid.UUID(bytes=rng.bytes(16), version=4)),
        layout=layout,
        road_network=roads,
    )

    yield t.event(0.90, "Generating characters…", "characters")
    total = request.main_count + request.side_count + request.extra_count
    done = 0
    for kind, count, bucket in (
        ("main", request.main_count, result.mains),
        ("side", request.side_count, result.sides),
        ("extra", request.extra_count, result.extras),
    ):
        for _ in range(count):
            if character_factory is not None:
                bucket.append(character_factory(kind))
            done += 1
            yield t.event(0.90 + 0.10 * done / total, stage="characters")

    yield t.event(1.0, stage="done")
    return result


def generate_world(
    request: GenerationRequest,
    cfg: GenerationConfig | None = None,
    rng: np.random.Generator | None = None,
    on_progress: Callable[[float], None] | None = None,
    on_status: Callable[[str], None] | None = None,
    cancel: CancelToken | None = None,
    character_factory: CharacterFactory | None = None,
) -> GeneratedWorld:
    """Run :func:`iter_generate` to completion, reporting through callbacks."""
    steps = iter_generate(request, cfg, rng, cancel, character_factory)
    while True:
        try:
            ev = next(steps)
        except StopIteration as stop:
            return stop.value
        if on_progress is not None:
            on_progress(ev.progress)
        if ev.status is not None and on_status is not None:
            on_status(ev.status)
