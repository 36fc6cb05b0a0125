import numpy as np
import pytest

from roadweave.config.schema import GenerationConfig
from roadweave.contracts.layout import RoadClass
from roadweave.generate.connectors import connect_patches, connector_reach
from roadweave.generate.intersections import find_intersection_groups, merge_intersections
from roadweave.generate.patches import Patch, plan_patches
from roadweave.generate.segments import (
    SegmentArena,
    StripeDir,
    StripeKey,
    build_segments,
    classify_road,
    edge_key,
)
from roadweave.geometry import Rect, vec

LOCAL_W = 6.7
ARTERIAL_W = 14.6


def _single_patch():
    lines = [-200.0, -100.0, 0.0, 100.0, 200.0]
    patch = Patch(id=0, center=vec(0, 0), angle_deg=0.0, arterial_every=4, arterial_phase=0,
                  u_lines=list(lines), v_lines=list(lines))
    return patch, Rect(-200, -200, 400, 400)


def test_classify_is_pure_and_periodic():
    assert [classify_road(i, 0, 4) for i in range(9)] == [
        RoadClass.ARTERIAL if i in (0, 4, 8) else RoadClass.LOCAL for i in range(9)
    ]
    assert classify_road(1, 2, 3) is RoadClass.ARTERIAL
    assert classify_road(5, 1, 3) is classify_road(5, 1, 3)


def test_edge_key_is_order_independent():
    a, b = vec(1.0, 2.0), vec(30.0, -4.0)
    assert edge_key(a, b, RoadClass.LOCAL) == edge_key(b, a, RoadClass.LOCAL)
    assert edge_key(a, b, RoadClass.LOCAL) != edge_key(a, b, RoadClass.ARTERIAL)
    # quantized to 0.1
    assert edge_key(a, b, RoadClass.LOCAL) == edge_key(a + 0.01, b - 0.01, RoadClass.LOCAL)


def test_edge_key_near_vertical_segment():
    p, q = vec(1000.004, 0.0), vec(1000.0, 5.0)
    assert edge_key(p, q, RoadClass.LOCAL) == edge_key(q, p, RoadClass.LOCAL)
    arena = SegmentArena(Rect(900, -50, 200, 100))
    assert arena.add(p, q, LOCAL_W, RoadClass.LOCAL, 0) == 0
    assert arena.add(q, p, LOCAL_W, RoadClass.LOCAL, 1) is None
    assert len(arena) == 1


def test_arena_dedup_clip_and_growth():
    arena = SegmentArena(Rect(0, 0, 100, 100), capacity=2)
    assert arena.add(vec(10, 10), vec(50, 10), LOCAL_W, RoadClass.LOCAL, 0) == 0
    assert arena.add(vec(50, 10), vec(10, 10), LOCAL_W, RoadClass.LOCAL, 1) is None
    assert arena.add(vec(200, 200), vec(300, 300), LOCAL_W, RoadClass.LOCAL, 0) is None
    assert arena.add(vec(5, 5), vec(5, 5.05), LOCAL_W, RoadClass.LOCAL, 0) is None
    i = arena.add(vec(-50, 20), vec(50, 20), ARTERIAL_W, RoadClass.ARTERIAL, 0)
    assert np.allclose(arena.start(i), [0, 20])
    for k in range(5):
        assert arena.add(vec(10, 30 + k), vec(90, 30 + k), LOCAL_W, RoadClass.LOCAL, 2) is not None
    assert len(arena) == 7 == len(arena.keys)
    assert arena.road_class(i) is RoadClass.ARTERIAL
    assert arena.width(i) == ARTERIAL_W and arena.patch_id(6) == 2
    arena.set_endpoint(0, False, vec(60, 10))
    assert np.allclose(arena.ends[0], [60, 10])


def test_single_patch_grid(drain):
    patch, rect = _single_patch()
    built = drain(build_segments([patch], rect, LOCAL_W, ARTERIAL_W))
    arena = built.arena
    # 5 vertical + 5 horizontal lines, 4 cells each
    assert len(arena) == 40

    keys = [edge_key(a, b, c) for a, b, _, c in arena.iter_records()]
    assert len(set(keys)) == len(keys)

    for a, b, width, cls in arena.iter_records():
        if np.isclose(a[0], b[0]):
            index = int(round((a[0] + 200.0) / 100.0))
        else:
            index = int(round((a[1] + 200.0) / 100.0))
        expected = RoadClass.ARTERIAL if index in (0, 4) else RoadClass.LOCAL
        assert cls is expected
        assert width == (ARTERIAL_W if cls is RoadClass.ARTERIAL else LOCAL_W)
        assert rect.contains(a) and rect.contains(b)

    assert len(built.corners) == 4
    assert {tuple(np.round(c.pos)) for c in built.corners} == {(200, 200), (200, -200), (-200, 200), (-200, -200)}
    assert len(built.stripes[StripeKey(0, StripeDir.RIGHT, 4)]) == 4
    assert len(built.stripes[StripeKey(0, StripeDir.TOP, 4)]) == 4
    for sample in built.stripes[StripeKey(0, StripeDir.RIGHT, 4)]:
        assert sample.normal[0] > 0.0


def test_single_patch_has_no_connectors(drain):
    patch, rect = _single_patch()
    cfg = GenerationConfig()
    built = drain(build_segments([patch], rect, LOCAL_W, ARTERIAL_W))
    n = drain(connect_patches(built, rect, cfg.connectors, connector_reach(cfg.connectors, cfg.patches), LOCAL_W))
    assert n == 0
    assert len(built.arena) == 40


def test_single_patch_intersections_sit_on_grid_vertices(drain):
    patch, rect = _single_patch()
    cfg = GenerationConfig()
    built = drain(build_segments([patch], rect, LOCAL_W, ARTERIAL_W))
    drain(connect_patches(built, rect, cfg.connectors, connector_reach(cfg.connectors, cfg.patches), LOCAL_W))
    groups = drain(find_intersection_groups(built.arena, cfg.merge_distance))
    # one group per grid vertex
    assert len(groups) == 25
    out = drain(merge_intersections(built.arena, groups, cfg.roads.expand, cfg.roads.curb_setback))
    # interior crossings and boundary tees survive, the four corners are bends
    assert sorted(len(d.points) for d in out) == [3] * 12 + [4] * 9
    assert all(len(d.connectors) == len(d.points) for d in out)


def test_build_progress_is_per_patch(rng):
    rect = Rect(-300, -300, 600, 600)
    patches = plan_patches(rect, GenerationConfig().patches, rng)
    fractions = list(build_segments(patches, rect, LOCAL_W, ARTERIAL_W))
    assert len(fractions) == len(patches)
    assert fractions == sorted(fractions) and fractions[-1] == pytest.approx(1.0)


def test_multi_patch_keys_unique(rng, drain):
    rect = Rect(-400, -400, 800, 800)
    patches = plan_patches(rect, GenerationConfig().patches, rng)
    arena = drain(build_segments(patches, rect, LOCAL_W, ARTERIAL_W)).arena
    keys = [edge_key(a, b, c) for a, b, _, c in arena.iter_records()]
    assert len(keys) == len(set(keys)) == len(arena.keys)
    assert set(arena.patch_ids.tolist()) <= set(range(len(patches)))
