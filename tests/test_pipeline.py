import numpy as np
import pytest

from roadweave import CancelToken, GenerationCancelled, generate_world, iter_generate
from roadweave.config.schema import GenerationConfig, WorldCfg
from roadweave.generate.park import all_inside
from roadweave.geometry import Rect, polygon_self_intersect
from roadweave.pipeline import GenerationRequest, buildable_rect


def _run(request, cfg, **kw):
    events = []
    gen = iter_generate(request, cfg, **kw)
    while True:
        try:
            events.append(next(gen))
        except StopIteration as stop:
            return stop.value, events


def test_buildable_rect_padding():
    cfg = WorldCfg()
    assert buildable_rect(Rect.centered((2000, 2000)), cfg).as_tuple() == (-800.0, -800.0, 1600.0, 1600.0)
    assert buildable_rect(Rect.centered((300, 300)), cfg).x_min == pytest.approx(-90.0)
    # clamped to 45% of the short side
    assert buildable_rect(Rect.centered((100, 100)), cfg).width == pytest.approx(10.0)


def test_same_seed_same_world(cfg, small_request):
    a = generate_world(small_request, cfg)
    b = generate_world(small_request, cfg)
    assert a.model_dump() == b.model_dump()
    c = generate_world(small_request, GenerationConfig(seed=8))
    assert c.model_dump() != a.model_dump()


def test_world_contents_are_contained(cfg, small_request):
    world, _ = _run(small_request, cfg)
    bounds = Rect(*world.layout.world_bounds)
    assert bounds.as_tuple() == (-400.0, -400.0, 800.0, 800.0)
    assert len(world.road_network) > 0
    for r in world.road_network:
        assert bounds.contains(r.start) and bounds.contains(r.end)
        assert r.length ** 2 >= cfg.intersections.emit_min_length_sq
    for lot in world.lots:
        assert all_inside(bounds, lot.corners)
    assert all_inside(bounds, world.layout.park_corners)
    for inter in world.layout.intersections:
        assert len(inter.points) >= 3
        assert len(inter.connectors) == len(inter.points)
    assert [lot.lot_id for lot in world.lots] == [f"lot-{i:05d}" for i in range(len(world.lots))]


def test_progress_is_monotonic_and_complete(cfg, small_request):
    progress, statuses = [], []
    generate_world(small_request, cfg, on_progress=progress.append, on_status=statuses.append)
    assert progress == sorted(progress)
    assert all(0.0 <= p <= 1.0 for p in progress)
    assert progress[-1] == 1.0
    assert statuses[0] == "Preparing world…"
    assert "Building roads & intersections…" in statuses
    assert statuses[-1] == "Generating characters…"


def test_cancel_stops_the_run(cfg, small_request):
    token = CancelToken()
    gen = iter_generate(small_request, cfg, cancel=token)
    for _ in range(3):
        next(gen)
    token.cancel("user closed the dialog")
    with pytest.raises(GenerationCancelled, match="user closed the dialog"):
        next(gen)


def test_character_factory_fills_buckets(cfg):
    request = GenerationRequest(world_size=(600.0, 600.0), park_size=(80.0, 60.0),
                                main_count=2, side_count=1, extra_count=3)
    calls = []

    def make(kind):
        calls.append(kind)
        return {"kind": kind, "n": len(calls)}

    world, events = _run(request, cfg, character_factory=make)
    assert calls == ["main", "main", "side", "extra", "extra", "extra"]
    assert [c["kind"] for c in world.mains] == ["main", "main"]
    assert len(world.sides) == 1 and len(world.extras) == 3
    char_events = [e for e in events if e.stage == "characters"]
    assert len(char_events) == 1 + 6
    assert char_events[-1].progress == pytest.approx(1.0)


def test_lots_can_be_disabled(small_request):
    cfg = GenerationConfig(seed=7, lots={"enable": False}, fray={"enable": False})
    world, events = _run(small_request, cfg)
    assert world.lots == []
    assert world.layout.park_rotation_deg == 0.0
    assert not any(e.stage in ("lots", "fray") for e in events)


def test_explicit_rng_overrides_seed(small_request):
    cfg = GenerationConfig(seed=1)
    a = generate_world(small_request, cfg, rng=np.random.default_rng(99))
    b = generate_world(small_request, GenerationConfig(seed=2), rng=np.random.default_rng(99))
    assert a.model_dump() == b.model_dump()


@pytest.mark.parametrize("seed,size", [
    (7, (800.0, 800.0)),
    (8, (800.0, 800.0)),
    (5, (1500.0, 1000.0)),
    (10, (1500.0, 1000.0)),
    (11, (1500.0, 1000.0)),
])
def test_intersection_polygons_are_simple(seed, size):
    cfg = GenerationConfig(seed=seed, lots={"enable": False})
    world = generate_world(GenerationRequest(size, (120.0, 80.0)), cfg)
    if size[0] >= 1500.0:
        assert world.layout.intersections
    for inter in world.layout.intersections:
        pts = np.array(inter.points)
        assert len(pts) >= 3
        assert not polygon_self_intersect(pts)
        assert len(inter.connectors) == len(pts)
