import numpy as np
import pytest

from roadweave.geometry import (
    Rect,
    clip_segment_to_rect,
    line_line_intersection,
    point_in_polygon,
    polygon_self_intersect,
    polygons_intersect,
    project_point_on_segment,
    project_point_on_segments,
    ray_segment,
    ray_segments,
    segment_intersection_any,
    segment_intersections_many,
    segments_intersect,
    segments_intersect_many,
    vec,
)


def test_rect_basics():
    r = Rect.centered((200, 100))
    assert r.as_tuple() == (-100.0, -50.0, 200.0, 100.0)
    assert r.x_max == 100.0 and r.y_max == 50.0
    assert np.allclose(r.center, [0.0, 0.0])
    assert r.contains(vec(100, 50)) and not r.contains(vec(100.1, 0))
    assert r.dist_to_edge(vec(90, 0)) == pytest.approx(10.0)
    inner = r.inset(10)
    assert inner.as_tuple() == (-90.0, -40.0, 180.0, 80.0)
    assert r.overlaps(inner)
    assert not r.overlaps(Rect(200, 200, 5, 5))


def test_clip_segment_to_rect():
    r = Rect(0, 0, 10, 10)
    a, b = clip_segment_to_rect(r, vec(-5, 5), vec(15, 5))
    assert np.allclose(a, [0, 5]) and np.allclose(b, [10, 5])
    assert clip_segment_to_rect(r, vec(-5, -5), vec(-1, -1)) is None
    # a sliver shorter than 0.1 is dropped
    assert clip_segment_to_rect(r, vec(9.95, 5), vec(12, 5)) is None
    # a segment lying on the boundary survives
    a, b = clip_segment_to_rect(r, vec(0, -5), vec(0, 20))
    assert np.allclose(a, [0, 0]) and np.allclose(b, [0, 10])


def test_segment_tests_strict_vs_inclusive():
    o = vec(0, 0)
    # touching at an endpoint
    assert not segments_intersect(o, vec(10, 0), vec(10, 0), vec(10, 10))
    p = segment_intersection_any(o, vec(10, 0), vec(10, 0), vec(10, 10))
    assert p is not None and np.allclose(p, [10, 0])
    # proper X
    assert segments_intersect(vec(-1, -1), vec(1, 1), vec(-1, 1), vec(1, -1))
    # parallel
    assert segment_intersection_any(o, vec(10, 0), vec(0, 1), vec(10, 1)) is None
    assert line_line_intersection(o, vec(1, 0), vec(0, 1), vec(2, 0)) is None


def test_ray_and_projection():
    t, hit = ray_segment(vec(0, 0), vec(1, 0), vec(5, -1), vec(5, 1))
    assert t == pytest.approx(5.0) and np.allclose(hit, [5, 0])
    assert ray_segment(vec(0, 0), vec(-1, 0), vec(5, -1), vec(5, 1)) is None
    proj, t = project_point_on_segment(vec(3, 4), vec(0, 0), vec(10, 0))
    assert np.allclose(proj, [3, 0]) and t == pytest.approx(0.3)
    proj, t = project_point_on_segment(vec(-3, 4), vec(0, 0), vec(10, 0))
    assert np.allclose(proj, [0, 0]) and t == 0.0


def test_vectorized_helpers_match_scalar(rng):
    A = rng.uniform(-50, 50, size=(40, 2))
    B = rng.uniform(-50, 50, size=(40, 2))
    p, q = vec(-20, -30), vec(25, 35)
    n = vec(0.6, 0.8)

    ok, t, hits = ray_segments(p, n, A, B)
    for k in range(len(A)):
        r = ray_segment(p, n, A[k], B[k])
        assert bool(ok[k]) == (r is not None)
        if r is not None:
            assert t[k] == pytest.approx(r[0])
            assert np.allclose(hits[k], r[1])

    proj, _ = project_point_on_segments(p, A, B)
    for k in range(len(A)):
        assert np.allclose(proj[k], project_point_on_segment(p, A[k], B[k])[0])

    strict = segments_intersect_many(p, q, A, B)
    mask, pts = segment_intersections_many(p, q, A, B)
    for k in range(len(A)):
        assert bool(strict[k]) == segments_intersect(p, q, A[k], B[k])
        s = segment_intersection_any(p, q, A[k], B[k])
        assert bool(mask[k]) == (s is not None)
        if s is not None:
            assert np.allclose(pts[k], s)


def test_polygons():
    sq = np.array([[0, 0], [10, 0], [10, 10], [0, 10]], float)
    assert point_in_polygon(vec(5, 5), sq)
    assert point_in_polygon(vec(10, 5), sq)  # boundary counts
    assert not point_in_polygon(vec(11, 5), sq)
    assert polygons_intersect(sq, sq + 5.0)
    # touching is not overlapping
    assert not polygons_intersect(sq, sq + vec(10, 0))
    assert polygons_intersect(sq, sq + vec(9.9, 0))
    assert not polygons_intersect(sq, sq + vec(20, 0))
    assert not polygon_self_intersect(sq)
    bowtie = np.array([[0, 0], [10, 10], [10, 0], [0, 10]], float)
    assert polygon_self_intersect(bowtie)
