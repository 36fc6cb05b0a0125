"""Planar geometry helpers shared by every generation stage.

Points are ``numpy`` float arrays of shape ``(2,)``.  Helpers suffixed with
``_many`` test one query against an ``(N, 2)`` batch of segments and return
per-segment arrays, so that the quadratic scans of the generator stay in
vectorized ``numpy`` code.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

Array = np.ndarray

EPS_CROSS = 1e-6
EPS_STRICT = 1e-5
MIN_CLIP_LEN_SQ = 0.01


def vec(x: float, y: float) -> Array:
    return np.array([float(x), float(y)], dtype=float)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle stored as ``(x_min, y_min, width, height)``."""

    x_min: float
    y_min: float
    width: float
    height: float

    @classmethod
    def centered(cls, size: Sequence[float]) -> "Rect":
        w, h = float(size[0]), float(size[1])
        return cls(-0.5 * w, -0.5 * h, w, h)

    @classmethod
    def from_min_max(cls, x0: float, y0: float, x1: float, y1: float) -> "Rect":
        return cls(float(x0), float(y0), float(x1 - x0), float(y1 - y0))

    @property
    def x_max(self) -> float:
        return self.x_min + self.width

    @property
    def y_max(self) -> float:
        return self.y_min + self.height

    @property
    def center(self) -> Array:
        return vec(self.x_min + 0.5 * self.width, self.y_min + 0.5 * self.height)

    def inset(self, pad: float) -> "Rect":
        return Rect(self.x_min + pad, self.y_min + pad, self.width - 2.0 * pad, self.height - 2.0 * pad)

    def contains(self, p) -> bool:
        return self.x_min <= p[0] <= self.x_max and self.y_min <= p[1] <= self.y_max

    def contains_many(self, pts: Array) -> Array:
        return (
            (pts[:, 0] >= self.x_min)
            & (pts[:, 0] <= self.x_max)
            & (pts[:, 1] >= self.y_min)
            & (pts[:, 1] <= self.y_max)
        )

    def dist_to_edge(self, p) -> float:
        dx = min(abs(p[0] - self.x_min), abs(self.x_max - p[0]))
        dy = min(abs(p[1] - self.y_min), abs(self.y_max - p[1]))
        return float(min(dx, dy))

    def corners(self) -> Array:
        return np.array(
            [
                [self.x_min, self.y_min],
                [self.x_max, self.y_min],
                [self.x_max, self.y_max],
                [self.x_min, self.y_max],
            ],
            dtype=float,
        )

    def overlaps(self, other: "Rect") -> bool:
        return (
            other.x_max > self.x_min
            and other.x_min < self.x_max
            and other.y_max > self.y_min
            and other.y_min < self.y_max
        )

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x_min, self.y_min, self.width, self.height)


def cross(a, b) -> float:
    return float(a[0] * b[1] - a[1] * b[0])


def normalized(v: Array) -> Array:
    n = math.hypot(v[0], v[1])
    if n <= 1e-5:
        return np.zeros(2, dtype=float)
    return np.asarray(v, dtype=float) / n


def line_line_intersection(p1: Array, d1: Array, p2: Array, d2: Array) -> Optional[Array]:
    """Intersect two infinite lines given as point + direction."""
    c = cross(d1, d2)
    if abs(c) < EPS_CROSS:
        return None
    t = cross(p2 - p1, d2) / c
    return p1 + d1 * t


def segment_intersection_any(p1: Array, q1: Array, p2: Array, q2: Array, eps: float = EPS_CROSS) -> Optional[Array]:
    """Crossing point of two segments, endpoints included (within ``eps``).

    Scalar reference form of :func:`segment_intersections_many`; the test
    suite checks the vectorized scan against it.
    """
    r = q1 - p1
    s = q2 - p2
    rxs = cross(r, s)
    if abs(rxs) < eps:
        return None
    qp = p2 - p1
    ti = cross(qp, s) / rxs
    tj = cross(qp, r) / rxs
    if not (-eps <= ti <= 1.0 + eps and -eps <= tj <= 1.0 + eps):
        return None
    return p1 + r * ti


def segments_intersect(p1: Array, q1: Array, p2: Array, q2: Array, eps: float = EPS_STRICT) -> bool:
    """Strict interior crossing test; touching endpoints do not count."""
    r = q1 - p1
    s = q2 - p2
    rxs = cross(r, s)
    if abs(rxs) < eps:
        return False
    qp = p2 - p1
    t = cross(qp, s) / rxs
    u = cross(qp, r) / rxs
    return eps < t < 1.0 - eps and eps < u < 1.0 - eps


def ray_segment(p: Array, n: Array, a: Array, b: Array) -> Optional[Tuple[float, Array]]:
    """Scalar reference form of :func:`ray_segments`: ``(t, hit)`` or ``None``."""
    s = b - a
    denom = cross(n, s)
    if abs(denom) < EPS_CROSS:
        return None
    ap = a - p
    t_ray = cross(ap, s) / denom
    u_seg = cross(ap, n) / denom
    if t_ray < 0.0 or u_seg < 0.0 or u_seg > 1.0:
        return None
    return t_ray, a + s * u_seg


def project_point_on_segment(p: Array, a: Array, b: Array) -> Tuple[Array, float]:
    ab = b - a
    ab2 = float(np.dot(ab, ab))
    if ab2 <= 1e-6:
        return np.array(a, dtype=float), 0.0
    t = min(1.0, max(0.0, float(np.dot(p - a, ab)) / ab2))
    return a + ab * t, t


def clip_segment_to_rect(rect: Rect, a: Array, b: Array) -> Optional[Tuple[Array, Array]]:
    """Liang-Barsky clip of ``a -> b`` against ``rect``.

    Returns ``None`` when nothing (or a sliver shorter than 0.1) remains.
    """
    u1, u2 = 0.0, 1.0
    dx = float(b[0] - a[0])
    dy = float(b[1] - a[1])
    for p, q in (
        (-dx, float(a[0] - rect.x_min)),
        (dx, float(rect.x_max - a[0])),
        (-dy, float(a[1] - rect.y_min)),
        (dy, float(rect.y_max - a[1])),
    ):
        if abs(p) < 1e-8:
            if q < 0.0:
                return None
            continue
        t = q / p
        if p < 0.0:
            if t > u2:
                return None
            u1 = max(u1, t)
        else:
            if t < u1:
                return None
            u2 = min(u2, t)
    ca = vec(a[0] + u1 * dx, a[1] + u1 * dy)
    cb = vec(a[0] + u2 * dx, a[1] + u2 * dy)
    d = cb - ca
    if float(np.dot(d, d)) <= MIN_CLIP_LEN_SQ:
        return None
    return ca, cb


# ---------------------------------------------------------------------------
# Vectorized queries against segment batches
# ---------------------------------------------------------------------------


def _cross_many(a: Array, b: Array) -> Array:
    return a[..., 0] * b[..., 1] - a[..., 1] * b[..., 0]


def ray_segments(p: Array, n: Array, A: Array, B: Array) -> Tuple[Array, Array, Array]:
    """Cast a ray against every segment ``A[k] -> B[k]``.

    Returns ``(hit_mask, t, hits)``; ``t`` is the distance along ``n``.
    """
    S = B - A
    denom = _cross_many(np.broadcast_to(n, S.shape), S)
    ok = np.abs(denom) >= EPS_CROSS
    safe = np.where(ok, denom, 1.0)
    AP = A - p
    t = _cross_many(AP, S) / safe
    u = _cross_many(AP, np.broadcast_to(n, S.shape)) / safe
    ok &= (t >= 0.0) & (u >= 0.0) & (u <= 1.0)
    hits = A + S * u[:, None]
    return ok, t, hits


def project_point_on_segments(p: Array, A: Array, B: Array) -> Tuple[Array, Array]:
    """Clamped projections of ``p`` onto every segment; returns ``(proj, t)``."""
    S = B - A
    ab2 = np.einsum("ij,ij->i", S, S)
    ok = ab2 > 1e-6
    t = np.where(ok, np.einsum("ij,ij->i", p - A, S) / np.where(ok, ab2, 1.0), 0.0)
    t = np.clip(t, 0.0, 1.0)
    return A + S * t[:, None], t


def segments_intersect_many(p: Array, q: Array, A: Array, B: Array, eps: float = EPS_STRICT) -> Array:
    """Vectorized :func:`segments_intersect` of ``p -> q`` against a batch."""
    r = q - p
    S = B - A
    rxs = _cross_many(np.broadcast_to(r, S.shape), S)
    ok = np.abs(rxs) >= eps
    safe = np.where(ok, rxs, 1.0)
    QP = A - p
    t = _cross_many(QP, S) / safe
    u = _cross_many(QP, np.broadcast_to(r, S.shape)) / safe
    return ok & (t > eps) & (t < 1.0 - eps) & (u > eps) & (u < 1.0 - eps)


def segment_intersections_many(p: Array, q: Array, A: Array, B: Array, eps: float = EPS_CROSS) -> Tuple[Array, Array]:
    """Vectorized :func:`segment_intersection_any`; returns ``(mask, points)``."""
    r = q - p
    S = B - A
    rxs = _cross_many(np.broadcast_to(r, S.shape), S)
    ok = np.abs(rxs) >= eps
    safe = np.where(ok, rxs, 1.0)
    QP = A - p
    ti = _cross_many(QP, S) / safe
    tj = _cross_many(QP, np.broadcast_to(r, S.shape)) / safe
    ok &= (ti >= -eps) & (ti <= 1.0 + eps) & (tj >= -eps) & (tj <= 1.0 + eps)
    return ok, p + np.outer(ti, r)


def unit_rows(V: Array) -> Array:
    n = np.linalg.norm(V, axis=1)
    out = np.zeros_like(V)
    big = n > 1e-5
    out[big] = V[big] / n[big, None]
    return out


# ---------------------------------------------------------------------------
# Polygons
# ---------------------------------------------------------------------------


def polygon_bounds(poly: Array) -> Rect:
    pts = np.asarray(poly, dtype=float)
    x0, y0 = pts.min(axis=0)
    x1, y1 = pts.max(axis=0)
    eps = 0.005
    if abs(x1 - x0) < eps:
        x0 -= 0.5 * eps
        x1 += 0.5 * eps
    if abs(y1 - y0) < eps:
        y0 -= 0.5 * eps
        y1 += 0.5 * eps
    return Rect.from_min_max(x0, y0, x1, y1)


def point_on_segment(p: Array, a: Array, b: Array, eps: float = 1e-4) -> bool:
    ap = p - a
    ab = b - a
    if abs(cross(ab, ap)) > eps:
        return False
    d = float(np.dot(ap, ab))
    return -eps <= d <= float(np.dot(ab, ab)) + eps


def point_in_polygon(p: Array, poly: Array) -> bool:
    """Even-odd test; points on the boundary count as inside."""
    inside = False
    n = len(poly)
    j = n - 1
    for i in range(n):
        pi, pj = poly[i], poly[j]
        if point_on_segment(p, pi, pj):
            return True
        if (pi[1] > p[1]) != (pj[1] > p[1]):
            denom = pj[1] - pi[1]
            if abs(denom) >= 1e-6:
                x = (pj[0] - pi[0]) * (p[1] - pi[1]) / denom + pi[0]
                if p[0] < x:
                    inside = not inside
        j = i
    return inside


def polygons_intersect(poly_a: Array, poly_b: Array) -> bool:
    if len(poly_a) < 3 or len(poly_b) < 3:
        return False
    if not polygon_bounds(poly_a).overlaps(polygon_bounds(poly_b)):
        return False
    if any(point_in_polygon(p, poly_b) for p in poly_a):
        return True
    if any(point_in_polygon(p, poly_a) for p in poly_b):
        return True
    na, nb = len(poly_a), len(poly_b)
    for i in range(na):
        a1, a2 = poly_a[i], poly_a[(i + 1) % na]
        for j in range(nb):
            if segments_intersect(a1, a2, poly_b[j], poly_b[(j + 1) % nb]):
                return True
    return False


def polygon_self_intersect(poly: Array, eps: float = EPS_STRICT) -> bool:
    """``True`` if two non-adjacent edges of the closed polygon cross."""
    pts = np.asarray(poly, dtype=float)
    n = pts.shape[0]
    if n < 4:
        return False
    for i in range(n):
        for j in range(i + 1, n):
            if j - i <= 1 or (i == 0 and j == n - 1):
                continue
            if segments_intersect(pts[i], pts[(i + 1) % n], pts[j], pts[(j + 1) % n], eps):
                return True
    return False


__all__ = [
    "Array",
    "Rect",
    "vec",
    "cross",
    "normalized",
    "line_line_intersection",
    "segment_intersection_any",
    "segments_intersect",
    "ray_segment",
    "project_point_on_segment",
    "clip_segment_to_rect",
    "ray_segments",
    "project_point_on_segments",
    "segments_intersect_many",
    "segment_intersections_many",
    "unit_rows",
    "polygon_bounds",
    "point_on_segment",
    "point_in_polygon",
    "polygons_intersect",
    "polygon_self_intersect",
]
