"""Raw segment arena and the per-patch grid walker that fills it."""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterator, List, NamedTuple, Optional, Set, Tuple

import numpy as np

from roadweave.contracts.layout import RoadClass
from roadweave.geometry import Array, Rect, clip_segment_to_rect, normalized
from .patches import Patch, local_to_world, nearest_patch_id

logger = logging.getLogger(__name__)

__all__ = [
    "CONNECTOR_PATCH_ID",
    "EdgeKey",
    "edge_key",
    "classify_road",
    "SegmentArena",
    "CornerSample",
    "EdgeSample",
    "StripeDir",
    "StripeKey",
    "SegmentBuildResult",
    "build_segments",
]

CONNECTOR_PATCH_ID = -1
_CLASS_CODES = {RoadClass.ARTERIAL: 0, RoadClass.LOCAL: 1}
_CODE_CLASSES = {v: k for k, v in _CLASS_CODES.items()}

EdgeKey = Tuple[int, int, int, int, int]


def edge_key(a: Array, b: Array, road_class: RoadClass) -> EdgeKey:
    """Order-independent fingerprint of a segment quantized to 0.1 units."""
    qa = (int(round(float(a[0]) * 10.0)), int(round(float(a[1]) * 10.0)))
    qb = (int(round(float(b[0]) * 10.0)), int(round(float(b[1]) * 10.0)))
    lo, hi = min(qa, qb), max(qa, qb)
    return (lo[0], lo[1], hi[0], hi[1], _CLASS_CODES[road_class])


def classify_road(index: int, phase: int, period: int) -> RoadClass:
    if (index + phase) % period == 0:
        return RoadClass.ARTERIAL
    return RoadClass.LOCAL


class SegmentArena:
    """Indexed store of raw segments backed by growable ``numpy`` arrays.

    Records are addressed by position only.  Endpoints change through
    :meth:`set_endpoint`; :meth:`add` is the one place segments enter, and
    it clips to the buildable rectangle and refuses duplicate edge keys.
    """

    def __init__(self, bounds: Rect, capacity: int = 1024):
        self.bounds = bounds
        self._n = 0
        self._a = np.zeros((capacity, 2), dtype=float)
        self._b = np.zeros((capacity, 2), dtype=float)
        self._w = np.zeros(capacity, dtype=float)
        self._cls = np.zeros(capacity, dtype=np.int8)
        self._pid = np.zeros(capacity, dtype=np.int64)
        self.keys: Set[EdgeKey] = set()

    def __len__(self) -> int:
        return self._n

    def _grow(self) -> None:
        cap = 2 * self._a.shape[0]
        self._a = np.resize(self._a, (cap, 2))
        self._b = np.resize(self._b, (cap, 2))
        self._w = np.resize(self._w, cap)
        self._cls = np.resize(self._cls, cap)
        self._pid = np.resize(self._pid, cap)

    def add(self, a: Array, b: Array, width: float, road_class: RoadClass, patch_id: int) -> Optional[int]:
        d = b - a
        if float(np.dot(d, d)) < 0.01:
            return None
        clipped = clip_segment_to_rect(self.bounds, a, b)
        if clipped is None:
            return None
        ca, cb = clipped
        key = edge_key(ca, cb, road_class)
        if key in self.keys:
            return None
        self.keys.add(key)
        if self._n == self._a.shape[0]:
            self._grow()
        i = self._n
        self._a[i] = ca
        self._b[i] = cb
        self._w[i] = width
        self._cls[i] = _CLASS_CODES[road_class]
        self._pid[i] = patch_id
        self._n += 1
        return i

    # views ------------------------------------------------------------------
    @property
    def starts(self) -> Array:
        return self._a[: self._n]

    @property
    def ends(self) -> Array:
        return self._b[: self._n]

    @property
    def widths(self) -> Array:
        return self._w[: self._n]

    @property
    def patch_ids(self) -> Array:
        return self._pid[: self._n]

    def start(self, i: int) -> Array:
        return self._a[i].copy()

    def end(self, i: int) -> Array:
        return self._b[i].copy()

    def width(self, i: int) -> float:
        return float(self._w[i])

    def road_class(self, i: int) -> RoadClass:
        return _CODE_CLASSES[int(self._cls[i])]

    def patch_id(self, i: int) -> int:
        return int(self._pid[i])

    def set_endpoint(self, i: int, is_start: bool, point: Array) -> None:
        if is_start:
            self._a[i] = point
        else:
            self._b[i] = point

    def iter_records(self) -> Iterator[Tuple[Array, Array, float, RoadClass]]:
        for i in range(self._n):
            yield self.start(i), self.end(i), self.width(i), self.road_class(i)


class CornerSample(NamedTuple):
    pos: Array
    normal: Array
    patch_id: int


class EdgeSample(NamedTuple):
    pos: Array
    normal: Array
    patch_id: int
    param: int


class StripeDir(IntEnum):
    RIGHT = 0
    TOP = 1


class StripeKey(NamedTuple):
    patch_id: int
    direction: StripeDir
    index: int


@dataclass
class SegmentBuildResult:
    arena: SegmentArena
    corners: List[CornerSample] = field(default_factory=list)
    stripes: Dict[StripeKey, List[EdgeSample]] = field(default_factory=lambda: defaultdict(list))


def _valid_cells(patch: Patch, centers: Array, rect: Rect) -> np.ndarray:
    nu, nv = patch.cells
    valid = np.zeros((nu, nv), dtype=bool)
    for j in range(nv):
        v_b, v_t = patch.v_lines[j], patch.v_lines[j + 1]
        eps_v = (v_t - v_b) * 0.02
        for i in range(nu):
            u_l, u_r = patch.u_lines[i], patch.u_lines[i + 1]
            eps_u = (u_r - u_l) * 0.02
            probes = (
                ((u_l + u_r) * 0.5, (v_b + v_t) * 0.5),
                (u_l + eps_u, v_b + eps_v),
                (u_r - eps_u, v_b + eps_v),
                (u_l + eps_u, v_t - eps_v),
                (u_r - eps_u, v_t - eps_v),
            )
            valid[i, j] = all(
                rect.contains(p) and nearest_patch_id(centers, p) == patch.id
                for p in (local_to_world(patch, u, v) for u, v in probes)
            )
    return valid


def build_segments(
    patches: List[Patch],
    rect: Rect,
    local_width: float,
    arterial_width: float,
) -> Iterator[float]:
    """Walk every patch grid and emit boundary segments into a new arena.

    Generator: yields the completed fraction after each patch and returns a
    :class:`SegmentBuildResult`.
    """
    result = SegmentBuildResult(arena=SegmentArena(rect))
    arena = result.arena
    centers = np.array([p.center for p in patches], dtype=float).reshape(-1, 2)
    widths = {RoadClass.ARTERIAL: arterial_width, RoadClass.LOCAL: local_width}

    for n_done, pa in enumerate(patches, start=1):
        nu, nv = pa.cells
        if nu == 0 or nv == 0:
            yield n_done / len(patches)
            continue
        valid = _valid_cells(pa, centers, rect)
        for j in range(nv):
            for i in range(nu):
                if not valid[i, j]:
                    continue
                u_l, u_r = pa.u_lines[i], pa.u_lines[i + 1]
                v_b, v_t = pa.v_lines[j], pa.v_lines[j + 1]
                w00 = local_to_world(pa, u_l, v_b)
                w10 = local_to_world(pa, u_r, v_b)
                w01 = local_to_world(pa, u_l, v_t)
                w11 = local_to_world(pa, u_r, v_t)
                c = local_to_world(pa, (u_l + u_r) * 0.5, (v_b + v_t) * 0.5)

                left_missing = i - 1 < 0 or not valid[i - 1, j]
                right_missing = i + 1 >= nu or not valid[i + 1, j]
                bottom_missing = j - 1 < 0 or not valid[i, j - 1]
                top_missing = j + 1 >= nv or not valid[i, j + 1]

                cls = classify_road(i, pa.arterial_phase, pa.arterial_every)
                arena.add(w00, w01, widths[cls], cls, pa.id)
                cls = classify_road(j, pa.arterial_phase, pa.arterial_every)
                arena.add(w00, w10, widths[cls], cls, pa.id)
                if right_missing:
                    cls = classify_road(i + 1, pa.arterial_phase, pa.arterial_every)
                    arena.add(w10, w11, widths[cls], cls, pa.id)
                    m = (w10 + w11) * 0.5
                    key = StripeKey(pa.id, StripeDir.RIGHT, i + 1)
                    result.stripes[key].append(EdgeSample(m, normalized(m - c), pa.id, j))
                if top_missing:
                    cls = classify_road(j + 1, pa.arterial_phase, pa.arterial_every)
                    arena.add(w01, w11, widths[cls], cls, pa.id)
                    m = (w01 + w11) * 0.5
                    key = StripeKey(pa.id, StripeDir.TOP, j + 1)
                    result.stripes[key].append(EdgeSample(m, normalized(m - c), pa.id, i))

                for missing, corner in (
                    (right_missing and top_missing, w11),
                    (right_missing and bottom_missing, w10),
                    (left_missing and top_missing, w01),
                    (left_missing and bottom_missing, w00),
                ):
                    if missing:
                        result.corners.append(CornerSample(corner, normalized(corner - c), pa.id))
        yield n_done / len(patches)

    logger.debug(
        "segments: %d raw, %d outward corners, %d stripes",
        len(arena),
        len(result.corners),
        len(result.stripes),
    )
    return result
