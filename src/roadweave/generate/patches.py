"""Patch planning: jittered, rotated sub-grids covering the buildable rect."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from roadweave.config.schema import PatchCfg
from roadweave.geometry import Array, Rect, vec

__all__ = ["Patch", "plan_patches", "local_bounds", "local_to_world", "nearest_patch_id"]


@dataclass
class Patch:
    id: int
    center: Array
    angle_deg: float
    arterial_every: int
    arterial_phase: int
    u_lines: List[float] = field(default_factory=list)
    v_lines: List[float] = field(default_factory=list)

    @property
    def cells(self) -> Tuple[int, int]:
        nu = len(self.u_lines) - 1 if len(self.u_lines) > 1 else 0
        nv = len(self.v_lines) - 1 if len(self.v_lines) > 1 else 0
        return nu, nv


def local_to_world(patch: Patch, u: float, v: float) -> Array:
    ang = math.radians(patch.angle_deg)
    c, s = math.cos(ang), math.sin(ang)
    return vec(u * c - v * s + patch.center[0], u * s + v * c + patch.center[1])


def local_bounds(patch: Patch, rect: Rect, margin: float = 2.0) -> Tuple[float, float, float, float]:
    """Extents of ``rect`` in the patch's rotated frame, grown by ``margin``."""
    ang = math.radians(patch.angle_deg)
    c, s = math.cos(-ang), math.sin(-ang)
    d = rect.corners() - patch.center
    u = d[:, 0] * c + d[:, 1] * s
    v = -d[:, 0] * s + d[:, 1] * c
    return (
        float(u.min()) - margin,
        float(u.max()) + margin,
        float(v.min()) - margin,
        float(v.max()) + margin,
    )


def nearest_patch_id(centers: Array, p: Array) -> int:
    """Index of the closest patch center; the first one wins ties."""
    d = centers - p
    return int(np.argmin(np.einsum("ij,ij->i", d, d)))


def _walk_lines(lo: float, hi: float, cell_range: Sequence[float], rng: np.random.Generator) -> List[float]:
    cmin, cmax = float(cell_range[0]), float(cell_range[1])
    current = lo - float(rng.uniform(0.0, cmax))
    lines = []
    while current < hi:
        lines.append(current)
        current += float(rng.uniform(cmin, cmax))
    lines.append(current)
    return lines


def plan_patches(rect: Rect, cfg: PatchCfg, rng: np.random.Generator) -> List[Patch]:
    step_x = rect.width / cfg.patches_x
    step_y = rect.height / cfg.patches_y
    every_lo, every_hi = cfg.arterial_every_range
    patches: List[Patch] = []
    for py in range(cfg.patches_y):
        for px in range(cfg.patches_x):
            base = vec(rect.x_min + (px + 0.5) * step_x, rect.y_min + (py + 0.5) * step_y)
            jx = (rng.random() * 2.0 - 1.0) * cfg.seed_jitter * step_x
            jy = (rng.random() * 2.0 - 1.0) * cfg.seed_jitter * step_y
            step = cfg.angle_step_deg
            angle = round(float(rng.uniform(0.0, 180.0)) / step) * step
            every = min(7, max(2, int(round(float(rng.uniform(every_lo, every_hi))))))
            phase = int(rng.integers(0, every))
            patch = Patch(
                id=len(patches),
                center=base + vec(jx, jy),
                angle_deg=float(angle),
                arterial_every=every,
                arterial_phase=phase,
            )
            u_min, u_max, v_min, v_max = local_bounds(patch, rect, cfg.local_bounds_margin)
            patch.u_lines = _walk_lines(u_min, u_max, cfg.cell_w_range, rng)
            patch.v_lines = _walk_lines(v_min, v_max, cfg.cell_h_range, rng)
            patches.append(patch)
    return patches
