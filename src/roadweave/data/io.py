"""Saving and loading generated worlds."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict

import numpy as np

from roadweave.contracts.layout import GeneratedWorld

__all__ = ["save_world", "load_world", "world_to_dict"]


def _to_serializable(obj: Any):
    """Convert objects into JSON-serializable structures."""

    if hasattr(obj, "model_dump"):
        return _to_serializable(obj.model_dump(mode="json"))
    if is_dataclass(obj):
        return {k: _to_serializable(v) for k, v in asdict(obj).items()}
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (list, tuple)):
        return [_to_serializable(x) for x in obj]
    if isinstance(obj, (float, int, str, bool)) or obj is None:
        return obj
    if isinstance(obj, dict):
        return {k: _to_serializable(v) for k, v in obj.items()}
    try:
        return float(obj)
    except (TypeError, ValueError):
        return repr(obj)


def world_to_dict(world: GeneratedWorld) -> Dict[str, Any]:
    return _to_serializable(world)


def save_world(world: GeneratedWorld, path: str | Path, fmt: str = "json") -> Path:
    """Write ``world`` to ``path``; only JSON is supported."""

    if fmt.lower() != "json":
        raise ValueError(f"Unsupported world format: {fmt}")
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(world_to_dict(world), ensure_ascii=False), encoding="utf-8")
    return p


def load_world(path: str | Path) -> GeneratedWorld:
    p = Path(path)
    if not p.exists():
        raise ValueError(f"world file not found: {path}")
    if p.suffix.lower() != ".json":
        raise ValueError(f"unsupported world format: {path}")
    with p.open("r", encoding="utf-8") as f:
        obj = json.load(f)
    if "layout" not in obj:
        raise ValueError("world file missing 'layout'")
    return GeneratedWorld.model_validate(obj)
