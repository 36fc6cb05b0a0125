"""Generation configuration loader."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from roadweave.utils.dict_merge import deep_update
from .schema import GenerationConfig

__all__ = ["load_generation_config", "read_yaml"]

DEFAULT_CONFIG_PATH = "configs/generation.yaml"


def read_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise TypeError(f"Top-level YAML at {path} must be a mapping")
        return data


def _unwrap(d: Dict[str, Any]) -> Dict[str, Any]:
    if "generation" not in d:
        return d
    extra = set(d.keys()) - {"generation"}
    if extra:
        raise ValueError(f"unexpected top-level keys: {sorted(extra)}")
    return d["generation"] or {}


def load_generation_config(
    path: str | Path | None = DEFAULT_CONFIG_PATH,
    overrides: Optional[Dict[str, Any]] = None,
) -> GenerationConfig:
    """Read ``path`` (optional ``generation:`` root), merge ``overrides`` and validate.

    A missing file yields the built-in defaults.
    """

    cfg: Dict[str, Any] = {}
    if path is not None:
        cfg = deep_update(cfg, _unwrap(read_yaml(path)))
    if overrides:
        cfg = deep_update(cfg, _unwrap(dict(overrides)))
    return GenerationConfig.model_validate(cfg)
