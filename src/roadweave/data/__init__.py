"""World persistence helpers."""

from .io import load_world, save_world

__all__ = ["load_world", "save_world"]
