"""Configuration loading utilities."""
from .loader import load_generation_config
from .schema import GenerationConfig

__all__ = ["GenerationConfig", "load_generation_config"]
