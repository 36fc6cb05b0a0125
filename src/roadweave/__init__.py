"""roadweave top-level API.

External users can simply ``from roadweave import generate_world``.
"""

from . import logging as _logging  # noqa: F401  # installs the NullHandler
from .config import GenerationConfig, load_generation_config
from .events import CancelToken, GenerationCancelled, ProgressEvent
from .pipeline import GenerationRequest, generate_world, iter_generate

__version__ = "0.1.0"

__all__ = [
    "CancelToken",
    "GenerationCancelled",
    "GenerationConfig",
    "GenerationRequest",
    "ProgressEvent",
    "generate_world",
    "iter_generate",
    "load_generation_config",
]
