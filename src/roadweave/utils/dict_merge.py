from copy import deepcopy
from typing import Any, Mapping


def deep_update(base: dict, override: Mapping[str, Any]) -> dict:
    """Return a copy of *base* with *override* merged in recursively.

    Used to layer YAML config files and command-line overrides: nested
    sections merge key by key, scalars and lists are replaced wholesale.
    Neither input is modified.
    """
    result = deepcopy(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            result[key] = deep_update(current, value)
        else:
            result[key] = deepcopy(value)
    return result
